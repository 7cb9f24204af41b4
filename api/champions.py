"""
Champion API Endpoints

英雄資料是靜態的，service 層已有 24 小時 cache
"""
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query
import logging

from core.exceptions import CatalogUnavailable
from schemas import Champion
from services.catalog_service import fetch_catalog

router = APIRouter(prefix="/api/champions", tags=["champions"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[Champion])
def list_champions(version: Optional[str] = Query(None)):
    """取得英雄列表（依名稱排序）；version 不給則使用設定檔的版本"""
    try:
        return fetch_catalog(version)

    except CatalogUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to list champions: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
