"""
英雄資料服務：從 Data Dragon 取得英雄列表

- 依版本快取，超過 catalog_cache_seconds 後下次呼叫重新下載
- 英雄資料是唯讀的，所有 Draft 共用
"""
import logging
import threading
import time
from typing import Dict, List, Optional, Tuple

import requests

from core.exceptions import CatalogUnavailable
from database import get_settings
from schemas import Champion, ChampionImage

logger = logging.getLogger(__name__)

_cache: Dict[str, Tuple[float, List[Champion]]] = {}
_cache_lock = threading.Lock()


def _champion_json_url(version: str) -> str:
    base_url = get_settings().ddragon_base_url.rstrip("/")
    return f"{base_url}/cdn/{version}/data/en_US/champion.json"


def parse_catalog(payload: dict) -> List[Champion]:
    """
    把 Data Dragon 的 champion.json 轉成 Champion 列表

    返回：
        依名稱排序（不分大小寫）的英雄列表

    異常：
        CatalogUnavailable: 格式不對（缺少 data / id / name 等欄位）
    """
    try:
        raw_champions = payload["data"].values()
        champions = [
            Champion(
                id=raw["id"],
                key=str(raw.get("key", "")),
                name=raw["name"],
                title=raw.get("title", ""),
                image=ChampionImage(full=raw.get("image", {}).get("full", "")),
            )
            for raw in raw_champions
        ]
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise CatalogUnavailable(f"Malformed champion data: {e}") from e

    return sorted(champions, key=lambda champion: champion.name.lower())


def _download_catalog(version: str) -> List[Champion]:
    settings = get_settings()
    url = _champion_json_url(version)
    try:
        response = requests.get(url, timeout=settings.catalog_timeout_seconds)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Failed to fetch champions for version {version}: {e}")
        raise CatalogUnavailable(f"Failed to fetch champions for version {version}") from e

    champions = parse_catalog(payload)
    logger.info(f"Fetched {len(champions)} champions for version {version}")
    return champions


def fetch_catalog(version: Optional[str] = None) -> List[Champion]:
    """
    取得指定版本的英雄列表

    參數：
        version: Data Dragon 版本，例如 "14.11.1"；None 表示使用設定檔的 ddragon_version

    返回：
        英雄列表的複本（呼叫者修改不會影響快取）

    異常：
        CatalogUnavailable: 下載或解析失敗（失敗結果不會被快取）
    """
    settings = get_settings()
    version = version or settings.ddragon_version
    now = time.monotonic()

    with _cache_lock:
        cached = _cache.get(version)
        if cached and now - cached[0] < settings.catalog_cache_seconds:
            return list(cached[1])

    champions = _download_catalog(version)

    with _cache_lock:
        _cache[version] = (now, champions)
    return list(champions)


def clear_catalog_cache() -> None:
    with _cache_lock:
        _cache.clear()
