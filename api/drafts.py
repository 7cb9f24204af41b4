"""
Draft API Endpoints - 短輪詢版

重點：
1. 所有業務邏輯集中在 DraftManager
2. 前端每隔幾秒 GET /api/drafts/{draft_id}，用 version 判斷是否有更新
3. Draft code 不分大小寫

錯誤對應：
- 404：Draft 不存在或已過期
- 409：動作被拒絕（detail 內有 error code）
- 502：英雄資料抓不到
- 503：Store 無法使用
"""
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from api.dependencies import get_draft_manager
from core.draft_manager import DraftManager, DraftSnapshot
from core.exceptions import (
    ActionRejected,
    CatalogUnavailable,
    DraftCodeExhausted,
    DraftNotFound,
    StorageUnavailable,
)
from schemas import (
    DraftCreate,
    DraftJoin,
    DraftResponse,
    PhaseActionResponse,
    ReadySubmit,
    SelectionSubmit,
)
from services.phase_service import get_draft_status, get_phase_action

router = APIRouter(prefix="/api/drafts", tags=["drafts"])
logger = logging.getLogger(__name__)


def to_draft_response(snapshot: DraftSnapshot) -> DraftResponse:
    draft = snapshot.draft
    phase_action = get_phase_action(draft.phase_index)
    current_turn = None
    if phase_action:
        current_turn = PhaseActionResponse(
            index=draft.phase_index,
            id=phase_action.id,
            side=phase_action.side,
            type=phase_action.type,
            display_text=phase_action.display_text,
        )

    return DraftResponse(
        message=snapshot.message,
        draft_id=draft.id,
        version=snapshot.version,
        status=get_draft_status(draft.phase_index),
        current_turn=current_turn,
        draft=draft,
    )


def rejection_error(e: ActionRejected) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"error": e.rejection.value, "message": e.rejection.message},
    )


@router.post("", response_model=DraftResponse)
def create_draft(data: DraftCreate, manager: DraftManager = Depends(get_draft_manager)):
    """
    建立 Draft（Host endpoint）

    流程：
    1. 取得英雄資料
    2. 生成 Draft code
    3. Host 佔 Blue，phase_index = -2（等待 Red）
    """
    try:
        snapshot = manager.create_draft(data.host_id, data.display_name)
        return to_draft_response(snapshot)

    except CatalogUnavailable as e:
        raise HTTPException(status_code=502, detail=str(e))
    except (StorageUnavailable, DraftCodeExhausted) as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create draft: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/state", response_model=DraftResponse)
def get_draft_state_by_query(
    draft_id: str = Query(..., min_length=1),
    manager: DraftManager = Depends(get_draft_manager),
):
    """取得 Draft 狀態（query string 版本，給輪詢用）"""
    return get_draft_state(draft_id, manager)


@router.get("/{draft_id}", response_model=DraftResponse)
def get_draft_state(draft_id: str, manager: DraftManager = Depends(get_draft_manager)):
    """
    取得 Draft 狀態

    返回：
        - version：每次寫入 +1，前端可以用來判斷是否需要重畫
        - status：waiting_for_opponent / ready_check / drafting / complete
        - current_turn：目前輪到的行動（不在 ban/pick 階段為 null）
    """
    try:
        return to_draft_response(manager.get_state(draft_id))

    except DraftNotFound:
        raise HTTPException(status_code=404, detail="Draft not found")
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to get draft {draft_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{draft_id}/join", response_model=DraftResponse)
def join_draft(draft_id: str, data: DraftJoin, manager: DraftManager = Depends(get_draft_manager)):
    """
    加入 Draft（Red 玩家）

    - 已經是 Red：冪等，直接回傳
    - Host 自己：不算錯誤，直接回傳
    - Red 已被別人佔走：409 SLOT_FULL
    """
    try:
        return to_draft_response(manager.join_draft(draft_id, data.actor_id, data.display_name))

    except DraftNotFound:
        raise HTTPException(
            status_code=404,
            detail="Draft not found. It may have expired or the code is incorrect.",
        )
    except ActionRejected as e:
        raise rejection_error(e)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to join draft {draft_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{draft_id}/ready", response_model=DraftResponse)
def set_ready(draft_id: str, data: ReadySubmit, manager: DraftManager = Depends(get_draft_manager)):
    """
    設定準備狀態

    雙方都 ready 且在 ready check 階段時，Draft 開始（phase_index = 0）
    """
    try:
        return to_draft_response(manager.set_ready(draft_id, data.actor_id, data.is_ready))

    except DraftNotFound:
        raise HTTPException(status_code=404, detail="Draft not found")
    except ActionRejected as e:
        raise rejection_error(e)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to set ready for draft {draft_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{draft_id}/select", response_model=DraftResponse)
def select_champion(draft_id: str, data: SelectionSubmit, manager: DraftManager = Depends(get_draft_manager)):
    """
    Ban 或 Pick 一隻英雄（依目前輪到的行動決定）

    並發安全：
    - 同一 Draft 的寫入經過行級鎖 + version CAS
    - 重複送出的 select 只有一個會成功，另一個會被拒絕
    - 帶上 phase_index 時，針對已過去那一格的 select 一律 409 INVALID_PHASE
      （即使下一格仍輪到同一個人）
    """
    try:
        logger.info(f"Selection for draft {draft_id} by {data.actor_id}: {data.champion.id}")
        return to_draft_response(
            manager.select(draft_id, data.actor_id, data.champion, phase_index=data.phase_index)
        )

    except DraftNotFound:
        raise HTTPException(status_code=404, detail="Draft not found")
    except ActionRejected as e:
        raise rejection_error(e)
    except StorageUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to select champion in draft {draft_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
