"""
Draft State Machine：集中管理所有 Draft 狀態轉換

狀態（依 phase_index）：
    WAITING_FOR_OPPONENT(-2) --join--> READY_CHECK(-1)
        --雙方 ready--> DRAFTING(0..15) --select x16--> COMPLETE(>=16)

原則：
- 純函式：不做 I/O，不改動傳入的 draft，成功時回傳新的 draft
- 拒絕以 Rejection 值回傳，不丟異常（由 DraftManager 決定怎麼處理）
- 沒有往回走的轉換，也沒有取消
"""
from dataclasses import dataclass
from typing import Optional
import logging

from models import ActionType, DraftAction, Rejection, Side
from schemas import Champion, DraftInstance, Participant
from services.naming_service import default_display_name
from services.phase_service import READY_CHECK, WAITING_FOR_OPPONENT, FIRST_TURN, get_phase_action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    """
    State machine 的結果

    - draft：成功時為新的 draft（changed=False 時與輸入內容相同）
    - rejection：被拒絕時的原因
    """
    draft: Optional[DraftInstance] = None
    rejection: Optional[Rejection] = None
    changed: bool = False
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.rejection is None

    @classmethod
    def accepted(cls, draft: DraftInstance, message: Optional[str] = None) -> "TransitionResult":
        return cls(draft=draft, changed=True, message=message)

    @classmethod
    def unchanged(cls, draft: DraftInstance, message: Optional[str] = None) -> "TransitionResult":
        return cls(draft=draft, changed=False, message=message)

    @classmethod
    def rejected(cls, rejection: Rejection) -> "TransitionResult":
        return cls(rejection=rejection, message=rejection.message)


class DraftStateMachine:
    """
    Draft 狀態機

    參數：
        enforce_availability: select 時是否要求英雄必須在 available_champions 內
    """

    def __init__(self, enforce_availability: bool = True):
        self.enforce_availability = enforce_availability

    def apply(self, draft: DraftInstance, actor_id: str, action: DraftAction, payload=None,
              expected_phase_index: Optional[int] = None) -> TransitionResult:
        """
        套用一個動作

        payload：
            JOIN       -> 顯示名稱（可為 None）
            SET_READY  -> bool
            SELECT     -> Champion

        expected_phase_index：只對 SELECT 有效，見 select()
        """
        action = DraftAction(action)
        if action == DraftAction.JOIN:
            return self.join(draft, actor_id, display_name=payload)
        elif action == DraftAction.SET_READY:
            return self.set_ready(draft, actor_id, bool(payload))
        else:
            return self.select(draft, actor_id, payload, expected_phase_index=expected_phase_index)

    def join(self, draft: DraftInstance, actor_id: str, display_name: Optional[str] = None) -> TransitionResult:
        red_player = draft.red_team.player
        if red_player:
            if red_player.id == actor_id:
                return TransitionResult.unchanged(draft, "Rejoined draft.")
            return TransitionResult.rejected(Rejection.SLOT_FULL)

        if draft.host_id == actor_id or draft.side_of(actor_id) == Side.BLUE:
            return TransitionResult.unchanged(draft, "You are the host (Blue Team).")

        new_draft = draft.model_copy(deep=True)
        new_draft.red_team.player = Participant(
            id=actor_id,
            display_name=display_name or default_display_name(Side.RED),
            is_ready=False,
        )
        if new_draft.phase_index == WAITING_FOR_OPPONENT:
            new_draft.phase_index = READY_CHECK
        return TransitionResult.accepted(new_draft)

    def set_ready(self, draft: DraftInstance, actor_id: str, is_ready: bool) -> TransitionResult:
        side = draft.side_of(actor_id)
        if side is None:
            return TransitionResult.rejected(Rejection.PLAYER_NOT_FOUND)

        new_draft = draft.model_copy(deep=True)
        new_draft.team(side).player.is_ready = is_ready

        blue, red = new_draft.blue_team.player, new_draft.red_team.player
        if blue and red and blue.is_ready and red.is_ready and new_draft.phase_index == READY_CHECK:
            new_draft.phase_index = FIRST_TURN
        # 開始 draft 後取消 ready 不會回到 ready check

        if new_draft == draft:
            return TransitionResult.unchanged(draft)
        return TransitionResult.accepted(new_draft)

    def select(self, draft: DraftInstance, actor_id: str, champion: Champion,
               expected_phase_index: Optional[int] = None) -> TransitionResult:
        """
        Ban 或 Pick 目前這一格

        參數：
            expected_phase_index: 這次選擇是針對哪一格做的；
                與 draft.phase_index 不同代表那一格已經被選過（重複送出），
                以 INVALID_PHASE 拒絕。同一陣營連續兩格時（如 red_pick_1 -> red_pick_2）
                只靠輪到誰無法分辨重複送出
        """
        phase_action = get_phase_action(draft.phase_index)
        if phase_action is None:
            return TransitionResult.rejected(Rejection.INVALID_PHASE)
        if expected_phase_index is not None and expected_phase_index != draft.phase_index:
            return TransitionResult.rejected(Rejection.INVALID_PHASE)

        side = draft.side_of(actor_id)
        if side is None:
            return TransitionResult.rejected(Rejection.PLAYER_NOT_IDENTIFIED)
        if side != phase_action.side:
            return TransitionResult.rejected(Rejection.NOT_YOUR_TURN)

        if champion.id in draft.selected_ids():
            return TransitionResult.rejected(Rejection.ALREADY_SELECTED)

        if self.enforce_availability:
            canonical = next((c for c in draft.available_champions if c.id == champion.id), None)
            if canonical is None:
                return TransitionResult.rejected(Rejection.CHAMPION_NOT_AVAILABLE)
            champion = canonical

        new_draft = draft.model_copy(deep=True)
        team = new_draft.team(side)
        if phase_action.type == ActionType.BAN:
            team.bans.append(champion.model_copy())
        else:
            team.picks.append(champion.model_copy())

        new_draft.available_champions = [
            c for c in new_draft.available_champions if c.id != champion.id
        ]
        new_draft.phase_index += 1

        logger.debug(f"Draft {draft.id}: {phase_action.id} -> {champion.id}")
        return TransitionResult.accepted(new_draft)
