"""
階段服務：Draft 的固定行動順序與階段判斷

Draft 設計：
- phase_index -2：等待 Red 玩家加入
- phase_index -1：Ready check（雙方都按下準備）
- phase_index 0-15：DRAFT_ORDER 的 index（6 ban + 10 pick）
- phase_index >= 16：Draft 完成

每一格屬於哪個陣營是寫死的資料，不是計算出來的
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from models import ActionType, DraftStatus, Side

WAITING_FOR_OPPONENT = -2
READY_CHECK = -1
FIRST_TURN = 0


@dataclass(frozen=True)
class PhaseAction:
    id: str
    side: Side
    type: ActionType
    display_text: str


DRAFT_ORDER: Tuple[PhaseAction, ...] = (
    PhaseAction("blue_ban_1", Side.BLUE, ActionType.BAN, "Blue Team - Ban 1"),
    PhaseAction("red_ban_1", Side.RED, ActionType.BAN, "Red Team - Ban 1"),
    PhaseAction("blue_ban_2", Side.BLUE, ActionType.BAN, "Blue Team - Ban 2"),
    PhaseAction("red_ban_2", Side.RED, ActionType.BAN, "Red Team - Ban 2"),
    PhaseAction("blue_ban_3", Side.BLUE, ActionType.BAN, "Blue Team - Ban 3"),
    PhaseAction("red_ban_3", Side.RED, ActionType.BAN, "Red Team - Ban 3"),

    PhaseAction("blue_pick_1", Side.BLUE, ActionType.PICK, "Blue Team - Pick 1"),
    PhaseAction("red_pick_1", Side.RED, ActionType.PICK, "Red Team - Pick 1"),
    PhaseAction("red_pick_2", Side.RED, ActionType.PICK, "Red Team - Pick 2"),
    PhaseAction("blue_pick_2", Side.BLUE, ActionType.PICK, "Blue Team - Pick 2"),
    PhaseAction("blue_pick_3", Side.BLUE, ActionType.PICK, "Blue Team - Pick 3"),
    PhaseAction("red_pick_3", Side.RED, ActionType.PICK, "Red Team - Pick 3"),
    PhaseAction("red_pick_4", Side.RED, ActionType.PICK, "Red Team - Pick 4"),
    PhaseAction("blue_pick_4", Side.BLUE, ActionType.PICK, "Blue Team - Pick 4"),
    PhaseAction("blue_pick_5", Side.BLUE, ActionType.PICK, "Blue Team - Pick 5"),
    PhaseAction("red_pick_5", Side.RED, ActionType.PICK, "Red Team - Pick 5"),
)

TOTAL_TURNS = len(DRAFT_ORDER)
BANS_PER_TEAM = 3
PICKS_PER_TEAM = 5


def get_draft_status(phase_index: int) -> DraftStatus:
    """
    根據 phase_index 決定 Draft 狀態

    範例：
        get_draft_status(-2) -> DraftStatus.WAITING_FOR_OPPONENT
        get_draft_status(-1) -> DraftStatus.READY_CHECK
        get_draft_status(7)  -> DraftStatus.DRAFTING
        get_draft_status(16) -> DraftStatus.COMPLETE
    """
    if phase_index <= WAITING_FOR_OPPONENT:
        return DraftStatus.WAITING_FOR_OPPONENT
    elif phase_index == READY_CHECK:
        return DraftStatus.READY_CHECK
    elif phase_index < TOTAL_TURNS:
        return DraftStatus.DRAFTING
    else:
        return DraftStatus.COMPLETE


def is_drafting(phase_index: int) -> bool:
    """是否正在 ban/pick（可以 select）"""
    return FIRST_TURN <= phase_index < TOTAL_TURNS


def get_phase_action(phase_index: int) -> Optional[PhaseAction]:
    """
    取得目前輪到的行動

    返回：
        PhaseAction；不在 ban/pick 階段則回傳 None
    """
    if not is_drafting(phase_index):
        return None
    return DRAFT_ORDER[phase_index]
