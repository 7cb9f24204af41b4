"""
資料模型

- Enum：Side、ActionType、DraftStatus、DraftAction
- ORM：DraftRow（drafts 資料表，整份 DraftInstance 以 JSON 存放）
"""
from datetime import datetime, timezone
import enum

from sqlalchemy import Column, DateTime, Float, Integer, JSON, String

from database import Base


class Side(str, enum.Enum):
    """Draft 的兩個固定陣營：BLUE 為 host（先手），RED 為 challenger"""
    BLUE = "blue"
    RED = "red"


class ActionType(str, enum.Enum):
    BAN = "ban"
    PICK = "pick"


class DraftStatus(str, enum.Enum):
    WAITING_FOR_OPPONENT = "waiting_for_opponent"
    READY_CHECK = "ready_check"
    DRAFTING = "drafting"
    COMPLETE = "complete"


class DraftAction(str, enum.Enum):
    """State machine 接受的動作"""
    JOIN = "join"
    SET_READY = "set_ready"
    SELECT = "select"


class Rejection(str, enum.Enum):
    """State machine 拒絕動作的原因（值，不是異常）"""
    SLOT_FULL = "SLOT_FULL"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    INVALID_PHASE = "INVALID_PHASE"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    PLAYER_NOT_IDENTIFIED = "PLAYER_NOT_IDENTIFIED"
    ALREADY_SELECTED = "ALREADY_SELECTED"
    CHAMPION_NOT_AVAILABLE = "CHAMPION_NOT_AVAILABLE"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    Rejection.SLOT_FULL: "Draft instance is full.",
    Rejection.PLAYER_NOT_FOUND: "Player not found in draft.",
    Rejection.INVALID_PHASE: "The draft is not accepting selections right now.",
    Rejection.NOT_YOUR_TURN: "Not your turn.",
    Rejection.PLAYER_NOT_IDENTIFIED: "Player not identified in this draft.",
    Rejection.ALREADY_SELECTED: "Champion already selected.",
    Rejection.CHAMPION_NOT_AVAILABLE: "Champion is not available in this draft.",
}


def _utcnow():
    return datetime.now(timezone.utc)


class DraftRow(Base):
    __tablename__ = "drafts"

    code = Column(String(6), primary_key=True)
    data = Column(JSON, nullable=False)
    # 每次寫入 +1，用於 compare-and-swap
    version = Column(Integer, nullable=False, default=1)
    # epoch seconds；sliding expiration，每次寫入重設
    expires_at = Column(Float, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<DraftRow code={self.code} version={self.version}>"
