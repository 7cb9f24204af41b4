"""
Pydantic schemas

兩類：
1. Draft 記錄本身（Champion / Participant / DraftTeam / DraftInstance），可直接 JSON 序列化存進 store
2. API request / response
"""
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models import ActionType, DraftStatus, Side


# ============ Draft 記錄 ============

class ChampionImage(BaseModel):
    full: str = ""


class Champion(BaseModel):
    id: str = Field(..., min_length=1)  # e.g. "Aatrox"
    key: str = ""  # e.g. "266"
    name: str = Field(..., min_length=1)
    title: str = ""
    image: ChampionImage = Field(default_factory=ChampionImage)


class Participant(BaseModel):
    id: str
    display_name: str
    is_ready: bool = False


class DraftTeam(BaseModel):
    player: Optional[Participant] = None
    bans: List[Champion] = Field(default_factory=list)
    picks: List[Champion] = Field(default_factory=list)


class DraftInstance(BaseModel):
    id: str
    host_id: str
    blue_team: DraftTeam
    red_team: DraftTeam
    # -2: 等待 Red 加入, -1: ready check, 0..N-1: DRAFT_ORDER index, >= N: 完成
    phase_index: int = -2
    available_champions: List[Champion] = Field(default_factory=list)
    all_champions: List[Champion] = Field(default_factory=list)
    created_at: int  # epoch ms
    updated_at: int  # epoch ms

    def team(self, side: Side) -> DraftTeam:
        return self.blue_team if side == Side.BLUE else self.red_team

    def side_of(self, actor_id: str) -> Optional[Side]:
        """回傳 actor 所在的陣營；不在任何陣營則回傳 None"""
        if self.blue_team.player and self.blue_team.player.id == actor_id:
            return Side.BLUE
        if self.red_team.player and self.red_team.player.id == actor_id:
            return Side.RED
        return None

    def selected_ids(self) -> List[str]:
        """四個 ban/pick 列表中所有已選英雄的 id"""
        return [
            champion.id
            for team in (self.blue_team, self.red_team)
            for champion in (*team.bans, *team.picks)
        ]


class PhaseActionResponse(BaseModel):
    index: int
    id: str
    side: Side
    type: ActionType
    display_text: str


# ============ Requests ============

class DraftCreate(BaseModel):
    host_id: str
    display_name: Optional[str] = None

    @field_validator("host_id")
    @classmethod
    def host_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("host_id must not be blank")
        return value


class ActorRequest(BaseModel):
    actor_id: str

    @field_validator("actor_id")
    @classmethod
    def actor_id_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("actor_id must not be blank")
        return value


class DraftJoin(ActorRequest):
    display_name: Optional[str] = None


class ReadySubmit(ActorRequest):
    is_ready: bool


class SelectionSubmit(ActorRequest):
    champion: Champion
    # client 當下看到的 phase_index；已經換到下一格時以 INVALID_PHASE 拒絕
    phase_index: Optional[int] = None


# ============ Responses ============

class DraftResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    draft_id: str
    version: int
    status: DraftStatus
    current_turn: Optional[PhaseActionResponse] = None
    draft: DraftInstance


class HealthResponse(BaseModel):
    status: str
