"""
Draft Manager：管理 Draft 的完整生命週期

職責：
1. 建立 Draft（抓英雄資料、生成 code、Host 佔 Blue）
2. join / ready / select：讀取 -> state machine -> compare-and-swap 寫回
3. 查詢 Draft 狀態
4. 清除過期 Draft

並發：
- 同一個 Draft 的 read-modify-write 透過行級鎖 + version CAS 序列化
- CAS 失敗代表有人先寫入，重新讀取後再套用一次 state machine
- 被 state machine 拒絕的動作不寫入，以 ActionRejected 回報
"""
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging
import time

from core.draft_store import DraftStore
from core.exceptions import (
    ActionRejected,
    ConcurrentModification,
    DraftCodeExhausted,
    DraftNotFound,
    StorageUnavailable,
)
from core.state_machine import DraftStateMachine
from models import DraftAction, Side
from schemas import Champion, DraftInstance, DraftTeam, Participant
from services.catalog_service import fetch_catalog
from services.naming_service import default_display_name, normalize_draft_code
from services.phase_service import WAITING_FOR_OPPONENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DraftSnapshot:
    draft: DraftInstance
    version: int
    message: Optional[str] = None


class DraftManager:
    """
    Draft 生命週期管理器

    參數：
        store: DraftStore 實作
        catalog_source: version -> 英雄列表（預設從 Data Dragon 抓）
        state_machine: DraftStateMachine（預設強制英雄必須在 available_champions）
        catalog_version: 英雄資料版本；None 表示使用設定檔
        max_write_retries: CAS 衝突時最多重試次數
        code_attempts: Draft code 碰撞時最多重新生成次數
    """

    def __init__(
        self,
        store: DraftStore,
        catalog_source: Callable[[Optional[str]], List[Champion]] = fetch_catalog,
        state_machine: Optional[DraftStateMachine] = None,
        catalog_version: Optional[str] = None,
        max_write_retries: int = 5,
        code_attempts: int = 10,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.catalog_source = catalog_source
        self.state_machine = state_machine or DraftStateMachine()
        self.catalog_version = catalog_version
        self.max_write_retries = max_write_retries
        self.code_attempts = code_attempts
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def create_draft(self, host_id: str, display_name: Optional[str] = None) -> DraftSnapshot:
        """
        建立新 Draft（Host 佔 Blue，等待 Red 加入）

        流程：
        1. 取得英雄資料（失敗直接丟 CatalogUnavailable）
        2. 生成 Draft code，碰撞就重新生成
        3. 寫入 store

        異常：
            CatalogUnavailable: 英雄資料抓不到
            DraftCodeExhausted: 連續 code_attempts 次都碰撞
        """
        champions = self.catalog_source(self.catalog_version)
        now_ms = self._now_ms()

        for _ in range(self.code_attempts):
            code = normalize_draft_code(self.store.new_id())
            draft = DraftInstance(
                id=code,
                host_id=host_id,
                blue_team=DraftTeam(
                    player=Participant(
                        id=host_id,
                        display_name=display_name or default_display_name(Side.BLUE),
                        is_ready=False,
                    )
                ),
                red_team=DraftTeam(),
                phase_index=WAITING_FOR_OPPONENT,
                available_champions=list(champions),
                all_champions=list(champions),
                created_at=now_ms,
                updated_at=now_ms,
            )

            try:
                with self.store.unit_of_work():
                    if self.store.exists(code):
                        logger.warning(f"Draft code collision detected, regenerating: {code}")
                        continue
                    version = self.store.put(draft)
            except ConcurrentModification:
                logger.warning(f"Draft code {code} taken concurrently, regenerating")
                continue

            logger.info(f"Created draft {code} for host {host_id} with {len(champions)} champions")
            return DraftSnapshot(draft, version)

        raise DraftCodeExhausted(f"Could not generate a free draft code after {self.code_attempts} attempts")

    def join_draft(self, draft_id: str, actor_id: str, display_name: Optional[str] = None) -> DraftSnapshot:
        return self._apply(draft_id, actor_id, DraftAction.JOIN, display_name)

    def set_ready(self, draft_id: str, actor_id: str, is_ready: bool) -> DraftSnapshot:
        return self._apply(draft_id, actor_id, DraftAction.SET_READY, is_ready)

    def select(self, draft_id: str, actor_id: str, champion: Champion,
               phase_index: Optional[int] = None) -> DraftSnapshot:
        """
        Ban 或 Pick

        參數：
            phase_index: client 看到的 phase_index；不給則以第一次讀取到的為準

        異常：
            ActionRejected(INVALID_PHASE): 那一格已經被選過（例如重複送出）
        """
        return self._apply(draft_id, actor_id, DraftAction.SELECT, champion, expected_phase_index=phase_index)

    def get_state(self, draft_id: str) -> DraftSnapshot:
        """
        取得 Draft 目前狀態

        異常：
            DraftNotFound: Draft 不存在或已過期
        """
        code = normalize_draft_code(draft_id)
        with self.store.unit_of_work():
            stored = self.store.get(code)
        if stored is None:
            logger.warning(f"Draft {code} not found")
            raise DraftNotFound(code)
        return DraftSnapshot(stored.draft, stored.version)

    def purge_expired(self) -> int:
        with self.store.unit_of_work():
            return self.store.purge_expired()

    def _apply(self, draft_id: str, actor_id: str, action: DraftAction, payload,
               expected_phase_index: Optional[int] = None) -> DraftSnapshot:
        """
        讀取 -> state machine -> CAS 寫回

        - 拒絕：不寫入，丟 ActionRejected
        - 沒有變化（重新加入、重複 ready）：不寫入，直接回傳
        - CAS 衝突：重新讀取再套用，超過 max_write_retries 丟 StorageUnavailable

        SELECT 重試時固定使用第一次讀到的 phase_index，
        衝突代表那一格已被別人選走，不能順延到下一格
        """
        code = normalize_draft_code(draft_id)

        for attempt in range(1, self.max_write_retries + 1):
            try:
                with self.store.unit_of_work():
                    stored = self.store.get(code, for_update=True)
                    if stored is None:
                        logger.warning(f"Draft {code} not found ({action.value} by {actor_id})")
                        raise DraftNotFound(code)

                    if action == DraftAction.SELECT and expected_phase_index is None:
                        expected_phase_index = stored.draft.phase_index

                    result = self.state_machine.apply(
                        stored.draft, actor_id, action, payload, expected_phase_index=expected_phase_index
                    )
                    if not result.ok:
                        logger.warning(
                            f"Draft {code}: {action.value} by {actor_id} rejected ({result.rejection.value})"
                        )
                        raise ActionRejected(result.rejection)

                    if not result.changed:
                        return DraftSnapshot(stored.draft, stored.version, result.message)

                    draft = result.draft
                    draft.updated_at = self._now_ms()
                    version = self.store.put(draft, expected_version=stored.version)

                logger.info(
                    f"Draft {code}: {action.value} by {actor_id} accepted "
                    f"(phase {stored.draft.phase_index} -> {draft.phase_index}, version {version})"
                )
                return DraftSnapshot(draft, version, result.message)

            except ConcurrentModification:
                logger.warning(
                    f"Draft {code}: concurrent write detected on attempt {attempt}, retrying"
                )

        raise StorageUnavailable(
            f"Draft {code}: gave up after {self.max_write_retries} conflicting writes"
        )
