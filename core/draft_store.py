"""
Draft Store：DraftInstance 的 key-value 持久化

介面（DraftStore）：
- get(draft_id, for_update)   讀取；過期視為不存在並盡量清除
- put(draft, expected_version) 寫入；每次寫入重設 TTL（sliding expiration）
- new_id()                    生成新的 Draft code（不保證唯一）
- purge_expired()             清除所有過期 Draft
- unit_of_work()              commit / rollback 的範圍

實作：
- SqlDraftStore：SQLAlchemy，預設的 durable backend
- MemoryDraftStore：單一 process 內的 dict（開發 / 測試用）
- TieredDraftStore：memory cache + durable，讀取時回填 cache

版本號（version）每次寫入 +1。put 帶 expected_version 時是 compare-and-swap，
不符合就丟 ConcurrentModification，由 DraftManager 重新讀取再試
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
import logging
import threading
import time

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import ConcurrentModification, StorageUnavailable
from core.locks import compare_and_swap, with_draft_lock
from database import transaction
from models import DraftRow
from schemas import DraftInstance
from services.naming_service import generate_draft_code, normalize_draft_code

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class StoredDraft:
    draft: DraftInstance
    version: int
    expires_at: float  # epoch seconds


class DraftStore(ABC):
    """
    Draft 持久化介面

    參數：
        ttl_seconds: 預設 TTL（從最後一次寫入起算）
        clock: 回傳 epoch seconds 的函式（測試時可以換成假時鐘）
    """

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    @abstractmethod
    def get(self, draft_id: str, for_update: bool = False) -> Optional[StoredDraft]:
        ...

    @abstractmethod
    def put(self, draft: DraftInstance, expected_version: Optional[int] = None,
            ttl_seconds: Optional[int] = None) -> int:
        """
        寫入 Draft，回傳新的 version

        expected_version：
            None -> 建立新 Draft（已存在且未過期則丟 ConcurrentModification）
            int  -> 只有目前 version 相同時才寫入
        """

    @abstractmethod
    def purge_expired(self) -> int:
        """刪除所有過期 Draft，回傳刪除數量"""

    def exists(self, draft_id: str) -> bool:
        return self.get(draft_id) is not None

    def new_id(self) -> str:
        return generate_draft_code()

    @contextmanager
    def unit_of_work(self):
        yield self

    def _expires_at(self, ttl_seconds: Optional[int]) -> float:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        return self.clock() + ttl


class MemoryDraftStore(DraftStore):
    """單一 process 內的 Draft store，重啟後資料就消失"""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self._entries: Dict[str, StoredDraft] = {}
        self._lock = threading.RLock()

    def _live_entry(self, code: str) -> Optional[StoredDraft]:
        entry = self._entries.get(code)
        if entry is None:
            return None
        if entry.expires_at <= self.clock():
            logger.info(f"Draft {code} expired, evicting from memory store")
            del self._entries[code]
            return None
        return entry

    def get(self, draft_id: str, for_update: bool = False) -> Optional[StoredDraft]:
        code = normalize_draft_code(draft_id)
        with self._lock:
            entry = self._live_entry(code)
            if entry is None:
                return None
            return replace(entry, draft=entry.draft.model_copy(deep=True))

    def put(self, draft: DraftInstance, expected_version: Optional[int] = None,
            ttl_seconds: Optional[int] = None) -> int:
        code = normalize_draft_code(draft.id)
        with self._lock:
            current = self._live_entry(code)
            if expected_version is None:
                if current is not None:
                    raise ConcurrentModification(code)
                version = 1
            else:
                if current is None or current.version != expected_version:
                    raise ConcurrentModification(code, expected_version)
                version = expected_version + 1

            self._entries[code] = StoredDraft(
                draft=draft.model_copy(deep=True),
                version=version,
                expires_at=self._expires_at(ttl_seconds),
            )
            return version

    def prime(self, stored: StoredDraft) -> None:
        """直接覆寫一筆資料（TieredDraftStore 回填 cache 用）"""
        code = normalize_draft_code(stored.draft.id)
        with self._lock:
            self._entries[code] = replace(stored, draft=stored.draft.model_copy(deep=True))

    def invalidate(self, draft_id: str) -> None:
        with self._lock:
            self._entries.pop(normalize_draft_code(draft_id), None)

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [code for code, entry in self._entries.items() if entry.expires_at <= now]
            for code in expired:
                del self._entries[code]
        if expired:
            logger.info(f"Purged {len(expired)} expired draft(s) from memory store")
        return len(expired)


class SqlDraftStore(DraftStore):
    """
    SQLAlchemy Draft store

    整份 DraftInstance 以 JSON 存在 drafts.data；
    for_update=True 時使用 SELECT ... FOR UPDATE（with_draft_lock）
    """

    def __init__(self, db: Session, ttl_seconds: int = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self.db = db

    @contextmanager
    def unit_of_work(self):
        try:
            with transaction(self.db):
                yield self
        except SQLAlchemyError as e:
            logger.error(f"Draft store transaction failed: {e}", exc_info=True)
            raise StorageUnavailable("Draft store transaction failed") from e

    def get(self, draft_id: str, for_update: bool = False) -> Optional[StoredDraft]:
        code = normalize_draft_code(draft_id)
        try:
            if for_update:
                query = with_draft_lock(code, self.db)
            else:
                query = self.db.query(DraftRow).filter(DraftRow.code == code)
            # compare_and_swap 用 Core UPDATE，identity map 裡的 row 可能是舊的
            row = query.populate_existing().first()

            if row is None:
                return None

            if row.expires_at <= self.clock():
                logger.info(f"Draft {code} expired, evicting")
                self.db.delete(row)
                self.db.flush()
                return None

            return StoredDraft(
                draft=DraftInstance.model_validate(row.data),
                version=row.version,
                expires_at=row.expires_at,
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to read draft {code}: {e}", exc_info=True)
            raise StorageUnavailable(f"Failed to read draft {code}") from e

    def put(self, draft: DraftInstance, expected_version: Optional[int] = None,
            ttl_seconds: Optional[int] = None) -> int:
        code = normalize_draft_code(draft.id)
        data = draft.model_dump(mode="json")
        expires_at = self._expires_at(ttl_seconds)

        try:
            if expected_version is None:
                existing = self.db.get(DraftRow, code)
                if existing is not None:
                    if existing.expires_at > self.clock():
                        raise ConcurrentModification(code)
                    # 同 code 的過期資料還沒被清掉
                    self.db.delete(existing)
                    self.db.flush()

                self.db.add(DraftRow(code=code, data=data, version=1, expires_at=expires_at))
                self.db.flush()
                return 1

            swapped = compare_and_swap(
                code,
                expected_version,
                {"data": data, "expires_at": expires_at, "updated_at": datetime.now(timezone.utc)},
                self.db,
            )
            if not swapped:
                raise ConcurrentModification(code, expected_version)
            return expected_version + 1

        except IntegrityError as e:
            raise ConcurrentModification(code, expected_version) from e
        except SQLAlchemyError as e:
            logger.error(f"Failed to save draft {code}: {e}", exc_info=True)
            raise StorageUnavailable(f"Failed to save draft {code}") from e

    def purge_expired(self) -> int:
        try:
            result = self.db.execute(
                delete(DraftRow)
                .where(DraftRow.expires_at <= self.clock())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to purge expired drafts: {e}", exc_info=True)
            raise StorageUnavailable("Failed to purge expired drafts") from e

        if result.rowcount:
            logger.info(f"Purged {result.rowcount} expired draft(s)")
        return result.rowcount


class TieredDraftStore(DraftStore):
    """
    Memory cache + durable store

    讀取：
    - 一般讀取先查 cache，miss 再查 durable，命中則回填 cache
    - for_update 讀取直接查 durable（取得行級鎖），durable 掛掉時才退回 cache

    寫入：
    - 先寫 durable（version 以 durable 為準）
    - 在 unit_of_work 內：durable commit 成功後才同步到 cache；
      commit 失敗則清掉 cache 該筆，不會讀到被 rollback 的資料
    - durable 衝突 -> 清掉 cache 該筆，讓重試讀到最新資料
    - durable 無法使用 -> 只寫 cache（至少一個 backend 成功）

    cache 只保留 cache_ttl_seconds，讓其他 process 的寫入能在短時間內被看到
    """

    def __init__(self, cache: MemoryDraftStore, durable: DraftStore, cache_ttl_seconds: int = 5):
        super().__init__(durable.ttl_seconds, durable.clock)
        self.cache = cache
        self.durable = durable
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cache_only_write = False
        self._in_unit_of_work = False
        self._pending: List[StoredDraft] = []

    @contextmanager
    def unit_of_work(self):
        self._cache_only_write = False
        self._in_unit_of_work = True
        self._pending = []
        try:
            with self.durable.unit_of_work():
                yield self
        except StorageUnavailable:
            self._discard_pending()
            if not self._cache_only_write:
                raise
            logger.error("Durable commit failed, keeping cache-only write")
        except Exception:
            self._discard_pending()
            raise
        else:
            for stored in self._pending:
                self._backfill(stored)
        finally:
            self._pending = []
            self._in_unit_of_work = False

    def _discard_pending(self) -> None:
        for stored in self._pending:
            self.cache.invalidate(stored.draft.id)

    def _backfill(self, stored: StoredDraft) -> None:
        cache_expiry = min(stored.expires_at, self.clock() + self.cache_ttl_seconds)
        self.cache.prime(replace(stored, expires_at=cache_expiry))

    def get(self, draft_id: str, for_update: bool = False) -> Optional[StoredDraft]:
        if not for_update:
            cached = self.cache.get(draft_id)
            if cached is not None:
                return cached

        try:
            stored = self.durable.get(draft_id, for_update=for_update)
        except StorageUnavailable:
            logger.warning(f"Durable store unavailable, falling back to cache for draft {draft_id}")
            cached = self.cache.get(draft_id)
            if cached is None:
                raise
            return cached

        if stored is None:
            self.cache.invalidate(draft_id)
            return None

        self._backfill(stored)
        return stored

    def put(self, draft: DraftInstance, expected_version: Optional[int] = None,
            ttl_seconds: Optional[int] = None) -> int:
        try:
            version = self.durable.put(draft, expected_version=expected_version, ttl_seconds=ttl_seconds)
        except ConcurrentModification:
            self.cache.invalidate(draft.id)
            raise
        except StorageUnavailable:
            logger.error(f"Durable store unavailable, draft {draft.id} saved to cache only")
            version = (expected_version or 0) + 1
            self.cache.prime(StoredDraft(draft, version, self._expires_at(ttl_seconds)))
            self._cache_only_write = True
            return version

        stored = StoredDraft(draft.model_copy(deep=True), version, self._expires_at(ttl_seconds))
        if self._in_unit_of_work:
            self._pending.append(stored)
        else:
            self._backfill(stored)
        return version

    def purge_expired(self) -> int:
        self.cache.purge_expired()
        return self.durable.purge_expired()

    def new_id(self) -> str:
        return self.durable.new_id()
