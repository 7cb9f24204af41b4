"""
FastAPI dependencies：依設定組出 DraftStore 與 DraftManager

draft_store_backend：
- sql     -> SqlDraftStore（每個 request 一個 DB session）
- memory  -> 整個 process 共用一個 MemoryDraftStore
- tiered  -> 共用的 MemoryDraftStore 當 cache + SqlDraftStore
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from core.draft_manager import DraftManager
from core.draft_store import DraftStore, MemoryDraftStore, SqlDraftStore, TieredDraftStore
from core.state_machine import DraftStateMachine
from database import get_db, get_settings
from services.catalog_service import fetch_catalog


@lru_cache()
def get_memory_store() -> MemoryDraftStore:
    return MemoryDraftStore(ttl_seconds=get_settings().draft_ttl_seconds)


def build_draft_store(db: Session) -> DraftStore:
    settings = get_settings()
    backend = settings.draft_store_backend.lower()

    if backend == "memory":
        return get_memory_store()

    sql_store = SqlDraftStore(db, ttl_seconds=settings.draft_ttl_seconds)
    if backend == "tiered":
        return TieredDraftStore(
            cache=get_memory_store(),
            durable=sql_store,
            cache_ttl_seconds=settings.draft_cache_ttl_seconds,
        )
    if backend != "sql":
        raise ValueError(f"Unknown draft_store_backend: {settings.draft_store_backend}")
    return sql_store


def get_draft_store(db: Session = Depends(get_db)) -> DraftStore:
    return build_draft_store(db)


def get_draft_manager(store: DraftStore = Depends(get_draft_store)) -> DraftManager:
    settings = get_settings()
    return DraftManager(
        store,
        catalog_source=fetch_catalog,
        state_machine=DraftStateMachine(enforce_availability=settings.enforce_available_champions),
        catalog_version=settings.ddragon_version,
        max_write_retries=settings.max_write_retries,
        code_attempts=settings.draft_code_attempts,
    )
