from contextlib import contextmanager
from functools import lru_cache
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./champion_draft.db"
    log_level: str = "INFO"

    # Draft store
    draft_store_backend: str = "sql"  # sql | memory | tiered
    draft_ttl_seconds: int = 24 * 60 * 60
    draft_cache_ttl_seconds: int = 5  # tiered store 的 memory cache 存活時間
    draft_cleanup_interval_seconds: int = 60 * 60
    max_write_retries: int = 5
    draft_code_attempts: int = 10
    enforce_available_champions: bool = True

    # Champion catalog (Data Dragon)
    ddragon_base_url: str = "https://ddragon.leagueoflegends.com"
    ddragon_version: str = "14.11.1"
    catalog_cache_seconds: int = 24 * 60 * 60
    catalog_timeout_seconds: float = 10.0


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def build_engine(database_url: str):
    """
    建立 SQLAlchemy engine

    SQLite 需要 check_same_thread=False（FastAPI 會在 threadpool 執行 sync endpoint），
    並給較長的 busy timeout，讓並發寫入排隊而不是直接失敗
    """
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 30}
    else:
        connect_args = {}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency：提供 Database Session

    使用 yield 確保 session 在請求結束後會被關閉
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Transaction context：確保資料庫操作的原子性

    使用方式：
        with transaction(db):
            db.add(row)
            # 不需要手動 commit

    如果區塊內發生異常：
        - 自動 rollback
        - 異常會被重新拋出（讓上層處理）
    """
    try:
        yield db
        db.commit()
    except Exception as e:
        logger.debug(f"Transaction rolled back: {e!r}")
        db.rollback()
        raise
