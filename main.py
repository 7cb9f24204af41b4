from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import asyncio
import logging

from database import Base, SessionLocal, engine, get_settings
from api import champions, drafts
from api.dependencies import build_draft_store
from core.draft_store import DraftStore
from schemas import HealthResponse

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def purge_expired_drafts() -> int:
    """清除過期 Draft（管理用，也由背景 task 定期呼叫）"""
    db = SessionLocal()
    try:
        store: DraftStore = build_draft_store(db)
        with store.unit_of_work():
            return store.purge_expired()
    finally:
        db.close()


async def cleanup_loop(interval_seconds: int):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(purge_expired_drafts)
        except Exception as e:
            logger.error(f"Expired draft cleanup failed: {e}", exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立資料表，清一次過期資料，啟動定期清理
    Base.metadata.create_all(bind=engine)
    await asyncio.to_thread(purge_expired_drafts)
    cleanup_task = asyncio.create_task(cleanup_loop(settings.draft_cleanup_interval_seconds))
    yield
    # Shutdown
    cleanup_task.cancel()
    try:
        await cleanup_task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    title="Champion Draft API",
    description="Two-player champion ban/pick draft coordinated by server-held state and client polling",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(drafts.router)
app.include_router(champions.router)


@app.get("/")
def root():
    return {"message": "Champion Draft API", "status": "ok"}


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="healthy")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
