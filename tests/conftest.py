import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import models  # noqa: F401  (registers tables on Base.metadata)
from database import Base, build_engine
from core.draft_manager import DraftManager
from core.draft_store import MemoryDraftStore, SqlDraftStore
from schemas import Champion, ChampionImage
from services.phase_service import DRAFT_ORDER


class FakeClock:
    """Callable clock returning epoch seconds that only moves when told to"""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_champions(count: int = 30):
    return [
        Champion(
            id=f"Champ{i:02d}",
            key=str(100 + i),
            name=f"Champion {i:02d}",
            title=f"the {i:02d}th",
            image=ChampionImage(full=f"Champ{i:02d}.png"),
        )
        for i in range(count)
    ]


@pytest.fixture
def champions():
    return make_champions()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'drafts.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def sql_store(db, clock):
    return SqlDraftStore(db, ttl_seconds=3600, clock=clock)


@pytest.fixture
def memory_store(clock):
    return MemoryDraftStore(ttl_seconds=3600, clock=clock)


@pytest.fixture
def manager(sql_store, champions, clock):
    return DraftManager(sql_store, catalog_source=lambda version: champions, clock=clock)


@pytest.fixture
def drafting(manager):
    """A draft where both players joined and readied (phase_index == 0)"""
    draft_id = manager.create_draft("host-token").draft.id
    manager.join_draft(draft_id, "challenger-token")
    manager.set_ready(draft_id, "host-token", True)
    manager.set_ready(draft_id, "challenger-token", True)
    return draft_id, "host-token", "challenger-token"


@pytest.fixture
def play_turn():
    """Select the next available champion for whoever owns the current turn"""

    def _play(manager, draft_id, blue_id, red_id):
        draft = manager.get_state(draft_id).draft
        actor = blue_id if DRAFT_ORDER[draft.phase_index].side.value == "blue" else red_id
        return manager.select(draft_id, actor, draft.available_champions[0])

    return _play


@pytest.fixture
def app_client(session_factory, champions, clock):
    from main import app
    from api.dependencies import get_draft_manager

    def override_manager():
        session = session_factory()
        try:
            yield DraftManager(
                SqlDraftStore(session, clock=clock),
                catalog_source=lambda version: champions,
                clock=clock,
            )
        finally:
            session.close()

    app.dependency_overrides[get_draft_manager] = override_manager
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
