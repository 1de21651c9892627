"""
Shared test fixtures for blueolive.

Uses the database at TEST_DATABASE_URL (in-memory SQLite by default) with
per-test table create/drop, a local directory for object storage, and a
recording dispatcher in place of the inline/Celery strategies.
"""

import os
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tests")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("DISPATCH_MODE", "inline")
os.environ.setdefault("STORAGE_BACKEND", "local")

from blueolive.core.ownership import ANONYMOUS  # noqa: E402
from blueolive.db.base import Base  # noqa: E402
from blueolive.db.session import engine_kwargs  # noqa: E402
from blueolive.main import app  # noqa: E402
from blueolive.models import Analysis, User  # noqa: F401,E402

TEST_DB_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


GAME_ANN_WHITE = """[Event "Club Championship"]
[Site "Springfield"]
[Date "2024.03.02"]
[White "Ann Smith"]
[Black "Bob Jones"]
[Result "1-0"]
[ECO "C50"]
[Opening "Italian Game"]

1. e4 e5 2. Nf3 Nc6 3. Bc4 Bc5 4. c3 Nf6 5. d4 exd4 6. cxd4 Bb4+ 1-0"""

GAME_ANN_BLACK = """[Event "Club Championship"]
[Date "2024.03.09"]
[White "Carl Weber"]
[Black "Smith, Ann"]
[Result "0-1"]

1. d4 d5 2. c4 e6 3. Nc3 Nf6 4. Bg5 Be7 0-1"""

GAME_WITHOUT_ANN = """[Event "Club Championship"]
[Date "2024.03.16"]
[White "Dora Klein"]
[Black "Erik Lund"]
[Result "1/2-1/2"]

1. c4 e5 2. g3 Nf6 3. Bg2 d5 1/2-1/2"""

ANN_PGN_FILE = "\n\n".join([GAME_ANN_WHITE, GAME_ANN_BLACK, GAME_WITHOUT_ANN]) + "\n"

ANALYSIS_JSON = """{
  "summary": "Ann played a sharp Italian Game and converted the initiative.",
  "phases": [
    {"name": "Opening", "moves": "1-6", "evaluation": "Active development", "key_ideas": ["Central pawn break with d4"]}
  ],
  "key_moments": [
    {"move_number": 5, "move": "d4", "fen": "", "evaluation": "+0.6", "comment": "Opens the centre", "is_mistake": false}
  ],
  "recommendations": ["Study the Moller attack"]
}"""


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False, **engine_kwargs(TEST_DB_URL))
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine, session_factory):
    """Fresh tables per test: drop → create → yield session → drop."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture()
async def analysis_store(db_session):
    from blueolive.core.analysis_store import AnalysisStore

    return AnalysisStore(db_session)


# ---------------------------------------------------------------------------
# Storage, dispatch and analyzer doubles
# ---------------------------------------------------------------------------


@pytest.fixture()
def local_storage(tmp_path):
    from blueolive.core.storage import LocalStorage

    return LocalStorage(tmp_path / "storage")


@pytest_asyncio.fixture()
async def stored_pgn(local_storage):
    """Save PGN text to local storage and return its reference."""

    async def _store(content: str = ANN_PGN_FILE, filename: str = "games.pgn") -> str:
        return await local_storage.save(filename, content.encode("utf-8"), ANONYMOUS)

    return _store


class RecordingDispatcher:
    """Remembers dispatched ids; optionally fails from the n-th call on."""

    def __init__(self):
        self.dispatched: list[str] = []
        self.fail_from: int | None = None

    async def dispatch(self, analysis_id: str) -> str:
        from blueolive.core.dispatch import DispatchError

        if self.fail_from is not None and len(self.dispatched) >= self.fail_from:
            raise DispatchError("broker unavailable")
        self.dispatched.append(analysis_id)
        return f"ack-{analysis_id}"

    async def drain(self) -> None:
        return None


@pytest.fixture()
def recording_dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def fake_analyzer():
    """GameAnalyzer stand-in whose ``analyze`` returns a fixed result."""
    from blueolive.core.llms import parse_analysis_result

    analyzer = AsyncMock()
    analyzer.analyze.return_value = parse_analysis_result(ANALYSIS_JSON)
    return analyzer


# ---------------------------------------------------------------------------
# LLM mock
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_llm(monkeypatch):
    """Mock call_llm as seen by the analyzer. Set ``return_value``/``side_effect`` per test."""
    from unittest.mock import MagicMock

    default_response = (
        ANALYSIS_JSON,
        {
            "prompt_tokens": 10,
            "completion_tokens": 5,
            "response_ms": 100,
            "response_cost": 0.001,
        },
    )

    mock = MagicMock(return_value=default_response)
    monkeypatch.setattr("blueolive.core.game_analyzer.call_llm", mock)
    return mock


# ---------------------------------------------------------------------------
# Test client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def test_client(db_session, local_storage, recording_dispatcher, fake_analyzer):
    from blueolive.db.session import get_db
    from blueolive.api.v1.helpers.authentication import JWTAuthenticationProvider

    async def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    app.state.authentication_provider = JWTAuthenticationProvider()
    app.state.storage = local_storage
    app.state.dispatcher = recording_dispatcher
    app.state.analyzer = fake_analyzer

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(scope="function")
async def user_factory(db_session):
    from blueolive.models.iam.users import User
    from blueolive.api.v1.helpers.authentication import hash_password

    async def _create(
        email: str | None = None,
        full_name: str = "Test User",
        password: str = "password123",
        is_active: bool = True,
    ) -> User:
        user = User(
            email=email or f"user+{uuid4().hex[:6]}@example.com",
            full_name=full_name,
            hashed_password=hash_password(password),
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create


@pytest.fixture()
def auth_headers_for():
    """Build bearer headers for a user without going through /login."""
    from blueolive.api.v1.helpers.authentication import create_access_token

    def _headers(user) -> dict[str, str]:
        token = create_access_token(data={"sub": str(user.user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture(scope="function")
async def analysis_factory(db_session):
    from blueolive.models.analysis import Analysis
    from blueolive.utils import prefixed_id, utcnow

    async def _create(
        owner_key: str = "anonymous",
        status: str = "pending",
        player_name: str = "Ann Smith",
        player_color: str = "white",
        pgn: str = GAME_ANN_WHITE,
        game_metadata: dict[str, Any] | None = None,
        result: dict[str, Any] | None = None,
        error: str | None = None,
        batch_id: str | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> Analysis:
        now = utcnow()
        analysis = Analysis(
            analysis_id=prefixed_id("ana"),
            owner_key=owner_key,
            batch_id=batch_id or prefixed_id("batch"),
            status=status,
            pgn=pgn,
            source_url="local://uploads/test/games.pgn",
            player_name=player_name,
            player_color=player_color,
            game_metadata=game_metadata
            or {
                "white": "Ann Smith",
                "black": "Bob Jones",
                "result": "1-0",
                "event": "Club Championship",
                "date": "2024.03.02",
                "eco": "C50",
                "opening": "Italian Game",
            },
            result=result,
            error=error,
            created_at=created_at or now,
            updated_at=updated_at or created_at or now,
        )
        db_session.add(analysis)
        await db_session.commit()
        await db_session.refresh(analysis)
        return analysis

    return _create


@pytest.fixture()
def sample_games() -> dict[str, str]:
    return {
        "ann_white": GAME_ANN_WHITE,
        "ann_black": GAME_ANN_BLACK,
        "without_ann": GAME_WITHOUT_ANN,
        "file": ANN_PGN_FILE,
        "analysis_json": ANALYSIS_JSON,
    }
