"""Shared pytest fixtures for squadtrack tests."""
import os
import sys
import uuid
from datetime import date
from pathlib import Path
from typing import AsyncGenerator, Generator

# Must be set before squadtrack.core.config is imported anywhere
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ["AI_SUGGESTIONS_URL"] = ""

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

TEAM_ID = "team-harbour-fc"
OTHER_TEAM_ID = "team-rivals-fc"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from squadtrack.models import Base

    # One connection shared by every session: TestClient runs sync endpoints
    # in a worker thread and must see the same in-memory database.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture(autouse=True)
def _reset_process_state():
    """Event subscribers and the breaker are process-wide; isolate each test."""
    from squadtrack.core.circuit_breaker import ai_suggestions_breaker
    from squadtrack.core.events import event_bus

    yield
    event_bus.clear()
    ai_suggestions_breaker.close()


@pytest.fixture(scope="function")
def test_client(db_session):
    """
    FastAPI TestClient bound to the test database.

    Not used as a context manager so the lifespan (which creates tables on
    the configured engine) does not run.
    """
    from fastapi.testclient import TestClient
    from squadtrack.main import app
    from squadtrack.core.database import get_db

    test_db_session = db_session

    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def async_client(db_session: Session) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for testing FastAPI endpoints."""
    from squadtrack.main import app
    from squadtrack.core.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


# =============================================================================
# DOMAIN FIXTURES
# =============================================================================

@pytest.fixture
def season(db_session: Session):
    """Season 2025-02-01 .. 2025-08-01 for TEAM_ID."""
    from squadtrack.models import Season

    season = Season(
        team_id=TEAM_ID,
        name="Spring 2025",
        start_date=date(2025, 2, 1),
        end_date=date(2025, 8, 1),
        is_active=True,
    )
    db_session.add(season)
    db_session.commit()
    return season


@pytest.fixture
def make_match(db_session: Session, season):
    """Factory for matches inside ``season``."""
    from squadtrack.models import Match

    def _make(match_date=date(2025, 3, 1), opponent="Arsenal", team_score=2, opponent_score=1, season_id=None):
        match = Match(
            team_id=TEAM_ID,
            season_id=season_id or season.id,
            opponent=opponent,
            match_date=match_date,
            team_score=team_score,
            opponent_score=opponent_score,
        )
        db_session.add(match)
        db_session.commit()
        return match

    return _make


@pytest.fixture
def match(make_match):
    return make_match()


@pytest.fixture
def make_player(db_session: Session):
    """Factory for players; ratings default to 50."""
    from squadtrack.models import Player

    def _make(name="Marcus Reid", position="ST", team_id=TEAM_ID, user_id=None, **ratings):
        player = Player(
            team_id=team_id,
            user_id=user_id or str(uuid.uuid4()),
            name=name,
            position=position,
            **ratings,
        )
        db_session.add(player)
        db_session.commit()
        return player

    return _make


@pytest.fixture
def player(make_player):
    return make_player()


@pytest.fixture
def squad(make_player):
    """Three players: striker, midfielder, winger."""
    return [
        make_player("Marcus Reid", "ST"),
        make_player("Leo Okafor", "CM"),
        make_player("Ethan Walsh", "RW"),
    ]


@pytest.fixture
def team_id():
    return TEAM_ID


@pytest.fixture
def other_team_id():
    return OTHER_TEAM_ID


@pytest.fixture
def stats_generator():
    """Seeded demo-data generator; same seed, same stats."""
    from squadtrack.seeding.stats_generator import MatchStatsGenerator

    return MatchStatsGenerator(seed=2025)


@pytest.fixture
def played_matches(db_session: Session, make_match, squad, stats_generator):
    """Three matches with generated stats submitted for every squad member."""
    from squadtrack.services.stats_service import StatsService

    service = StatsService(db_session)
    matches = []
    for match_date in stats_generator.fixture_dates(date(2025, 2, 8), date(2025, 4, 26), 3):
        team_score, opponent_score = stats_generator.match_result()
        match = make_match(match_date, stats_generator.opponent(), team_score, opponent_score)
        for member, stats in zip(squad, stats_generator.squad_stats(team_score, opponent_score)):
            stats["feedback"] = stats_generator.feedback()
            service.submit_match_stats(member.id, match.id, stats)
        matches.append(match)
    return matches
