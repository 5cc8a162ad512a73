import os
from datetime import datetime, timedelta, timezone

# Keep app startup (init_db) off the on-disk database during tests
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from tournament_engine.database import get_clock, get_session  # noqa: E402
from tournament_engine.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# StaticPool + :memory: so every session (test and app) shares one database
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable stand-in for the wall clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a freshly created schema."""
    import tournament_engine.models  # noqa: F401

    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    return FakeClock(T0)


@pytest.fixture(name="client")
def client_fixture(session: Session, clock: FakeClock):
    """Provide a test client with overridden database session and clock"""
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def tournament_id(client: TestClient) -> int:
    resp = client.post("/api/tournaments", json={"name": "Liga Test", "mode": "league", "default_leg_mode": "single"})
    assert resp.status_code == 201
    return resp.json()["id"]


@pytest.fixture
def add_team(client: TestClient, tournament_id: int):
    """Factory: add a team to the test tournament and return its id."""

    def _add(name: str, group: str = None) -> int:
        resp = client.post(f"/api/tournaments/{tournament_id}/teams", json={"name": name, "group_name": group})
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    return _add
