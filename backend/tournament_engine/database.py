from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from tournament_engine.config import DATABASE_URL, SQL_ECHO

_is_sqlite = DATABASE_URL.startswith("sqlite")
_connect_args = {"check_same_thread": False} if _is_sqlite else {}

if _is_sqlite and ":memory:" not in DATABASE_URL:
    db_path = DATABASE_URL.replace("sqlite:///", "", 1)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine: Engine = create_engine(
    DATABASE_URL,
    echo=SQL_ECHO,
    connect_args=_connect_args,
)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def get_clock():
    """Wall clock used by routes; overridden in tests."""
    return lambda: datetime.now(timezone.utc)


def init_db() -> None:
    """Initialize database - create all tables"""
    # Import all models to ensure they're registered with SQLModel metadata
    from tournament_engine.models.knockout_match import KnockoutMatch  # noqa: F401
    from tournament_engine.models.match import Match  # noqa: F401
    from tournament_engine.models.match_comment import MatchComment  # noqa: F401
    from tournament_engine.models.schedule_settings import ScheduleSettingsRecord  # noqa: F401
    from tournament_engine.models.season_history import SeasonHistoryRecord  # noqa: F401
    from tournament_engine.models.team import Team  # noqa: F401
    from tournament_engine.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(engine)
