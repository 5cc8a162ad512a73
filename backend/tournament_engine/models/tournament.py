from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tournament_engine.models.team import Team


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    mode: str = Field(default="league")  # "league" | "wakacl" | "two_leagues"
    default_leg_mode: str = Field(default="double")  # "single" | "double"
    # Bumped once per committed state transaction (optimistic concurrency token)
    state_version: int = Field(default=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), sa_column_kwargs={"onupdate": lambda: datetime.now(timezone.utc)})

    # Relationships
    teams: List["Team"] = Relationship(back_populates="tournament")
