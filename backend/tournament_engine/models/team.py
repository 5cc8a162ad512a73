from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tournament_engine.models.tournament import Tournament


class Team(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    logo_url: Optional[str] = Field(default=None)
    group_name: Optional[str] = Field(default=None, index=True)  # "A", "B", ... or None when ungrouped
    manager: Optional[str] = Field(default=None)  # Team representative shown in match discussions
    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
