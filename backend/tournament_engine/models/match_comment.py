from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class MatchComment(SQLModel, table=True):
    __tablename__ = "matchcomment"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    match_id: str = Field(index=True)  # Not a foreign key: comments outlive regenerated fixtures
    team_id: Optional[int] = Field(default=None)  # None for admin / neutral comments
    author: str
    body: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = Field(default=1)
