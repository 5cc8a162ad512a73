from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class SeasonHistoryRecord(SQLModel, table=True):
    """
    Archived season. Champion and runner-up are copied by value so the entry
    survives the roster being cleared.
    """

    __tablename__ = "seasonhistory"

    id: str = Field(primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    season_name: str
    mode: str

    champion_team_id: int
    champion_name: str
    champion_logo_url: Optional[str] = Field(default=None)

    runner_up_team_id: Optional[int] = Field(default=None)
    runner_up_name: Optional[str] = Field(default=None)
    runner_up_logo_url: Optional[str] = Field(default=None)

    completed_at: datetime
    version: int = Field(default=1)
