from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class KnockoutMatch(SQLModel, table=True):
    """
    Knockout match row. Each slot is stored as a (team id, placeholder) pair
    of which at most one is set; both null means TBD.
    """

    __tablename__ = "knockoutmatch"

    id: str = Field(primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round: str = Field(index=True)  # "Round of 16" | "Quarter-finals" | "Semi-finals" | "Final"
    match_order: int = Field(default=1)

    team_a_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="team.id")
    placeholder_a: Optional[str] = Field(default=None)  # e.g. "Winner QF1"
    placeholder_b: Optional[str] = Field(default=None)

    # Two legs per tie
    score_a1: Optional[int] = Field(default=None)
    score_b1: Optional[int] = Field(default=None)
    score_a2: Optional[int] = Field(default=None)
    score_b2: Optional[int] = Field(default=None)
    winner_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
