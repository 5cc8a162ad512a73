from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class Match(SQLModel, table=True):
    """Group-stage match. Ids are generated by the fixture generator ("m-...")."""

    id: str = Field(primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    group_name: str = Field(index=True)
    team_a_id: int = Field(foreign_key="team.id")
    team_b_id: int = Field(foreign_key="team.id")
    matchday: int = Field(index=True)
    leg: int = Field(default=1)  # 1 | 2 (second leg of a double round robin)

    status: str = Field(default="scheduled")  # "scheduled" | "live" | "finished"
    score_a: Optional[int] = Field(default=None)
    score_b: Optional[int] = Field(default=None)
    proof_url: Optional[str] = Field(default=None)  # Screenshot of the final score
    is_walkover: bool = Field(default=False)

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
