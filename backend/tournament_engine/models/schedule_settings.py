from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class ScheduleSettingsRecord(SQLModel, table=True):
    """Matchday timer, one row per tournament."""

    __tablename__ = "schedulesettings"
    __table_args__ = (SAUniqueConstraint("tournament_id", name="uq_schedule_settings_tournament"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    is_active: bool = Field(default=False)
    current_matchday: int = Field(default=1)
    matchday_start_time: Optional[datetime] = Field(default=None)  # Set iff is_active
    matchday_duration_hours: float = Field(default=24.0)
    auto_process_enabled: bool = Field(default=False)
    version: int = Field(default=1)
