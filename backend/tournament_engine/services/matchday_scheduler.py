"""
Matchday Scheduler: two-state timer (Paused / Running).

Invariant: matchday_start_time is set if and only if is_active.
Expiry is never a transition; it is only observed through remaining_time /
is_expired or by running the walkover check.
"""

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from tournament_engine.services.engine_types import ScheduleSettings, initial_schedule
from tournament_engine.services.errors import InvalidDuration

logger = logging.getLogger(__name__)


def start_matchday(settings: ScheduleSettings, duration_hours: float, now: datetime) -> ScheduleSettings:
    """Paused -> Running. Starting while already running restarts the window at `now`."""
    if duration_hours is None or not math.isfinite(duration_hours) or duration_hours <= 0:
        raise InvalidDuration(f"Matchday duration must be a positive number of hours, got {duration_hours}")

    updated = replace(
        settings,
        is_active=True,
        matchday_start_time=now,
        matchday_duration_hours=float(duration_hours),
    )
    logger.info(
        "Matchday %d started at %s for %sh", updated.current_matchday, now.isoformat(), duration_hours
    )
    return updated


def pause_matchday(settings: ScheduleSettings) -> ScheduleSettings:
    """Running -> Paused. The current matchday is kept; pausing twice is a no-op."""
    if not settings.is_active and settings.matchday_start_time is None:
        return settings
    logger.info("Matchday %d paused", settings.current_matchday)
    return replace(settings, is_active=False, matchday_start_time=None)


def set_current_matchday(settings: ScheduleSettings, matchday: int) -> ScheduleSettings:
    """Valid in both states; never drops below 1 and does not touch the timer."""
    return replace(settings, current_matchday=max(1, int(matchday)))


def advance_matchday(settings: ScheduleSettings) -> ScheduleSettings:
    return set_current_matchday(settings, settings.current_matchday + 1)


def set_auto_process(settings: ScheduleSettings, enabled: bool) -> ScheduleSettings:
    return replace(settings, auto_process_enabled=bool(enabled))


def reset_schedule(settings: Optional[ScheduleSettings] = None) -> ScheduleSettings:
    """Back to the initial Paused state at matchday 1 (duration preference kept)."""
    if settings is None:
        return initial_schedule()
    return initial_schedule(settings.matchday_duration_hours)


def matchday_deadline(settings: ScheduleSettings) -> Optional[datetime]:
    if not settings.is_active or settings.matchday_start_time is None:
        return None
    return settings.matchday_start_time + timedelta(hours=settings.matchday_duration_hours)


def remaining_time(settings: ScheduleSettings, now: datetime) -> Optional[timedelta]:
    """Deadline minus now while running (may be negative); None while paused."""
    deadline = matchday_deadline(settings)
    if deadline is None:
        return None
    return deadline - now


def is_expired(settings: ScheduleSettings, now: datetime) -> bool:
    remaining = remaining_time(settings, now)
    return remaining is not None and remaining <= timedelta(0)
