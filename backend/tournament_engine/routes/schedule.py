"""
Matchday Schedule API Routes

Timer control (start / pause / matchday navigation), the manual walkover
check ("force") and the periodic tick used by a scheduler or cron job.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from tournament_engine.database import get_clock, get_session
from tournament_engine.services.engine_types import ActivitySignal
from tournament_engine.services.matchday_scheduler import (
    advance_matchday,
    is_expired,
    pause_matchday,
    set_auto_process,
    set_current_matchday,
    start_matchday,
)
from tournament_engine.services.state_store import load_comment_activity, load_snapshot, tournament_transaction
from tournament_engine.services.walkover_adjudicator import activity_from_comments, check_and_resolve_timeouts
from tournament_engine.utils.serializers import ScheduleResponse, schedule_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class StartMatchdayRequest(BaseModel):
    duration_hours: Optional[float] = None  # Defaults to the stored duration


class SetMatchdayRequest(BaseModel):
    matchday: int


class AutoProcessRequest(BaseModel):
    enabled: bool


class ActivitySignalInput(BaseModel):
    side_a: bool = False
    side_b: bool = False


class CheckTimeoutsRequest(BaseModel):
    force: bool = True
    # Match id -> activity. Omitted: derived from match comments since the matchday started.
    signals: Optional[Dict[str, ActivitySignalInput]] = None


class WalkoverResponse(BaseModel):
    processed_count: int
    message: str
    resolved_match_ids: List[str]
    ambiguous_match_ids: List[str]
    deadline_passed: bool
    schedule: ScheduleResponse
    state_version: int


# ============================================================================
# Helpers
# ============================================================================


def _run_walkover_check(session, tournament_id, now, force, signals, expected_version) -> WalkoverResponse:
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        snapshot = tx.snapshot
        if signals is not None:
            activity = {mid: ActivitySignal(side_a=s.side_a, side_b=s.side_b) for mid, s in signals.items()}
        else:
            comments = load_comment_activity(session, tournament_id, snapshot.schedule.matchday_start_time)
            activity = activity_from_comments(snapshot.matches, comments, snapshot.schedule.matchday_start_time)

        matches, report = check_and_resolve_timeouts(snapshot.schedule, snapshot.matches, activity, now, force=force)
        tx.snapshot = replace(snapshot, matches=tuple(matches))

    return WalkoverResponse(
        processed_count=report.processed_count,
        message=report.summary,
        resolved_match_ids=report.resolved_match_ids,
        ambiguous_match_ids=report.ambiguous_match_ids,
        deadline_passed=report.deadline_passed,
        schedule=schedule_response(tx.snapshot.schedule, now),
        state_version=tx.snapshot.state_version,
    )


def _update_schedule(session, tournament_id, expected_version, now, operation) -> ScheduleResponse:
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        tx.snapshot = replace(tx.snapshot, schedule=operation(tx.snapshot.schedule))
    return schedule_response(tx.snapshot.schedule, now)


# ============================================================================
# Timer Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/schedule", response_model=ScheduleResponse)
def get_schedule(tournament_id: int, session: Session = Depends(get_session), clock=Depends(get_clock)):
    snapshot = load_snapshot(session, tournament_id)
    return schedule_response(snapshot.schedule, clock())


@router.post("/tournaments/{tournament_id}/schedule/start", response_model=ScheduleResponse)
def start_schedule(
    tournament_id: int,
    data: StartMatchdayRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    """Start (or restart) the current matchday's countdown."""
    now = clock()
    return _update_schedule(
        session,
        tournament_id,
        expected_version,
        now,
        lambda s: start_matchday(
            s, data.duration_hours if data.duration_hours is not None else s.matchday_duration_hours, now
        ),
    )


@router.post("/tournaments/{tournament_id}/schedule/pause", response_model=ScheduleResponse)
def pause_schedule(
    tournament_id: int,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    return _update_schedule(session, tournament_id, expected_version, clock(), pause_matchday)


@router.post("/tournaments/{tournament_id}/schedule/matchday", response_model=ScheduleResponse)
def set_matchday(
    tournament_id: int,
    data: SetMatchdayRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    """Jump to a matchday (values below 1 are clamped to 1). The timer is untouched."""
    return _update_schedule(
        session, tournament_id, expected_version, clock(), lambda s: set_current_matchday(s, data.matchday)
    )


@router.post("/tournaments/{tournament_id}/schedule/advance", response_model=ScheduleResponse)
def advance_schedule(
    tournament_id: int,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    return _update_schedule(session, tournament_id, expected_version, clock(), advance_matchday)


@router.post("/tournaments/{tournament_id}/schedule/auto-process", response_model=ScheduleResponse)
def toggle_auto_process(
    tournament_id: int,
    data: AutoProcessRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    return _update_schedule(
        session, tournament_id, expected_version, clock(), lambda s: set_auto_process(s, data.enabled)
    )


# ============================================================================
# Walkover Endpoints
# ============================================================================


@router.post("/tournaments/{tournament_id}/schedule/check-timeouts", response_model=WalkoverResponse)
def check_timeouts(
    tournament_id: int,
    data: CheckTimeoutsRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    """
    Award 3-0 walkovers on the current matchday to the side that was active
    when its opponent was not. With force=false nothing happens until the
    deadline has passed.
    """
    return _run_walkover_check(session, tournament_id, clock(), data.force, data.signals, expected_version)


@router.post("/tournaments/{tournament_id}/schedule/tick", response_model=WalkoverResponse)
def tick(
    tournament_id: int,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    """
    Periodic hook: runs the walkover check only when auto-processing is
    enabled and the matchday deadline has passed.
    """
    now = clock()
    snapshot = load_snapshot(session, tournament_id)
    settings = snapshot.schedule
    if not settings.auto_process_enabled or not is_expired(settings, now):
        reason = "auto-processing is disabled" if not settings.auto_process_enabled else "the matchday is still open"
        logger.debug("Tick on tournament %s skipped: %s", tournament_id, reason)
        return WalkoverResponse(
            processed_count=0,
            message=f"Nothing to process: {reason}.",
            resolved_match_ids=[],
            ambiguous_match_ids=[],
            deadline_passed=is_expired(settings, now),
            schedule=schedule_response(settings, now),
            state_version=snapshot.state_version,
        )
    return _run_walkover_check(session, tournament_id, now, False, None, None)
