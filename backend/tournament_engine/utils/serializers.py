"""
Response models shared by the route modules, built from engine records.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from tournament_engine.services.engine_types import (
    GroupMatch,
    KnockoutMatch,
    KnockoutSlot,
    ScheduleSettings,
    SeasonHistory,
    TeamRecord,
    TournamentSnapshot,
)
from tournament_engine.services.fixture_generator import total_matchdays
from tournament_engine.services.knockout_bracket import slot_summary
from tournament_engine.services.matchday_scheduler import matchday_deadline, remaining_time


# ============================================================================
# Response Models
# ============================================================================


class TeamResponse(BaseModel):
    id: int
    name: str
    logo_url: Optional[str] = None
    group_name: Optional[str] = None
    manager: Optional[str] = None


class GroupMatchResponse(BaseModel):
    id: str
    group_name: str
    team_a_id: int
    team_b_id: int
    matchday: int
    leg: int
    status: str
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    proof_url: Optional[str] = None
    is_walkover: bool = False


class SlotResponse(BaseModel):
    kind: str  # "team" | "placeholder" | "empty"
    team_id: Optional[int] = None
    placeholder: Optional[str] = None
    label: str


class KnockoutMatchResponse(BaseModel):
    id: str
    round: str
    match_order: int
    slot_a: SlotResponse
    slot_b: SlotResponse
    score_a1: Optional[int] = None
    score_b1: Optional[int] = None
    score_a2: Optional[int] = None
    score_b2: Optional[int] = None
    aggregate_a: int = 0
    aggregate_b: int = 0
    winner_team_id: Optional[int] = None


class ScheduleResponse(BaseModel):
    is_active: bool
    current_matchday: int
    matchday_start_time: Optional[datetime] = None
    matchday_duration_hours: float
    auto_process_enabled: bool
    deadline: Optional[datetime] = None
    remaining_seconds: Optional[float] = None  # Negative once the deadline has passed
    is_expired: bool = False


class SeasonHistoryResponse(BaseModel):
    season_id: str
    season_name: str
    mode: str
    champion: TeamResponse
    runner_up: Optional[TeamResponse] = None
    completed_at: datetime


class TournamentStateResponse(BaseModel):
    id: int
    name: str
    mode: str
    default_leg_mode: str
    state_version: int
    teams: List[TeamResponse]
    matches: List[GroupMatchResponse]
    total_matchdays: int
    knockout: Dict[str, List[KnockoutMatchResponse]]
    schedule: ScheduleResponse
    history: List[SeasonHistoryResponse]


# ============================================================================
# Converters
# ============================================================================


def team_response(team: TeamRecord) -> TeamResponse:
    return TeamResponse(
        id=team.id,
        name=team.name,
        logo_url=team.logo_url,
        group_name=team.group_name,
        manager=team.manager,
    )


def match_response(match: GroupMatch) -> GroupMatchResponse:
    return GroupMatchResponse(
        id=match.id,
        group_name=match.group_name,
        team_a_id=match.team_a_id,
        team_b_id=match.team_b_id,
        matchday=match.matchday,
        leg=match.leg,
        status=match.status,
        score_a=match.score_a,
        score_b=match.score_b,
        proof_url=match.proof_url,
        is_walkover=match.is_walkover,
    )


def _slot_response(slot: KnockoutSlot, teams: Dict[int, TeamRecord]) -> SlotResponse:
    return SlotResponse(**slot_summary(slot), label=slot.label(teams))


def knockout_response(match: KnockoutMatch, teams: Dict[int, TeamRecord]) -> KnockoutMatchResponse:
    aggregate_a, aggregate_b = match.aggregate()
    return KnockoutMatchResponse(
        id=match.id,
        round=match.round.value,
        match_order=match.match_order,
        slot_a=_slot_response(match.slot_a, teams),
        slot_b=_slot_response(match.slot_b, teams),
        score_a1=match.score_a1,
        score_b1=match.score_b1,
        score_a2=match.score_a2,
        score_b2=match.score_b2,
        aggregate_a=aggregate_a,
        aggregate_b=aggregate_b,
        winner_team_id=match.winner_team_id,
    )


def knockout_rounds_response(snapshot: TournamentSnapshot) -> Dict[str, List[KnockoutMatchResponse]]:
    return {
        round_tag.value: [knockout_response(m, snapshot.teams) for m in matches]
        for round_tag, matches in snapshot.knockout.items()
    }


def schedule_response(settings: ScheduleSettings, now: datetime) -> ScheduleResponse:
    remaining = remaining_time(settings, now)
    return ScheduleResponse(
        is_active=settings.is_active,
        current_matchday=settings.current_matchday,
        matchday_start_time=settings.matchday_start_time,
        matchday_duration_hours=settings.matchday_duration_hours,
        auto_process_enabled=settings.auto_process_enabled,
        deadline=matchday_deadline(settings),
        remaining_seconds=remaining.total_seconds() if remaining is not None else None,
        is_expired=remaining is not None and remaining.total_seconds() <= 0,
    )


def season_response(entry: SeasonHistory) -> SeasonHistoryResponse:
    return SeasonHistoryResponse(
        season_id=entry.season_id,
        season_name=entry.season_name,
        mode=entry.mode,
        champion=team_response(entry.champion),
        runner_up=team_response(entry.runner_up) if entry.runner_up else None,
        completed_at=entry.completed_at,
    )


def state_response(snapshot: TournamentSnapshot, now: datetime) -> TournamentStateResponse:
    return TournamentStateResponse(
        id=snapshot.tournament_id,
        name=snapshot.name,
        mode=snapshot.mode,
        default_leg_mode=snapshot.default_leg_mode,
        state_version=snapshot.state_version,
        teams=[team_response(t) for t in sorted(snapshot.teams.values(), key=lambda t: t.id)],
        matches=[match_response(m) for m in snapshot.matches],
        total_matchdays=total_matchdays(snapshot.matches),
        knockout=knockout_rounds_response(snapshot),
        schedule=schedule_response(snapshot.schedule, now),
        history=[season_response(h) for h in snapshot.history],
    )
