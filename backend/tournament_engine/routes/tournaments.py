"""
Tournament & Roster API Routes
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from tournament_engine.config import DEFAULT_MATCHDAY_HOURS
from tournament_engine.database import get_clock, get_session
from tournament_engine.models.schedule_settings import ScheduleSettingsRecord
from tournament_engine.models.tournament import Tournament
from tournament_engine.services.engine_types import TOURNAMENT_MODES
from tournament_engine.services.fixture_generator import normalize_leg_mode
from tournament_engine.services.roster import remove_team, update_team
from tournament_engine.services.state_store import load_snapshot, tournament_transaction
from tournament_engine.utils.serializers import (
    TeamResponse,
    TournamentStateResponse,
    state_response,
    team_response,
)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TournamentCreate(BaseModel):
    name: str
    mode: str = "league"
    default_leg_mode: str = "double"
    matchday_duration_hours: Optional[float] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("mode")
    @classmethod
    def known_mode(cls, v: str) -> str:
        if v not in TOURNAMENT_MODES:
            raise ValueError(f"mode must be one of {', '.join(TOURNAMENT_MODES)}")
        return v


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    mode: Optional[str] = None
    default_leg_mode: Optional[str] = None

    @field_validator("mode")
    @classmethod
    def known_mode(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in TOURNAMENT_MODES:
            raise ValueError(f"mode must be one of {', '.join(TOURNAMENT_MODES)}")
        return v


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    mode: str
    default_leg_mode: str
    state_version: int
    created_at: datetime


class TeamCreateRequest(BaseModel):
    name: str
    logo_url: Optional[str] = None
    group_name: Optional[str] = None
    manager: Optional[str] = None


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = None
    logo_url: Optional[str] = None
    group_name: Optional[str] = None
    manager: Optional[str] = None


# ============================================================================
# Tournament Endpoints
# ============================================================================


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a tournament together with its (paused) matchday timer."""
    leg_mode = normalize_leg_mode(data.default_leg_mode)
    duration = data.matchday_duration_hours or DEFAULT_MATCHDAY_HOURS
    if duration <= 0:
        raise HTTPException(status_code=422, detail="matchday_duration_hours must be positive")

    tournament = Tournament(name=data.name, mode=data.mode, default_leg_mode=leg_mode)
    session.add(tournament)
    session.flush()
    session.add(ScheduleSettingsRecord(tournament_id=tournament.id, matchday_duration_hours=duration))
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(
    tournament_id: int,
    data: TournamentUpdate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Rename the tournament or change its mode / default leg mode."""
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        changes = {}
        if data.name is not None and data.name.strip():
            changes["name"] = data.name.strip()
        if data.mode is not None:
            changes["mode"] = data.mode
        if data.default_leg_mode is not None:
            changes["default_leg_mode"] = normalize_leg_mode(data.default_leg_mode)
        tx.snapshot = replace(tx.snapshot, **changes)

    tournament = session.get(Tournament, tournament_id)
    return tournament


@router.get("/tournaments/{tournament_id}/state", response_model=TournamentStateResponse)
def get_tournament_state(
    tournament_id: int,
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    """
    Full state read: roster, fixtures, bracket, timer (with remaining seconds)
    and history, plus the state_version to pass back as expected_version.
    """
    snapshot = load_snapshot(session, tournament_id)
    return state_response(snapshot, clock())


# ============================================================================
# Roster Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def list_teams(tournament_id: int, group: Optional[str] = None, session: Session = Depends(get_session)):
    snapshot = load_snapshot(session, tournament_id)
    teams = sorted(snapshot.teams.values(), key=lambda t: t.id)
    if group is not None:
        teams = [t for t in teams if t.group_name == group]
    return [team_response(t) for t in teams]


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(
    tournament_id: int,
    data: TeamCreateRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        team = tx.add_team(data.name, logo_url=data.logo_url, group_name=data.group_name, manager=data.manager)
    return team_response(team)


@router.patch("/tournaments/{tournament_id}/teams/{team_id}", response_model=TeamResponse)
def edit_team(
    tournament_id: int,
    team_id: int,
    data: TeamUpdateRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Edit a team; an empty string clears logo, group or manager."""
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        tx.snapshot = update_team(
            tx.snapshot,
            team_id,
            name=data.name,
            logo_url=data.logo_url,
            group_name=data.group_name,
            manager=data.manager,
        )
    return team_response(tx.snapshot.teams[team_id])


@router.delete("/tournaments/{tournament_id}/teams/{team_id}", status_code=204)
def delete_team(
    tournament_id: int,
    team_id: int,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        tx.snapshot = remove_team(tx.snapshot, team_id)
