"""
Fixture API Routes

Group-stage generation (preview first, then a confirmed destructive commit)
and per-match edits: reassign teams, record scores, mark live.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlmodel import Session

from tournament_engine.database import get_session
from tournament_engine.services.engine_types import TournamentSnapshot
from tournament_engine.services.fixture_generator import (
    normalize_leg_mode,
    record_match_score,
    replace_group_fixtures,
    set_match_live,
    total_matchdays,
    update_match_teams,
)
from tournament_engine.services.state_store import load_snapshot, tournament_transaction
from tournament_engine.utils.serializers import GroupMatchResponse, match_response

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class GenerateFixturesRequest(BaseModel):
    # Group name -> team ids. Omitted: use the roster's group assignment.
    groups: Optional[Dict[str, List[int]]] = None
    leg_mode: Optional[str] = None  # Defaults to the tournament's default_leg_mode
    confirm: bool = False


class FixturesResponse(BaseModel):
    leg_mode: str
    groups: Dict[str, List[int]]
    matches: List[GroupMatchResponse]
    total_matchdays: int
    discarded_count: int
    committed: bool
    state_version: int


class MatchTeamsUpdate(BaseModel):
    team_a_id: int
    team_b_id: int


class MatchScoreUpdate(BaseModel):
    score_a: int
    score_b: int
    proof_url: Optional[str] = None


# ============================================================================
# Helpers
# ============================================================================


def _plan(snapshot: TournamentSnapshot, data: GenerateFixturesRequest):
    groups = data.groups if data.groups is not None else snapshot.groups()
    leg_mode = normalize_leg_mode(data.leg_mode or snapshot.default_leg_mode)
    matches = replace_group_fixtures(snapshot.matches, groups, leg_mode, snapshot.teams)
    discarded = sum(1 for m in snapshot.matches if m.group_name in groups)
    return groups, leg_mode, matches, discarded


def _fixtures_response(groups, leg_mode, matches, discarded, committed, state_version) -> FixturesResponse:
    return FixturesResponse(
        leg_mode=leg_mode,
        groups={name: list(ids) for name, ids in groups.items()},
        matches=[match_response(m) for m in matches],
        total_matchdays=total_matchdays(matches),
        discarded_count=discarded,
        committed=committed,
        state_version=state_version,
    )


# ============================================================================
# Generation Endpoints
# ============================================================================


@router.post("/tournaments/{tournament_id}/fixtures/preview", response_model=FixturesResponse)
def preview_fixtures(
    tournament_id: int,
    data: GenerateFixturesRequest,
    session: Session = Depends(get_session),
):
    """
    Show what generation would produce without writing anything.

    discarded_count tells the caller how many existing fixtures (and their
    scores) would be lost if they go ahead.
    """
    snapshot = load_snapshot(session, tournament_id)
    groups, leg_mode, matches, discarded = _plan(snapshot, data)
    return _fixtures_response(groups, leg_mode, matches, discarded, False, snapshot.state_version)


@router.post("/tournaments/{tournament_id}/fixtures", response_model=FixturesResponse)
def generate_fixtures(
    tournament_id: int,
    data: GenerateFixturesRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """
    Regenerate fixtures for the given groups, replacing their existing
    matches and scores. Requires confirm=true.
    """
    if not data.confirm:
        raise HTTPException(
            status_code=400,
            detail="CONFIRMATION_REQUIRED: generating fixtures discards existing matches; resend with confirm=true",
        )

    with tournament_transaction(session, tournament_id, expected_version) as tx:
        groups, leg_mode, matches, discarded = _plan(tx.snapshot, data)
        tx.snapshot = replace(tx.snapshot, matches=tuple(matches))

    return _fixtures_response(groups, leg_mode, matches, discarded, True, tx.snapshot.state_version)


# ============================================================================
# Match Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/matches", response_model=List[GroupMatchResponse])
def list_matches(
    tournament_id: int,
    matchday: Optional[int] = None,
    group: Optional[str] = None,
    session: Session = Depends(get_session),
):
    snapshot = load_snapshot(session, tournament_id)
    matches = snapshot.matches
    if matchday is not None:
        matches = [m for m in matches if m.matchday == matchday]
    if group is not None:
        matches = [m for m in matches if m.group_name == group]
    return [match_response(m) for m in matches]


@router.patch("/tournaments/{tournament_id}/matches/{match_id}/teams", response_model=GroupMatchResponse)
def edit_match_teams(
    tournament_id: int,
    match_id: str,
    data: MatchTeamsUpdate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Swap the teams of a match; the match goes back to scheduled with no score."""
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        matches, updated = update_match_teams(
            tx.snapshot.matches, match_id, data.team_a_id, data.team_b_id, tx.snapshot.teams
        )
        tx.snapshot = replace(tx.snapshot, matches=tuple(matches))
    return match_response(updated)


@router.post("/tournaments/{tournament_id}/matches/{match_id}/score", response_model=GroupMatchResponse)
def record_score(
    tournament_id: int,
    match_id: str,
    data: MatchScoreUpdate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        matches, updated = record_match_score(
            tx.snapshot.matches, match_id, data.score_a, data.score_b, data.proof_url
        )
        tx.snapshot = replace(tx.snapshot, matches=tuple(matches))
    logger.info("Match %s finished %d-%d", match_id, data.score_a, data.score_b)
    return match_response(updated)


@router.post("/tournaments/{tournament_id}/matches/{match_id}/live", response_model=GroupMatchResponse)
def mark_live(
    tournament_id: int,
    match_id: str,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        matches, updated = set_match_live(tx.snapshot.matches, match_id)
        tx.snapshot = replace(tx.snapshot, matches=tuple(matches))
    return match_response(updated)
