"""
Knockout Stage API Routes
"""

from dataclasses import replace
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from tournament_engine.database import get_session
from tournament_engine.services.engine_types import KnockoutRound
from tournament_engine.services.knockout_bracket import (
    add_knockout_match,
    clear_bracket,
    delete_knockout_match,
    final_outcome,
    propagate_winner,
    record_knockout_scores,
    record_knockout_winner,
    update_knockout_match,
)
from tournament_engine.services.state_store import load_snapshot, tournament_transaction
from tournament_engine.utils.serializers import (
    KnockoutMatchResponse,
    knockout_response,
    knockout_rounds_response,
)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class KnockoutMatchCreate(BaseModel):
    round: KnockoutRound
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    placeholder_a: Optional[str] = None
    placeholder_b: Optional[str] = None
    match_order: Optional[int] = None


class KnockoutMatchUpdate(BaseModel):
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    placeholder_a: Optional[str] = None  # "" resets the slot to TBD
    placeholder_b: Optional[str] = None
    match_order: Optional[int] = None


class KnockoutScoresUpdate(BaseModel):
    score_a1: Optional[int] = None
    score_b1: Optional[int] = None
    score_a2: Optional[int] = None
    score_b2: Optional[int] = None


class KnockoutWinnerUpdate(BaseModel):
    winner_team_id: int


class PropagateRequest(BaseModel):
    target_match_id: str
    side: str  # "A" | "B"


class FinalOutcomeResponse(BaseModel):
    champion_id: int
    runner_up_id: Optional[int] = None


class KnockoutWinnerResponse(BaseModel):
    match: KnockoutMatchResponse
    final_outcome: Optional[FinalOutcomeResponse] = None


class KnockoutStageResponse(BaseModel):
    rounds: Dict[str, List[KnockoutMatchResponse]]
    final_outcome: Optional[FinalOutcomeResponse] = None
    state_version: int


def _outcome_response(outcome) -> Optional[FinalOutcomeResponse]:
    if outcome is None:
        return None
    return FinalOutcomeResponse(champion_id=outcome.champion_id, runner_up_id=outcome.runner_up_id)


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/knockout", response_model=KnockoutStageResponse)
def get_knockout_stage(tournament_id: int, session: Session = Depends(get_session)):
    snapshot = load_snapshot(session, tournament_id)
    return KnockoutStageResponse(
        rounds=knockout_rounds_response(snapshot),
        final_outcome=_outcome_response(final_outcome(snapshot.knockout)),
        state_version=snapshot.state_version,
    )


@router.post("/tournaments/{tournament_id}/knockout/initialize", response_model=KnockoutStageResponse)
def initialize_knockout_stage(
    tournament_id: int,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Reset the bracket to four empty rounds (Round of 16 through Final)."""
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        tx.snapshot = replace(tx.snapshot, knockout=clear_bracket())
    return KnockoutStageResponse(
        rounds=knockout_rounds_response(tx.snapshot),
        final_outcome=None,
        state_version=tx.snapshot.state_version,
    )


@router.post("/tournaments/{tournament_id}/knockout/matches", response_model=KnockoutMatchResponse, status_code=201)
def create_knockout_match(
    tournament_id: int,
    data: KnockoutMatchCreate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        rounds, match = add_knockout_match(
            tx.snapshot.knockout,
            data.round,
            team_a_id=data.team_a_id,
            team_b_id=data.team_b_id,
            placeholder_a=data.placeholder_a,
            placeholder_b=data.placeholder_b,
            match_order=data.match_order,
            teams=tx.snapshot.teams,
        )
        tx.snapshot = replace(tx.snapshot, knockout=rounds)
    return knockout_response(match, tx.snapshot.teams)


@router.patch("/tournaments/{tournament_id}/knockout/matches/{match_id}", response_model=KnockoutMatchResponse)
def edit_knockout_match(
    tournament_id: int,
    match_id: str,
    data: KnockoutMatchUpdate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        rounds, match = update_knockout_match(
            tx.snapshot.knockout,
            match_id,
            team_a_id=data.team_a_id,
            team_b_id=data.team_b_id,
            placeholder_a=data.placeholder_a,
            placeholder_b=data.placeholder_b,
            match_order=data.match_order,
            teams=tx.snapshot.teams,
        )
        tx.snapshot = replace(tx.snapshot, knockout=rounds)
    return knockout_response(match, tx.snapshot.teams)


@router.delete("/tournaments/{tournament_id}/knockout/matches/{match_id}", status_code=204)
def remove_knockout_match(
    tournament_id: int,
    match_id: str,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        tx.snapshot = replace(tx.snapshot, knockout=delete_knockout_match(tx.snapshot.knockout, match_id))


@router.post("/tournaments/{tournament_id}/knockout/matches/{match_id}/scores", response_model=KnockoutMatchResponse)
def update_knockout_scores(
    tournament_id: int,
    match_id: str,
    data: KnockoutScoresUpdate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        rounds, match = record_knockout_scores(
            tx.snapshot.knockout,
            match_id,
            score_a1=data.score_a1,
            score_b1=data.score_b1,
            score_a2=data.score_a2,
            score_b2=data.score_b2,
        )
        tx.snapshot = replace(tx.snapshot, knockout=rounds)
    return knockout_response(match, tx.snapshot.teams)


@router.post("/tournaments/{tournament_id}/knockout/matches/{match_id}/winner", response_model=KnockoutWinnerResponse)
def set_knockout_winner(
    tournament_id: int,
    match_id: str,
    data: KnockoutWinnerUpdate,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Record the winner; for the Final the response carries champion and runner-up."""
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        rounds, match, outcome = record_knockout_winner(tx.snapshot.knockout, match_id, data.winner_team_id)
        tx.snapshot = replace(tx.snapshot, knockout=rounds)
    return KnockoutWinnerResponse(
        match=knockout_response(match, tx.snapshot.teams),
        final_outcome=_outcome_response(outcome),
    )


@router.post("/tournaments/{tournament_id}/knockout/matches/{match_id}/propagate", response_model=KnockoutMatchResponse)
def propagate_knockout_winner(
    tournament_id: int,
    match_id: str,
    data: PropagateRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Place this match's winner into one slot of a later match."""
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        rounds, target = propagate_winner(tx.snapshot.knockout, match_id, data.target_match_id, data.side)
        tx.snapshot = replace(tx.snapshot, knockout=rounds)
    return knockout_response(target, tx.snapshot.teams)
