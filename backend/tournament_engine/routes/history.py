"""
Season History API Routes
"""

import logging
from dataclasses import replace
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlmodel import Session

from tournament_engine.database import get_clock, get_session
from tournament_engine.services.knockout_bracket import final_outcome
from tournament_engine.services.season_archiver import archive_season, delete_history_entry
from tournament_engine.services.state_store import load_snapshot, tournament_transaction
from tournament_engine.utils.serializers import SeasonHistoryResponse, season_response

logger = logging.getLogger(__name__)

router = APIRouter()


class ArchiveSeasonRequest(BaseModel):
    season_name: Optional[str] = None  # Blank: "Season <year>"
    # Omitted: taken from the decided Final, if there is one
    champion_id: Optional[int] = None
    runner_up_id: Optional[int] = None
    retain_roster: bool = True


class ArchiveSeasonResponse(BaseModel):
    entry: SeasonHistoryResponse
    teams_remaining: int
    state_version: int


@router.post("/tournaments/{tournament_id}/history/archive", response_model=ArchiveSeasonResponse, status_code=201)
def archive_current_season(
    tournament_id: int,
    data: ArchiveSeasonRequest,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
    clock=Depends(get_clock),
):
    """
    Record the season result and reset fixtures, bracket and timer in one
    commit. retain_roster=false also clears every team.
    """
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        champion_id, runner_up_id = data.champion_id, data.runner_up_id
        if champion_id is None:
            outcome = final_outcome(tx.snapshot.knockout)
            if outcome is not None:
                champion_id = outcome.champion_id
                if runner_up_id is None:
                    runner_up_id = outcome.runner_up_id
                logger.info("Champion taken from the Final: %s", champion_id)

        result = archive_season(
            tx.snapshot,
            data.season_name or "",
            champion_id,
            runner_up_id=runner_up_id,
            retain_roster=data.retain_roster,
            now=clock(),
        )
        tx.snapshot = result.snapshot

    return ArchiveSeasonResponse(
        entry=season_response(result.entry),
        teams_remaining=len(tx.snapshot.teams),
        state_version=tx.snapshot.state_version,
    )


@router.get("/tournaments/{tournament_id}/history", response_model=List[SeasonHistoryResponse])
def list_history(tournament_id: int, session: Session = Depends(get_session)):
    snapshot = load_snapshot(session, tournament_id)
    return [season_response(h) for h in reversed(snapshot.history)]


@router.delete("/tournaments/{tournament_id}/history/{season_id}", status_code=204)
def delete_history(
    tournament_id: int,
    season_id: str,
    expected_version: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    with tournament_transaction(session, tournament_id, expected_version) as tx:
        tx.snapshot = replace(tx.snapshot, history=delete_history_entry(tx.snapshot.history, season_id))
