"""
Season Archiver: record the season outcome, then reset the tournament.

Works on a whole TournamentSnapshot and returns the history entry together
with the already-reset snapshot, so the caller persists both in a single
transaction (partial archival is never observable).
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from tournament_engine.services.engine_types import SeasonHistory, TournamentSnapshot, empty_rounds
from tournament_engine.services.errors import DuplicateTeamSlots, MissingChampion, SeasonNotFound, TeamNotFound
from tournament_engine.services.matchday_scheduler import reset_schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveResult:
    entry: SeasonHistory
    snapshot: TournamentSnapshot


def archive_season(
    snapshot: TournamentSnapshot,
    season_name: str,
    champion_id: Optional[int],
    runner_up_id: Optional[int] = None,
    retain_roster: bool = True,
    now: Optional[datetime] = None,
) -> ArchiveResult:
    """
    Raises:
        MissingChampion: no champion supplied
        TeamNotFound: champion or runner-up not in the roster
        DuplicateTeamSlots: runner-up is the champion
    """
    if champion_id is None:
        raise MissingChampion("A champion is required to archive the season")
    if champion_id not in snapshot.teams:
        raise TeamNotFound(f"Champion team {champion_id} is not in the roster")
    if runner_up_id is not None:
        if runner_up_id not in snapshot.teams:
            raise TeamNotFound(f"Runner-up team {runner_up_id} is not in the roster")
        if runner_up_id == champion_id:
            raise DuplicateTeamSlots("Champion and runner-up must be different teams")

    completed_at = now or datetime.now(timezone.utc)
    name = (season_name or "").strip() or f"Season {completed_at.year}"

    entry = SeasonHistory(
        season_id=f"s-{uuid.uuid4().hex[:16]}",
        season_name=name,
        champion=snapshot.teams[champion_id],
        runner_up=snapshot.teams[runner_up_id] if runner_up_id is not None else None,
        completed_at=completed_at,
        mode=snapshot.mode,
    )

    reset = replace(
        snapshot,
        teams=dict(snapshot.teams) if retain_roster else {},
        matches=(),
        knockout=empty_rounds(),
        schedule=reset_schedule(snapshot.schedule),
        history=snapshot.history + (entry,),
    )

    logger.info(
        "Archived '%s' (champion=%s, runner_up=%s, retain_roster=%s): cleared %d matches",
        name,
        champion_id,
        runner_up_id,
        retain_roster,
        len(snapshot.matches),
    )
    return ArchiveResult(entry=entry, snapshot=reset)


def delete_history_entry(history: Sequence[SeasonHistory], season_id: str) -> Tuple[SeasonHistory, ...]:
    remaining = tuple(h for h in history if h.season_id != season_id)
    if len(remaining) == len(history):
        raise SeasonNotFound(f"Season {season_id} not found in history")
    return remaining
