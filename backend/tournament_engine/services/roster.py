"""
Roster edits on a tournament snapshot.

Teams referenced by a group match or a knockout slot cannot be removed;
clear or regenerate the fixtures first.
"""

import logging
from dataclasses import replace
from typing import Mapping, Optional

from tournament_engine.services.engine_types import TeamRecord, TournamentSnapshot
from tournament_engine.services.errors import DuplicateTeamName, TeamInUse, TeamNotFound

logger = logging.getLogger(__name__)


def check_team_name(teams: Mapping[int, TeamRecord], name: str, exclude_id: Optional[int] = None) -> str:
    """Return the trimmed name, rejecting blanks and case-insensitive duplicates."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Team name is required")
    for team in teams.values():
        if team.id != exclude_id and team.name.lower() == cleaned.lower():
            raise DuplicateTeamName(f"A team named '{cleaned}' already exists")
    return cleaned


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def team_is_referenced(snapshot: TournamentSnapshot, team_id: int) -> bool:
    for match in snapshot.matches:
        if team_id in (match.team_a_id, match.team_b_id):
            return True
    for matches in snapshot.knockout.values():
        for km in matches:
            if team_id in (km.team_a_id, km.team_b_id, km.winner_team_id):
                return True
    return False


def update_team(
    snapshot: TournamentSnapshot,
    team_id: int,
    name: Optional[str] = None,
    logo_url: Optional[str] = None,
    group_name: Optional[str] = None,
    manager: Optional[str] = None,
) -> TournamentSnapshot:
    """Fields left as None are unchanged; an empty string clears an optional field."""
    team = snapshot.teams.get(team_id)
    if team is None:
        raise TeamNotFound(f"Team {team_id} not found")

    updated = team
    if name is not None:
        updated = replace(updated, name=check_team_name(snapshot.teams, name, exclude_id=team_id))
    if logo_url is not None:
        updated = replace(updated, logo_url=_clean(logo_url))
    if group_name is not None:
        updated = replace(updated, group_name=_clean(group_name))
    if manager is not None:
        updated = replace(updated, manager=_clean(manager))

    teams = dict(snapshot.teams)
    teams[team_id] = updated
    return replace(snapshot, teams=teams)


def remove_team(snapshot: TournamentSnapshot, team_id: int) -> TournamentSnapshot:
    if team_id not in snapshot.teams:
        raise TeamNotFound(f"Team {team_id} not found")
    if team_is_referenced(snapshot, team_id):
        logger.warning("Refusing to remove team %s: still scheduled in fixtures or bracket", team_id)
        raise TeamInUse(f"Team {team_id} is still used by fixtures or the knockout bracket")

    teams = dict(snapshot.teams)
    del teams[team_id]
    return replace(snapshot, teams=teams)
