"""
Fixture Generator: group-stage round robin (circle method).

Every unordered pair inside a group meets once (single) or twice with
home/away reversed (double). Within a matchday no team appears twice.
Double mode appends the mirrored rounds after the first leg, so a group of
n teams spans R matchdays (single) or 2R (double), where R = n-1 for even n
and R = n for odd n (one bye per round).

Generation is destructive for the affected groups: callers replace the old
fixtures wholesale (replace_group_fixtures) and must confirm before committing.
"""

import logging
import uuid
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from tournament_engine.services.engine_types import (
    LEG_DOUBLE,
    LEG_MODES,
    LEG_SINGLE,
    MATCH_FINISHED,
    MATCH_LIVE,
    MATCH_SCHEDULED,
    GroupMatch,
    TeamRecord,
)
from tournament_engine.services.errors import (
    DuplicateTeamSlots,
    InsufficientTeams,
    InvalidLegMode,
    MatchNotFound,
    TeamNotFound,
)

logger = logging.getLogger(__name__)

BYE = -1


def normalize_leg_mode(leg_mode: str) -> str:
    mode = (leg_mode or "").strip().lower()
    if mode not in LEG_MODES:
        raise InvalidLegMode(f"Unknown leg mode '{leg_mode}'; expected one of {', '.join(LEG_MODES)}")
    return mode


def round_robin_rounds(team_count: int) -> List[List[Tuple[int, int]]]:
    """
    Circle-method rounds for positions 0..team_count-1.

    Returns one list per round of (home_idx, away_idx) pairs. Odd counts are
    padded with a BYE position whose pairings are dropped. Position 0 stays
    fixed; the rest rotate one step per round (last moves to second).
    The fixed position alternates home/away so no side hosts every round.
    """
    if team_count < 2:
        return []

    positions = list(range(team_count))
    if team_count % 2 == 1:
        positions.append(BYE)
    n2 = len(positions)
    half = n2 // 2

    rounds: List[List[Tuple[int, int]]] = []
    for round_idx in range(n2 - 1):
        pairs: List[Tuple[int, int]] = []
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == BYE or b == BYE:
                continue
            if i == 0 and round_idx % 2 == 1:
                a, b = b, a
            pairs.append((a, b))
        rounds.append(pairs)
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return rounds


def _validate_groups(
    groups: Mapping[str, Sequence[int]],
    teams: Optional[Mapping[int, TeamRecord]],
) -> None:
    if not groups:
        raise InsufficientTeams("No groups supplied; at least one group with 2 teams is required")

    seen: Dict[int, str] = {}
    for group_name, team_ids in groups.items():
        if len(team_ids) < 2:
            raise InsufficientTeams(
                f"Group {group_name} has {len(team_ids)} team(s); at least 2 are required"
            )
        for team_id in team_ids:
            if teams is not None and team_id not in teams:
                raise TeamNotFound(f"Team {team_id} in group {group_name} is not in the roster")
            if team_id in seen:
                raise DuplicateTeamSlots(
                    f"Team {team_id} appears more than once (groups {seen[team_id]} and {group_name})"
                )
            seen[team_id] = group_name


def _new_match_id() -> str:
    return f"m-{uuid.uuid4().hex[:16]}"


def build_group_fixtures(group_name: str, team_ids: Sequence[int], leg_mode: str) -> List[GroupMatch]:
    """Fixtures for a single, already validated group."""
    rounds = round_robin_rounds(len(team_ids))
    first_leg_days = len(rounds)

    matches: List[GroupMatch] = []
    for round_idx, pairs in enumerate(rounds):
        for home_idx, away_idx in pairs:
            matches.append(
                GroupMatch(
                    id=_new_match_id(),
                    group_name=group_name,
                    team_a_id=team_ids[home_idx],
                    team_b_id=team_ids[away_idx],
                    matchday=round_idx + 1,
                    leg=1,
                )
            )

    if leg_mode == LEG_DOUBLE:
        for round_idx, pairs in enumerate(rounds):
            for home_idx, away_idx in pairs:
                matches.append(
                    GroupMatch(
                        id=_new_match_id(),
                        group_name=group_name,
                        team_a_id=team_ids[away_idx],
                        team_b_id=team_ids[home_idx],
                        matchday=first_leg_days + round_idx + 1,
                        leg=2,
                    )
                )
    return matches


def generate_fixtures(
    groups: Mapping[str, Sequence[int]],
    leg_mode: str = LEG_SINGLE,
    teams: Optional[Mapping[int, TeamRecord]] = None,
) -> List[GroupMatch]:
    """
    Produce the full schedule for the given groups.

    All groups are validated before any match is built, so a bad group
    never yields a partial fixture list.

    Raises:
        InvalidLegMode: leg_mode is not single/double
        InsufficientTeams: a group has fewer than 2 teams (or no groups given)
        TeamNotFound: a team id is missing from the supplied roster
        DuplicateTeamSlots: a team is listed twice
    """
    mode = normalize_leg_mode(leg_mode)
    _validate_groups(groups, teams)

    matches: List[GroupMatch] = []
    for group_name in sorted(groups):
        matches.extend(build_group_fixtures(group_name, list(groups[group_name]), mode))

    logger.info(
        "Generated %d %s-leg fixtures for groups %s",
        len(matches),
        mode,
        ", ".join(sorted(groups)),
    )
    return matches


def replace_group_fixtures(
    existing: Iterable[GroupMatch],
    groups: Mapping[str, Sequence[int]],
    leg_mode: str = LEG_SINGLE,
    teams: Optional[Mapping[int, TeamRecord]] = None,
) -> List[GroupMatch]:
    """
    Discard the affected groups' fixtures and scores; keep every other group.

    Raises:
        DuplicateTeamSlots: a regenerated team still plays in a kept group
    """
    generated = generate_fixtures(groups, leg_mode, teams)
    existing = list(existing)
    kept = [m for m in existing if m.group_name not in groups]

    kept_groups: Dict[int, str] = {}
    for m in kept:
        kept_groups.setdefault(m.team_a_id, m.group_name)
        kept_groups.setdefault(m.team_b_id, m.group_name)
    for group_name in sorted(groups):
        for team_id in groups[group_name]:
            if team_id in kept_groups:
                raise DuplicateTeamSlots(
                    f"Team {team_id} already has fixtures in group {kept_groups[team_id]}; "
                    f"regenerate that group too"
                )

    discarded = len(existing) - len(kept)
    if discarded:
        logger.warning("Discarding %d existing fixtures for regenerated groups", discarded)
    return kept + generated


def total_matchdays(matches: Iterable[GroupMatch]) -> int:
    return max((m.matchday for m in matches), default=0)


# ============================================================================
# Group match edits
# ============================================================================


def _index_of(matches: Sequence[GroupMatch], match_id: str) -> int:
    for idx, match in enumerate(matches):
        if match.id == match_id:
            return idx
    raise MatchNotFound(f"Match {match_id} not found")


def update_match_teams(
    matches: Sequence[GroupMatch],
    match_id: str,
    team_a_id: int,
    team_b_id: int,
    teams: Optional[Mapping[int, TeamRecord]] = None,
) -> Tuple[List[GroupMatch], GroupMatch]:
    """
    Reassign the two teams of a match. The match always returns to
    'scheduled' with cleared scores, whatever it held before.
    """
    if team_a_id == team_b_id:
        raise DuplicateTeamSlots("A team cannot play against itself")
    if teams is not None:
        for team_id in (team_a_id, team_b_id):
            if team_id not in teams:
                raise TeamNotFound(f"Team {team_id} is not in the roster")

    idx = _index_of(matches, match_id)
    updated = replace(
        matches[idx],
        team_a_id=team_a_id,
        team_b_id=team_b_id,
        status=MATCH_SCHEDULED,
        score_a=None,
        score_b=None,
        proof_url=None,
        is_walkover=False,
    )
    result = list(matches)
    result[idx] = updated
    return result, updated


def record_match_score(
    matches: Sequence[GroupMatch],
    match_id: str,
    score_a: int,
    score_b: int,
    proof_url: Optional[str] = None,
) -> Tuple[List[GroupMatch], GroupMatch]:
    if score_a < 0 or score_b < 0:
        raise ValueError("Scores must be non-negative")

    idx = _index_of(matches, match_id)
    current = matches[idx]
    updated = replace(
        current,
        status=MATCH_FINISHED,
        score_a=score_a,
        score_b=score_b,
        proof_url=proof_url if proof_url is not None else current.proof_url,
        is_walkover=False,
    )
    result = list(matches)
    result[idx] = updated
    return result, updated


def set_match_live(matches: Sequence[GroupMatch], match_id: str) -> Tuple[List[GroupMatch], GroupMatch]:
    idx = _index_of(matches, match_id)
    current = matches[idx]
    if current.status == MATCH_FINISHED:
        return list(matches), current
    updated = replace(current, status=MATCH_LIVE)
    result = list(matches)
    result[idx] = updated
    return result, updated
