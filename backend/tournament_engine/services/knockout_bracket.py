"""
Knockout Bracket Manager

A flexible container of knockout rounds. Each match has two slots that are
a team, a free-text placeholder ("Winner QF1") or TBD. Bracket shape is not
enforced and winners are never pushed into later rounds automatically:
propagate_winner is the explicit, per-match admin action for that.

All functions take the current rounds mapping and return a new one.
"""

import logging
import uuid
from dataclasses import replace
from typing import Mapping, Optional, Tuple

from tournament_engine.services.engine_types import (
    SIDE_A,
    SIDE_B,
    EmptySlot,
    FinalOutcome,
    KnockoutMatch,
    KnockoutRound,
    KnockoutSlot,
    KnockoutStageRounds,
    TeamRecord,
    TeamSlot,
    empty_rounds,
    slot_from_inputs,
    slot_team_id,
)
from tournament_engine.services.errors import DuplicateTeamSlots, MatchNotFound, TeamNotFound

logger = logging.getLogger(__name__)


def _normalize(rounds: Optional[Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]]]) -> KnockoutStageRounds:
    """Copy into a fresh mapping holding every round, matches sorted by order."""
    result = empty_rounds()
    if rounds:
        for round_tag, matches in rounds.items():
            result[KnockoutRound(round_tag)] = tuple(sorted(matches, key=lambda m: (m.match_order, m.id)))
    return result


def find_knockout_match(rounds: Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]], match_id: str) -> KnockoutMatch:
    for matches in rounds.values():
        for match in matches:
            if match.id == match_id:
                return match
    raise MatchNotFound(f"Knockout match {match_id} not found")


def _replace_match(rounds: KnockoutStageRounds, updated: KnockoutMatch) -> KnockoutStageRounds:
    result = _normalize(
        {tag: tuple(m for m in matches if m.id != updated.id) for tag, matches in rounds.items()}
    )
    result[updated.round] = tuple(
        sorted(result[updated.round] + (updated,), key=lambda m: (m.match_order, m.id))
    )
    return result


def _check_slots(
    slot_a: KnockoutSlot,
    slot_b: KnockoutSlot,
    teams: Optional[Mapping[int, TeamRecord]],
) -> None:
    a_id, b_id = slot_team_id(slot_a), slot_team_id(slot_b)
    if a_id is not None and a_id == b_id:
        raise DuplicateTeamSlots(f"Both slots resolve to team {a_id}")
    if teams is not None:
        for team_id in (a_id, b_id):
            if team_id is not None and team_id not in teams:
                raise TeamNotFound(f"Team {team_id} is not in the roster")


def add_knockout_match(
    rounds: Optional[Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]]],
    round_tag: KnockoutRound,
    team_a_id: Optional[int] = None,
    team_b_id: Optional[int] = None,
    placeholder_a: Optional[str] = None,
    placeholder_b: Optional[str] = None,
    match_order: Optional[int] = None,
    teams: Optional[Mapping[int, TeamRecord]] = None,
) -> Tuple[KnockoutStageRounds, KnockoutMatch]:
    """
    Add a match to a round. Each slot takes a team id or a placeholder;
    when both are given the team wins and the placeholder is dropped.
    match_order defaults to the next position in the round.
    """
    current = _normalize(rounds)
    round_tag = KnockoutRound(round_tag)
    slot_a = slot_from_inputs(team_a_id, placeholder_a)
    slot_b = slot_from_inputs(team_b_id, placeholder_b)
    _check_slots(slot_a, slot_b, teams)

    order = match_order if match_order is not None else len(current[round_tag]) + 1
    match = KnockoutMatch(
        id=f"km-{uuid.uuid4().hex[:16]}",
        round=round_tag,
        match_order=order,
        slot_a=slot_a,
        slot_b=slot_b,
    )
    logger.info("Added knockout match %s to %s (order %d)", match.id, round_tag.value, order)
    return _replace_match(current, match), match


def _rewrite_slot(
    current: KnockoutSlot,
    team_id: Optional[int],
    placeholder: Optional[str],
) -> KnockoutSlot:
    if team_id is None and placeholder is None:
        return current
    return slot_from_inputs(team_id, placeholder)


def update_knockout_match(
    rounds: Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]],
    match_id: str,
    team_a_id: Optional[int] = None,
    team_b_id: Optional[int] = None,
    placeholder_a: Optional[str] = None,
    placeholder_b: Optional[str] = None,
    match_order: Optional[int] = None,
    teams: Optional[Mapping[int, TeamRecord]] = None,
) -> Tuple[KnockoutStageRounds, KnockoutMatch]:
    """
    Edit slots, match order, or both.

    A slot is rewritten only when its team id or placeholder is passed
    (an empty placeholder string resets it to TBD). If a rewrite changes who
    plays, the recorded winner and leg scores are cleared. Placeholder text
    is stored as-is and never checked against earlier rounds.
    """
    current = _normalize(rounds)
    match = find_knockout_match(current, match_id)

    slot_a = _rewrite_slot(match.slot_a, team_a_id, placeholder_a)
    slot_b = _rewrite_slot(match.slot_b, team_b_id, placeholder_b)
    _check_slots(slot_a, slot_b, teams)

    updated = replace(
        match,
        slot_a=slot_a,
        slot_b=slot_b,
        match_order=match_order if match_order is not None else match.match_order,
    )
    if (slot_team_id(slot_a), slot_team_id(slot_b)) != (match.team_a_id, match.team_b_id):
        updated = replace(
            updated,
            score_a1=None,
            score_b1=None,
            score_a2=None,
            score_b2=None,
            winner_team_id=None,
        )
    return _replace_match(current, updated), updated


def delete_knockout_match(
    rounds: Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]],
    match_id: str,
) -> KnockoutStageRounds:
    current = _normalize(rounds)
    match = find_knockout_match(current, match_id)
    current[match.round] = tuple(m for m in current[match.round] if m.id != match_id)
    logger.info("Deleted knockout match %s from %s", match_id, match.round.value)
    return current


def record_knockout_scores(
    rounds: Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]],
    match_id: str,
    score_a1: Optional[int] = None,
    score_b1: Optional[int] = None,
    score_a2: Optional[int] = None,
    score_b2: Optional[int] = None,
) -> Tuple[KnockoutStageRounds, KnockoutMatch]:
    """Store leg scores. The winner is still decided explicitly via record_knockout_winner."""
    for score in (score_a1, score_b1, score_a2, score_b2):
        if score is not None and score < 0:
            raise ValueError("Scores must be non-negative")

    current = _normalize(rounds)
    match = find_knockout_match(current, match_id)
    updated = replace(
        match,
        score_a1=score_a1,
        score_b1=score_b1,
        score_a2=score_a2,
        score_b2=score_b2,
    )
    return _replace_match(current, updated), updated


def record_knockout_winner(
    rounds: Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]],
    match_id: str,
    winning_team_id: int,
) -> Tuple[KnockoutStageRounds, KnockoutMatch, Optional[FinalOutcome]]:
    """
    Record the winner of a knockout match. The winner must occupy one of
    the two team slots. For the Final the champion/runner-up pair is
    returned as well (runner-up is None when the other slot is not a team).
    """
    current = _normalize(rounds)
    match = find_knockout_match(current, match_id)
    if winning_team_id not in (match.team_a_id, match.team_b_id):
        raise ValueError(f"Team {winning_team_id} is not a participant of knockout match {match_id}")

    updated = replace(match, winner_team_id=winning_team_id)
    result = _replace_match(current, updated)

    outcome = None
    if updated.round == KnockoutRound.FINAL:
        outcome = _outcome_of(updated)
        logger.info(
            "Final decided: champion %s, runner-up %s", outcome.champion_id, outcome.runner_up_id
        )
    return result, updated, outcome


def _outcome_of(final_match: KnockoutMatch) -> FinalOutcome:
    winner = final_match.winner_team_id
    other = final_match.team_b_id if winner == final_match.team_a_id else final_match.team_a_id
    return FinalOutcome(champion_id=winner, runner_up_id=other)


def final_outcome(rounds: Optional[Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]]]) -> Optional[FinalOutcome]:
    """Champion/runner-up from the first Final match, once its winner is set."""
    finals = _normalize(rounds)[KnockoutRound.FINAL]
    if not finals or finals[0].winner_team_id is None:
        return None
    return _outcome_of(finals[0])


def propagate_winner(
    rounds: Mapping[KnockoutRound, Tuple[KnockoutMatch, ...]],
    source_match_id: str,
    target_match_id: str,
    side: str,
) -> Tuple[KnockoutStageRounds, KnockoutMatch]:
    """Copy a decided match's winner into one slot of another match."""
    side = (side or "").upper()
    if side not in (SIDE_A, SIDE_B):
        raise ValueError(f"side must be '{SIDE_A}' or '{SIDE_B}', got '{side}'")

    current = _normalize(rounds)
    source = find_knockout_match(current, source_match_id)
    if source.winner_team_id is None:
        raise ValueError(f"Knockout match {source_match_id} has no winner yet")

    target = find_knockout_match(current, target_match_id)
    if side == SIDE_A:
        return update_knockout_match(current, target.id, team_a_id=source.winner_team_id)
    return update_knockout_match(current, target.id, team_b_id=source.winner_team_id)


def clear_bracket() -> KnockoutStageRounds:
    return empty_rounds()


def slot_summary(slot: KnockoutSlot) -> dict:
    """Flat form used by API responses: exactly one of team_id / placeholder set, or neither."""
    if isinstance(slot, TeamSlot):
        return {"kind": "team", "team_id": slot.team_id, "placeholder": None}
    if isinstance(slot, EmptySlot):
        return {"kind": "empty", "team_id": None, "placeholder": None}
    return {"kind": "placeholder", "team_id": None, "placeholder": slot.text}
