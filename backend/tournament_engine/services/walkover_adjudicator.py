"""
Walkover Adjudicator

Resolves stalled matches of the current matchday once the deadline has
passed (or when an admin forces the check): if exactly one side showed
activity since the matchday started, that side wins 3-0 by walkover.
Both-active / neither-active matches are ambiguous and left for a human.

Stateless with respect to time and idempotent: finished matches are skipped,
so re-running with the same inputs changes nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from tournament_engine.services.engine_types import (
    MATCH_FINISHED,
    ActivitySignal,
    CommentActivity,
    GroupMatch,
    ScheduleSettings,
)
from tournament_engine.services.matchday_scheduler import is_expired

logger = logging.getLogger(__name__)

WALKOVER_SCORE: Tuple[int, int] = (3, 0)


@dataclass
class WalkoverReport:
    processed_count: int
    summary: str
    resolved_match_ids: List[str] = field(default_factory=list)
    ambiguous_match_ids: List[str] = field(default_factory=list)
    deadline_passed: bool = False


def _apply_walkover(match: GroupMatch, signal: ActivitySignal) -> GroupMatch:
    win, lose = WALKOVER_SCORE
    if signal.side_a:
        score_a, score_b = win, lose
    else:
        score_a, score_b = lose, win
    return replace(
        match,
        status=MATCH_FINISHED,
        score_a=score_a,
        score_b=score_b,
        is_walkover=True,
    )


def check_and_resolve_timeouts(
    settings: ScheduleSettings,
    active_matches: Sequence[GroupMatch],
    activity_signals: Mapping[str, ActivitySignal],
    now: datetime,
    force: bool = False,
) -> Tuple[List[GroupMatch], WalkoverReport]:
    """
    Returns (matches, report). `matches` mirrors `active_matches` in order
    with walkovers applied; the report never signals an error, zero
    resolutions is a normal outcome.
    """
    matches = list(active_matches)
    deadline_passed = is_expired(settings, now)

    if not (deadline_passed or force):
        return matches, WalkoverReport(
            processed_count=0,
            summary=f"Matchday {settings.current_matchday} is still open; no walkovers applied.",
            deadline_passed=False,
        )

    resolved: List[str] = []
    ambiguous: List[str] = []
    for idx, match in enumerate(matches):
        if match.matchday != settings.current_matchday or match.status == MATCH_FINISHED:
            continue
        signal = activity_signals.get(match.id, ActivitySignal())
        if signal.side_a == signal.side_b:
            ambiguous.append(match.id)
            continue
        matches[idx] = _apply_walkover(match, signal)
        resolved.append(match.id)

    if resolved:
        summary = f"{len(resolved)} match(es) on matchday {settings.current_matchday} decided by walkover (3-0)."
    else:
        summary = f"No walkovers applied on matchday {settings.current_matchday}."
    if ambiguous:
        summary += f" {len(ambiguous)} match(es) need manual review."

    logger.info(
        "Walkover check (force=%s, expired=%s): resolved=%d ambiguous=%d",
        force,
        deadline_passed,
        len(resolved),
        len(ambiguous),
    )
    return matches, WalkoverReport(
        processed_count=len(resolved),
        summary=summary,
        resolved_match_ids=resolved,
        ambiguous_match_ids=ambiguous,
        deadline_passed=deadline_passed,
    )


def activity_from_comments(
    matches: Iterable[GroupMatch],
    comments: Iterable[CommentActivity],
    since: Optional[datetime],
) -> Dict[str, ActivitySignal]:
    """
    A side is active when someone from that team commented in the match
    discussion at or after `since` (the matchday start). Comments without a
    team, or before `since`, do not count. With no `since` (timer paused)
    no side is active.
    """
    if since is None:
        return {match.id: ActivitySignal() for match in matches}

    by_match: Dict[str, List[CommentActivity]] = {}
    for comment in comments:
        if comment.team_id is None:
            continue
        if comment.created_at < since:
            continue
        by_match.setdefault(comment.match_id, []).append(comment)

    signals: Dict[str, ActivitySignal] = {}
    for match in matches:
        posted = {c.team_id for c in by_match.get(match.id, [])}
        signals[match.id] = ActivitySignal(
            side_a=match.team_a_id in posted,
            side_b=match.team_b_id in posted,
        )
    return signals
