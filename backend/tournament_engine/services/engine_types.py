"""
Engine Types: immutable records shared by every engine component.

All engine operations take these frozen dataclasses and return new ones;
nothing here knows about sessions or tables (see state_store for the mapping).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

MATCH_SCHEDULED = "scheduled"
MATCH_LIVE = "live"
MATCH_FINISHED = "finished"
MATCH_STATUSES = (MATCH_SCHEDULED, MATCH_LIVE, MATCH_FINISHED)

LEG_SINGLE = "single"
LEG_DOUBLE = "double"
LEG_MODES = (LEG_SINGLE, LEG_DOUBLE)

TOURNAMENT_MODES = ("league", "wakacl", "two_leagues")

SIDE_A = "A"
SIDE_B = "B"


class KnockoutRound(str, Enum):
    ROUND_OF_16 = "Round of 16"
    QUARTER_FINALS = "Quarter-finals"
    SEMI_FINALS = "Semi-finals"
    FINAL = "Final"

    @classmethod
    def ordered(cls) -> List["KnockoutRound"]:
        return [cls.ROUND_OF_16, cls.QUARTER_FINALS, cls.SEMI_FINALS, cls.FINAL]


@dataclass(frozen=True)
class TeamRecord:
    id: int
    name: str
    logo_url: Optional[str] = None
    group_name: Optional[str] = None
    manager: Optional[str] = None


@dataclass(frozen=True)
class GroupMatch:
    id: str
    group_name: str
    team_a_id: int
    team_b_id: int
    matchday: int
    leg: int = 1
    status: str = MATCH_SCHEDULED
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    proof_url: Optional[str] = None
    is_walkover: bool = False

    @property
    def is_finished(self) -> bool:
        return self.status == MATCH_FINISHED


# ----------------------------------------------------------------------------
# Knockout slot: exactly one of Team / Placeholder / Empty
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class TeamSlot:
    team_id: int

    def label(self, teams: Optional[Dict[int, TeamRecord]] = None) -> str:
        if teams and self.team_id in teams:
            return teams[self.team_id].name
        return f"Team {self.team_id}"


@dataclass(frozen=True)
class PlaceholderSlot:
    text: str

    def label(self, teams: Optional[Dict[int, TeamRecord]] = None) -> str:
        return self.text


@dataclass(frozen=True)
class EmptySlot:
    def label(self, teams: Optional[Dict[int, TeamRecord]] = None) -> str:
        return "TBD"


KnockoutSlot = Union[TeamSlot, PlaceholderSlot, EmptySlot]


def slot_from_inputs(team_id: Optional[int], placeholder: Optional[str]) -> KnockoutSlot:
    """Build a slot from the two form inputs. A team id wins; blank text is TBD."""
    if team_id is not None:
        return TeamSlot(team_id=team_id)
    text = (placeholder or "").strip()
    if text:
        return PlaceholderSlot(text=text)
    return EmptySlot()


def slot_team_id(slot: KnockoutSlot) -> Optional[int]:
    return slot.team_id if isinstance(slot, TeamSlot) else None


@dataclass(frozen=True)
class KnockoutMatch:
    id: str
    round: KnockoutRound
    match_order: int
    slot_a: KnockoutSlot = field(default_factory=EmptySlot)
    slot_b: KnockoutSlot = field(default_factory=EmptySlot)
    score_a1: Optional[int] = None
    score_b1: Optional[int] = None
    score_a2: Optional[int] = None
    score_b2: Optional[int] = None
    winner_team_id: Optional[int] = None

    @property
    def team_a_id(self) -> Optional[int]:
        return slot_team_id(self.slot_a)

    @property
    def team_b_id(self) -> Optional[int]:
        return slot_team_id(self.slot_b)

    def aggregate(self) -> Tuple[int, int]:
        """Sum of both legs; missing legs count as zero."""
        return (
            (self.score_a1 or 0) + (self.score_a2 or 0),
            (self.score_b1 or 0) + (self.score_b2 or 0),
        )


KnockoutStageRounds = Dict[KnockoutRound, Tuple[KnockoutMatch, ...]]


def empty_rounds() -> KnockoutStageRounds:
    return {r: () for r in KnockoutRound.ordered()}


@dataclass(frozen=True)
class FinalOutcome:
    champion_id: int
    runner_up_id: Optional[int]


@dataclass(frozen=True)
class ScheduleSettings:
    is_active: bool = False
    current_matchday: int = 1
    matchday_start_time: Optional[datetime] = None
    matchday_duration_hours: float = 24.0
    auto_process_enabled: bool = False


def initial_schedule(duration_hours: float = 24.0) -> ScheduleSettings:
    return ScheduleSettings(matchday_duration_hours=duration_hours)


@dataclass(frozen=True)
class SeasonHistory:
    season_id: str
    season_name: str
    champion: TeamRecord
    completed_at: datetime
    mode: str
    runner_up: Optional[TeamRecord] = None


@dataclass(frozen=True)
class ActivitySignal:
    """Whether each side's representative was active since the matchday started."""

    side_a: bool = False
    side_b: bool = False


@dataclass(frozen=True)
class CommentActivity:
    """Minimal view of a match-discussion comment used to derive activity."""

    match_id: str
    team_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class TournamentSnapshot:
    tournament_id: int
    name: str
    mode: str
    default_leg_mode: str = LEG_DOUBLE
    teams: Dict[int, TeamRecord] = field(default_factory=dict)
    matches: Tuple[GroupMatch, ...] = ()
    knockout: KnockoutStageRounds = field(default_factory=empty_rounds)
    schedule: ScheduleSettings = field(default_factory=ScheduleSettings)
    history: Tuple[SeasonHistory, ...] = ()
    state_version: int = 0

    def groups(self) -> Dict[str, List[int]]:
        """Roster grouped by group_name (teams without a group are left out)."""
        grouped: Dict[str, List[int]] = {}
        for team in sorted(self.teams.values(), key=lambda t: t.id):
            if team.group_name:
                grouped.setdefault(team.group_name, []).append(team.id)
        return grouped
