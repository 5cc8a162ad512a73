"""
State Store: maps tournament tables to engine snapshots and back.

Every mutation goes through tournament_transaction():

    with tournament_transaction(session, tournament_id) as tx:
        tx.snapshot = some_engine_operation(tx.snapshot, ...)

The tournament row is locked, the snapshot loaded, and on exit the new
snapshot is diffed against the loaded one. Only changed rows are written
(each bumping its own version), Tournament.state_version is bumped once,
and the whole change commits in a single commit. Any exception inside the
block rolls everything back, so a failed operation leaves nothing behind.
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from sqlmodel import Session, select

from tournament_engine.models.knockout_match import KnockoutMatch as KnockoutMatchRow
from tournament_engine.models.match import Match
from tournament_engine.models.match_comment import MatchComment
from tournament_engine.models.schedule_settings import ScheduleSettingsRecord
from tournament_engine.models.season_history import SeasonHistoryRecord
from tournament_engine.models.team import Team
from tournament_engine.models.tournament import Tournament
from tournament_engine.services.engine_types import (
    CommentActivity,
    GroupMatch,
    KnockoutMatch,
    KnockoutRound,
    ScheduleSettings,
    SeasonHistory,
    TeamRecord,
    TournamentSnapshot,
    empty_rounds,
    slot_from_inputs,
)
from tournament_engine.services.errors import ConcurrentModification, TournamentNotFound
from tournament_engine.services.knockout_bracket import slot_summary
from tournament_engine.services.roster import check_team_name

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back naive; everything stored is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============================================================================
# Row -> record
# ============================================================================


def _team_record(row: Team) -> TeamRecord:
    return TeamRecord(
        id=row.id,
        name=row.name,
        logo_url=row.logo_url,
        group_name=row.group_name,
        manager=row.manager,
    )


def _group_match(row: Match) -> GroupMatch:
    return GroupMatch(
        id=row.id,
        group_name=row.group_name,
        team_a_id=row.team_a_id,
        team_b_id=row.team_b_id,
        matchday=row.matchday,
        leg=row.leg,
        status=row.status,
        score_a=row.score_a,
        score_b=row.score_b,
        proof_url=row.proof_url,
        is_walkover=row.is_walkover,
    )


def _knockout_match(row: KnockoutMatchRow) -> KnockoutMatch:
    return KnockoutMatch(
        id=row.id,
        round=KnockoutRound(row.round),
        match_order=row.match_order,
        slot_a=slot_from_inputs(row.team_a_id, row.placeholder_a),
        slot_b=slot_from_inputs(row.team_b_id, row.placeholder_b),
        score_a1=row.score_a1,
        score_b1=row.score_b1,
        score_a2=row.score_a2,
        score_b2=row.score_b2,
        winner_team_id=row.winner_team_id,
    )


def _schedule(row: Optional[ScheduleSettingsRecord]) -> ScheduleSettings:
    if row is None:
        return ScheduleSettings()
    return ScheduleSettings(
        is_active=row.is_active,
        current_matchday=row.current_matchday,
        matchday_start_time=_as_utc(row.matchday_start_time),
        matchday_duration_hours=row.matchday_duration_hours,
        auto_process_enabled=row.auto_process_enabled,
    )


def _season(row: SeasonHistoryRecord) -> SeasonHistory:
    runner_up = None
    if row.runner_up_team_id is not None:
        runner_up = TeamRecord(id=row.runner_up_team_id, name=row.runner_up_name, logo_url=row.runner_up_logo_url)
    return SeasonHistory(
        season_id=row.id,
        season_name=row.season_name,
        champion=TeamRecord(id=row.champion_team_id, name=row.champion_name, logo_url=row.champion_logo_url),
        runner_up=runner_up,
        completed_at=_as_utc(row.completed_at),
        mode=row.mode,
    )


def _schedule_row(session: Session, tournament_id: int) -> Optional[ScheduleSettingsRecord]:
    return session.exec(
        select(ScheduleSettingsRecord).where(ScheduleSettingsRecord.tournament_id == tournament_id)
    ).first()


def _build_snapshot(session: Session, tournament: Tournament) -> TournamentSnapshot:
    tid = tournament.id
    teams = session.exec(select(Team).where(Team.tournament_id == tid)).all()
    matches = session.exec(
        select(Match).where(Match.tournament_id == tid).order_by(Match.group_name, Match.matchday, Match.id)
    ).all()
    knockout_rows = session.exec(select(KnockoutMatchRow).where(KnockoutMatchRow.tournament_id == tid)).all()
    history = session.exec(
        select(SeasonHistoryRecord)
        .where(SeasonHistoryRecord.tournament_id == tid)
        .order_by(SeasonHistoryRecord.completed_at, SeasonHistoryRecord.id)
    ).all()

    knockout = empty_rounds()
    for row in knockout_rows:
        km = _knockout_match(row)
        knockout[km.round] = knockout[km.round] + (km,)
    for tag in knockout:
        knockout[tag] = tuple(sorted(knockout[tag], key=lambda m: (m.match_order, m.id)))

    return TournamentSnapshot(
        tournament_id=tid,
        name=tournament.name,
        mode=tournament.mode,
        default_leg_mode=tournament.default_leg_mode,
        teams={t.id: _team_record(t) for t in teams},
        matches=tuple(_group_match(m) for m in matches),
        knockout=knockout,
        schedule=_schedule(_schedule_row(session, tid)),
        history=tuple(_season(h) for h in history),
        state_version=tournament.state_version,
    )


def load_snapshot(session: Session, tournament_id: int) -> TournamentSnapshot:
    """Read-only snapshot of one tournament."""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise TournamentNotFound(f"Tournament {tournament_id} not found")
    return _build_snapshot(session, tournament)


def load_comment_activity(
    session: Session, tournament_id: int, since: Optional[datetime] = None
) -> List[CommentActivity]:
    query = select(MatchComment).where(MatchComment.tournament_id == tournament_id)
    if since is not None:
        # Filtered again in Python on the aware value
        query = query.where(MatchComment.created_at >= since.astimezone(timezone.utc))
    rows = session.exec(query.order_by(MatchComment.created_at)).all()
    return [
        CommentActivity(match_id=row.match_id, team_id=row.team_id, created_at=_as_utc(row.created_at))
        for row in rows
    ]


# ============================================================================
# Record -> row (diff and write)
# ============================================================================


def _apply_team(row: Team, record: TeamRecord) -> None:
    row.name = record.name
    row.logo_url = record.logo_url
    row.group_name = record.group_name
    row.manager = record.manager


def _apply_match(row: Match, record: GroupMatch) -> None:
    row.group_name = record.group_name
    row.team_a_id = record.team_a_id
    row.team_b_id = record.team_b_id
    row.matchday = record.matchday
    row.leg = record.leg
    row.status = record.status
    row.score_a = record.score_a
    row.score_b = record.score_b
    row.proof_url = record.proof_url
    row.is_walkover = record.is_walkover


def _apply_knockout(row: KnockoutMatchRow, record: KnockoutMatch) -> None:
    slot_a, slot_b = slot_summary(record.slot_a), slot_summary(record.slot_b)
    row.round = record.round.value
    row.match_order = record.match_order
    row.team_a_id = slot_a["team_id"]
    row.placeholder_a = slot_a["placeholder"]
    row.team_b_id = slot_b["team_id"]
    row.placeholder_b = slot_b["placeholder"]
    row.score_a1 = record.score_a1
    row.score_b1 = record.score_b1
    row.score_a2 = record.score_a2
    row.score_b2 = record.score_b2
    row.winner_team_id = record.winner_team_id


def _apply_schedule(row: ScheduleSettingsRecord, record: ScheduleSettings) -> None:
    row.is_active = record.is_active
    row.current_matchday = record.current_matchday
    row.matchday_start_time = _as_utc(record.matchday_start_time)
    row.matchday_duration_hours = record.matchday_duration_hours
    row.auto_process_enabled = record.auto_process_enabled


def _season_row(tournament_id: int, entry: SeasonHistory) -> SeasonHistoryRecord:
    runner_up = entry.runner_up
    return SeasonHistoryRecord(
        id=entry.season_id,
        tournament_id=tournament_id,
        season_name=entry.season_name,
        mode=entry.mode,
        champion_team_id=entry.champion.id,
        champion_name=entry.champion.name,
        champion_logo_url=entry.champion.logo_url,
        runner_up_team_id=runner_up.id if runner_up else None,
        runner_up_name=runner_up.name if runner_up else None,
        runner_up_logo_url=runner_up.logo_url if runner_up else None,
        completed_at=entry.completed_at,
    )


def _flat_knockout(snapshot: TournamentSnapshot) -> Dict[str, KnockoutMatch]:
    return {km.id: km for matches in snapshot.knockout.values() for km in matches}


def _write_changes(session: Session, tournament: Tournament, before: TournamentSnapshot, after: TournamentSnapshot) -> int:
    """
    Persist the difference between two snapshots. Returns the number of
    rows written. Deletes of dependent rows are flushed before teams go,
    and teams are flushed before rows that reference them are inserted.
    """
    tid = tournament.id
    written = 0

    if (before.name, before.mode, before.default_leg_mode) != (after.name, after.mode, after.default_leg_mode):
        tournament.name = after.name
        tournament.mode = after.mode
        tournament.default_leg_mode = after.default_leg_mode
        written += 1

    before_matches = {m.id: m for m in before.matches}
    after_matches = {m.id: m for m in after.matches}
    before_ko, after_ko = _flat_knockout(before), _flat_knockout(after)
    before_hist = {h.season_id: h for h in before.history}
    after_hist = {h.season_id: h for h in after.history}

    # 1. Deletes of rows that reference teams
    for match_id in before_matches.keys() - after_matches.keys():
        row = session.get(Match, match_id)
        if row:
            session.delete(row)
            written += 1
    for km_id in before_ko.keys() - after_ko.keys():
        row = session.get(KnockoutMatchRow, km_id)
        if row:
            session.delete(row)
            written += 1
    for season_id in before_hist.keys() - after_hist.keys():
        row = session.get(SeasonHistoryRecord, season_id)
        if row:
            session.delete(row)
            written += 1
    session.flush()

    # 2. Teams
    for team_id in before.teams.keys() - after.teams.keys():
        row = session.get(Team, team_id)
        if row:
            session.delete(row)
            written += 1
    for team_id, record in after.teams.items():
        previous = before.teams.get(team_id)
        if previous == record:
            continue
        row = session.get(Team, team_id) if previous is not None else None
        if row is None:
            row = Team(id=record.id, tournament_id=tid, name=record.name)
        else:
            row.version += 1
        _apply_team(row, record)
        session.add(row)
        written += 1
    session.flush()

    # 3. Matches, knockout, history
    for match_id, record in after_matches.items():
        if before_matches.get(match_id) == record:
            continue
        row = session.get(Match, match_id) if match_id in before_matches else None
        if row is None:
            row = Match(id=match_id, tournament_id=tid, group_name=record.group_name,
                        team_a_id=record.team_a_id, team_b_id=record.team_b_id, matchday=record.matchday)
        else:
            row.version += 1
        _apply_match(row, record)
        session.add(row)
        written += 1

    for km_id, record in after_ko.items():
        if before_ko.get(km_id) == record:
            continue
        row = session.get(KnockoutMatchRow, km_id) if km_id in before_ko else None
        if row is None:
            row = KnockoutMatchRow(id=km_id, tournament_id=tid, round=record.round.value)
        else:
            row.version += 1
        _apply_knockout(row, record)
        session.add(row)
        written += 1

    for season_id in after_hist.keys() - before_hist.keys():
        session.add(_season_row(tid, after_hist[season_id]))
        written += 1

    # 4. Schedule
    if before.schedule != after.schedule:
        row = _schedule_row(session, tid)
        if row is None:
            row = ScheduleSettingsRecord(tournament_id=tid)
        else:
            row.version += 1
        _apply_schedule(row, after.schedule)
        session.add(row)
        written += 1

    return written


class TournamentState:
    """Mutable holder yielded by tournament_transaction."""

    def __init__(self, session: Session, tournament: Tournament, snapshot: TournamentSnapshot):
        self.session = session
        self.tournament = tournament
        self.snapshot = snapshot
        self._baseline = snapshot
        self._inserted = 0

    def add_team(
        self,
        name: str,
        logo_url: Optional[str] = None,
        group_name: Optional[str] = None,
        manager: Optional[str] = None,
    ) -> TeamRecord:
        """Insert a team row right away so the new record carries its database id."""
        cleaned = check_team_name(self.snapshot.teams, name)
        row = Team(
            tournament_id=self.tournament.id,
            name=cleaned,
            logo_url=(logo_url or "").strip() or None,
            group_name=(group_name or "").strip() or None,
            manager=(manager or "").strip() or None,
        )
        self.session.add(row)
        self.session.flush()

        record = _team_record(row)
        self.snapshot = replace(self.snapshot, teams={**self.snapshot.teams, record.id: record})
        self._baseline = replace(self._baseline, teams={**self._baseline.teams, record.id: record})
        self._inserted += 1
        return record


@contextmanager
def tournament_transaction(
    session: Session,
    tournament_id: int,
    expected_version: Optional[int] = None,
) -> Iterator[TournamentState]:
    """
    Raises:
        TournamentNotFound: no such tournament
        ConcurrentModification: expected_version given and stale
    """
    try:
        tournament = session.get(Tournament, tournament_id, with_for_update=True)
        if not tournament:
            raise TournamentNotFound(f"Tournament {tournament_id} not found")
        if expected_version is not None and tournament.state_version != expected_version:
            logger.warning(
                "Stale write on tournament %s: expected version %s, current %s",
                tournament_id,
                expected_version,
                tournament.state_version,
            )
            raise ConcurrentModification(
                f"Tournament {tournament_id} is at version {tournament.state_version}, not {expected_version}"
            )

        state = TournamentState(session, tournament, _build_snapshot(session, tournament))
        yield state

        written = _write_changes(session, tournament, state._baseline, state.snapshot) + state._inserted
        if written:
            tournament.state_version += 1
            tournament.updated_at = datetime.now(timezone.utc)
            session.add(tournament)
        session.commit()
        logger.debug("Tournament %s: %d row(s) written, state_version=%d", tournament_id, written, tournament.state_version)
        state.snapshot = replace(state.snapshot, state_version=tournament.state_version)
    except Exception:
        session.rollback()
        raise
