"""
Tests for the group-stage round robin generator and group match edits.
"""

from collections import Counter
from itertools import combinations

import pytest

from tournament_engine.services.engine_types import (
    LEG_DOUBLE,
    LEG_SINGLE,
    MATCH_FINISHED,
    MATCH_LIVE,
    MATCH_SCHEDULED,
    TeamRecord,
)
from tournament_engine.services.errors import (
    DuplicateTeamSlots,
    InsufficientTeams,
    InvalidLegMode,
    MatchNotFound,
    TeamNotFound,
)
from tournament_engine.services.fixture_generator import (
    generate_fixtures,
    record_match_score,
    replace_group_fixtures,
    round_robin_rounds,
    set_match_live,
    total_matchdays,
    update_match_teams,
)


def _team_ids(n: int, start: int = 1) -> list[int]:
    return list(range(start, start + n))


def _roster(ids) -> dict[int, TeamRecord]:
    return {i: TeamRecord(id=i, name=f"Team {i}") for i in ids}


class TestRoundRobinRounds:
    def test_fewer_than_two_positions(self):
        assert round_robin_rounds(0) == []
        assert round_robin_rounds(1) == []

    def test_even_count_round_count(self):
        assert len(round_robin_rounds(6)) == 5

    def test_odd_count_uses_bye(self):
        rounds = round_robin_rounds(5)
        assert len(rounds) == 5
        # One team sits out each round
        assert all(len(pairs) == 2 for pairs in rounds)

    def test_every_pair_once(self):
        for n in range(2, 10):
            pairs = sorted(tuple(sorted(p)) for rnd in round_robin_rounds(n) for p in rnd)
            assert pairs == list(combinations(range(n), 2))


class TestSingleLeg:
    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8])
    def test_match_count_is_n_choose_2(self, n):
        matches = generate_fixtures({"A": _team_ids(n)}, LEG_SINGLE)
        assert len(matches) == n * (n - 1) // 2

        pairs = Counter(frozenset((m.team_a_id, m.team_b_id)) for m in matches)
        assert all(count == 1 for count in pairs.values())
        assert len(pairs) == n * (n - 1) // 2

    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 8, 9])
    def test_no_team_twice_on_a_matchday(self, n):
        for mode in (LEG_SINGLE, LEG_DOUBLE):
            matches = generate_fixtures({"A": _team_ids(n)}, mode)
            by_day: dict[int, list[int]] = {}
            for m in matches:
                by_day.setdefault(m.matchday, []).extend([m.team_a_id, m.team_b_id])
            for day, appearances in by_day.items():
                assert len(appearances) == len(set(appearances)), f"team repeated on matchday {day}"

    def test_matchday_count_even_and_odd(self):
        assert total_matchdays(generate_fixtures({"A": _team_ids(4)})) == 3
        assert total_matchdays(generate_fixtures({"A": _team_ids(5)})) == 5

    def test_new_matches_start_scheduled(self):
        matches = generate_fixtures({"A": _team_ids(4)})
        assert all(m.status == MATCH_SCHEDULED and m.score_a is None and m.score_b is None for m in matches)
        assert len({m.id for m in matches}) == len(matches)

    def test_groups_are_independent(self):
        matches = generate_fixtures({"A": _team_ids(4), "B": _team_ids(3, start=10)})
        group_a = [m for m in matches if m.group_name == "A"]
        group_b = [m for m in matches if m.group_name == "B"]
        assert len(group_a) == 6
        assert len(group_b) == 3
        assert all(m.team_a_id >= 10 and m.team_b_id >= 10 for m in group_b)


class TestDoubleLeg:
    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6])
    def test_double_is_twice_single_with_reversed_home(self, n):
        ids = _team_ids(n)
        matches = generate_fixtures({"A": ids}, LEG_DOUBLE)
        assert len(matches) == n * (n - 1)

        ordered = Counter((m.team_a_id, m.team_b_id) for m in matches)
        for a, b in combinations(ids, 2):
            assert ordered[(a, b)] == 1
            assert ordered[(b, a)] == 1

    def test_second_leg_follows_first(self):
        matches = generate_fixtures({"A": _team_ids(4)}, LEG_DOUBLE)
        first = [m for m in matches if m.leg == 1]
        second = [m for m in matches if m.leg == 2]
        assert max(m.matchday for m in first) == 3
        assert min(m.matchday for m in second) == 4
        assert total_matchdays(matches) == 6

    def test_leg_mode_is_case_insensitive(self):
        assert len(generate_fixtures({"A": _team_ids(3)}, "DOUBLE")) == 6


class TestValidation:
    def test_group_of_one_fails(self):
        with pytest.raises(InsufficientTeams):
            generate_fixtures({"A": [1]})

    def test_no_groups_fails(self):
        with pytest.raises(InsufficientTeams):
            generate_fixtures({})

    def test_unknown_leg_mode(self):
        with pytest.raises(InvalidLegMode):
            generate_fixtures({"A": _team_ids(4)}, "triple")

    def test_team_in_two_groups(self):
        with pytest.raises(DuplicateTeamSlots):
            generate_fixtures({"A": [1, 2], "B": [2, 3]})

    def test_team_missing_from_roster(self):
        with pytest.raises(TeamNotFound):
            generate_fixtures({"A": [1, 2, 99]}, teams=_roster([1, 2]))

    def test_bad_group_leaves_existing_fixtures_intact(self):
        existing = generate_fixtures({"A": _team_ids(4), "B": _team_ids(4, start=10)})
        before = list(existing)
        with pytest.raises(InsufficientTeams):
            replace_group_fixtures(existing, {"A": _team_ids(4), "B": [10]})
        assert existing == before


class TestReplaceGroupFixtures:
    def test_only_named_groups_are_regenerated(self):
        existing = generate_fixtures({"A": _team_ids(4), "B": _team_ids(4, start=10)})
        group_b_ids = {m.id for m in existing if m.group_name == "B"}

        result = replace_group_fixtures(existing, {"A": _team_ids(3)}, LEG_SINGLE)

        assert {m.id for m in result if m.group_name == "B"} == group_b_ids
        group_a = [m for m in result if m.group_name == "A"]
        assert len(group_a) == 3
        assert not {m.id for m in group_a} & {m.id for m in existing}

    def test_accepts_generator_input(self):
        existing = generate_fixtures({"A": _team_ids(4), "B": _team_ids(4, start=10)})
        result = replace_group_fixtures((m for m in existing), {"A": _team_ids(4)})
        assert len(result) == 12

    def test_team_moved_out_of_kept_group_rejected(self):
        existing = generate_fixtures({"A": [1, 2], "B": [3, 4]})
        with pytest.raises(DuplicateTeamSlots):
            replace_group_fixtures(existing, {"A": [1, 2, 3]})

    def test_moved_team_allowed_when_both_groups_regenerated(self):
        existing = generate_fixtures({"A": [1, 2], "B": [3, 4, 5]})
        result = replace_group_fixtures(existing, {"A": [1, 2, 3], "B": [4, 5]})
        groups_of_3 = {m.group_name for m in result if 3 in (m.team_a_id, m.team_b_id)}
        assert groups_of_3 == {"A"}


class TestMatchEdits:
    def test_team_edit_resets_finished_match(self):
        matches = generate_fixtures({"A": _team_ids(4)})
        target = matches[0]
        matches, _ = record_match_score(matches, target.id, 2, 1, proof_url="https://img/1.png")

        matches, updated = update_match_teams(matches, target.id, 3, 4)

        assert updated.status == MATCH_SCHEDULED
        assert (updated.team_a_id, updated.team_b_id) == (3, 4)
        assert updated.score_a is None and updated.score_b is None
        assert updated.proof_url is None
        assert [m for m in matches if m.id == target.id] == [updated]

    def test_team_cannot_play_itself(self):
        matches = generate_fixtures({"A": _team_ids(4)})
        with pytest.raises(DuplicateTeamSlots):
            update_match_teams(matches, matches[0].id, 2, 2)

    def test_team_edit_checks_roster(self):
        matches = generate_fixtures({"A": _team_ids(4)})
        with pytest.raises(TeamNotFound):
            update_match_teams(matches, matches[0].id, 1, 42, teams=_roster(_team_ids(4)))

    def test_unknown_match(self):
        with pytest.raises(MatchNotFound):
            update_match_teams([], "m-missing", 1, 2)

    def test_record_score_finishes_match(self):
        matches = generate_fixtures({"A": _team_ids(2)})
        _, updated = record_match_score(matches, matches[0].id, 0, 0)
        assert updated.status == MATCH_FINISHED
        assert (updated.score_a, updated.score_b) == (0, 0)

    def test_negative_score_rejected(self):
        matches = generate_fixtures({"A": _team_ids(2)})
        with pytest.raises(ValueError):
            record_match_score(matches, matches[0].id, -1, 2)

    def test_live_does_not_reopen_finished(self):
        matches = generate_fixtures({"A": _team_ids(2)})
        _, live = set_match_live(matches, matches[0].id)
        assert live.status == MATCH_LIVE

        finished, _ = record_match_score(matches, matches[0].id, 1, 0)
        _, still = set_match_live(finished, matches[0].id)
        assert still.status == MATCH_FINISHED
