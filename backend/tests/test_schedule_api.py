"""Matchday timer and walkover endpoints."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def fixtures(client: TestClient, tournament_id: int, add_team):
    """Four teams in one group, single round robin: two matches per matchday."""
    for i in range(1, 5):
        add_team(f"Team {i}", "A")
    client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
    return client.get(f"/api/tournaments/{tournament_id}/matches", params={"matchday": 1}).json()


def _url(tournament_id, suffix):
    return f"/api/tournaments/{tournament_id}/schedule{suffix}"


class TestTimer:
    def test_start_reports_full_window(self, client: TestClient, tournament_id: int):
        resp = client.post(_url(tournament_id, "/start"), json={"duration_hours": 24})
        assert resp.status_code == 200
        data = resp.json()
        assert data["is_active"] is True
        assert data["remaining_seconds"] == pytest.approx(24 * 3600)
        assert data["is_expired"] is False

    def test_remaining_counts_down(self, client: TestClient, tournament_id: int, clock):
        client.post(_url(tournament_id, "/start"), json={"duration_hours": 2})
        clock.advance(minutes=30)
        data = client.get(_url(tournament_id, "")).json()
        assert data["remaining_seconds"] == pytest.approx(90 * 60)

    def test_pause_clears_remaining(self, client: TestClient, tournament_id: int):
        client.post(_url(tournament_id, "/start"), json={"duration_hours": 24})
        data = client.post(_url(tournament_id, "/pause")).json()
        assert data["is_active"] is False
        assert data["matchday_start_time"] is None
        assert data["remaining_seconds"] is None

    def test_start_uses_stored_duration(self, client: TestClient, tournament_id: int):
        data = client.post(_url(tournament_id, "/start"), json={}).json()
        assert data["matchday_duration_hours"] == 24.0

    def test_invalid_duration(self, client: TestClient, tournament_id: int):
        resp = client.post(_url(tournament_id, "/start"), json={"duration_hours": 0})
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_DURATION"

    def test_matchday_navigation(self, client: TestClient, tournament_id: int):
        assert client.post(_url(tournament_id, "/matchday"), json={"matchday": 3}).json()["current_matchday"] == 3
        assert client.post(_url(tournament_id, "/advance")).json()["current_matchday"] == 4
        assert client.post(_url(tournament_id, "/matchday"), json={"matchday": 0}).json()["current_matchday"] == 1

    def test_auto_process_toggle(self, client: TestClient, tournament_id: int):
        data = client.post(_url(tournament_id, "/auto-process"), json={"enabled": True}).json()
        assert data["auto_process_enabled"] is True


class TestWalkovers:
    def test_forced_check_with_explicit_signals(self, client: TestClient, tournament_id: int, fixtures):
        first, second = fixtures
        resp = client.post(
            _url(tournament_id, "/check-timeouts"),
            json={"force": True, "signals": {first["id"]: {"side_b": True}, second["id"]: {"side_a": True, "side_b": True}}},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["processed_count"] == 1
        assert data["resolved_match_ids"] == [first["id"]]
        assert data["ambiguous_match_ids"] == [second["id"]]

        matches = {m["id"]: m for m in client.get(f"/api/tournaments/{tournament_id}/matches").json()}
        assert (matches[first["id"]]["score_a"], matches[first["id"]]["score_b"]) == (0, 3)
        assert matches[first["id"]]["is_walkover"] is True
        assert matches[second["id"]]["status"] == "scheduled"

    def test_unforced_check_waits_for_deadline(self, client: TestClient, tournament_id: int, fixtures, clock):
        first, _ = fixtures
        client.post(_url(tournament_id, "/start"), json={"duration_hours": 24})
        signals = {first["id"]: {"side_a": True}}

        early = client.post(_url(tournament_id, "/check-timeouts"), json={"force": False, "signals": signals}).json()
        assert early["processed_count"] == 0
        assert early["deadline_passed"] is False

        clock.advance(hours=24)
        late = client.post(_url(tournament_id, "/check-timeouts"), json={"force": False, "signals": signals}).json()
        assert late["processed_count"] == 1
        assert late["deadline_passed"] is True

    def test_activity_from_comments(self, client: TestClient, tournament_id: int, fixtures, clock):
        first, _ = fixtures
        client.post(_url(tournament_id, "/start"), json={"duration_hours": 24})
        clock.advance(hours=1)
        resp = client.post(
            f"/api/tournaments/{tournament_id}/matches/{first['id']}/comments",
            json={"author": "Manager A", "body": "Siap main jam 8?", "team_id": first["team_a_id"]},
        )
        assert resp.status_code == 201

        data = client.post(_url(tournament_id, "/check-timeouts"), json={"force": True}).json()
        assert data["resolved_match_ids"] == [first["id"]]
        match = next(
            m for m in client.get(f"/api/tournaments/{tournament_id}/matches").json() if m["id"] == first["id"]
        )
        assert (match["score_a"], match["score_b"]) == (3, 0)

    def test_paused_check_ignores_earlier_comments(self, client: TestClient, tournament_id: int, fixtures, clock):
        first, _ = fixtures
        client.post(
            f"/api/tournaments/{tournament_id}/matches/{first['id']}/comments",
            json={"author": "Manager A", "body": "Halo", "team_id": first["team_a_id"]},
        )
        clock.advance(hours=1)
        client.post(_url(tournament_id, "/start"), json={"duration_hours": 24})
        client.post(_url(tournament_id, "/pause"))

        data = client.post(_url(tournament_id, "/check-timeouts"), json={"force": True}).json()
        assert data["processed_count"] == 0
        assert data["resolved_match_ids"] == []
        match = next(
            m for m in client.get(f"/api/tournaments/{tournament_id}/matches").json() if m["id"] == first["id"]
        )
        assert match["status"] == "scheduled"

    def test_repeat_check_is_idempotent(self, client: TestClient, tournament_id: int, fixtures):
        first, _ = fixtures
        body = {"force": True, "signals": {first["id"]: {"side_a": True}}}
        assert client.post(_url(tournament_id, "/check-timeouts"), json=body).json()["processed_count"] == 1
        before = client.get(f"/api/tournaments/{tournament_id}/state").json()

        again = client.post(_url(tournament_id, "/check-timeouts"), json=body).json()
        assert again["processed_count"] == 0
        after = client.get(f"/api/tournaments/{tournament_id}/state").json()
        assert after["matches"] == before["matches"]
        assert after["state_version"] == before["state_version"]

    def test_tick_respects_auto_process(self, client: TestClient, tournament_id: int, fixtures, clock):
        first, _ = fixtures
        client.post(_url(tournament_id, "/start"), json={"duration_hours": 1})
        clock.advance(minutes=10)
        client.post(
            f"/api/tournaments/{tournament_id}/matches/{first['id']}/comments",
            json={"author": "Manager B", "body": "Ready", "team_id": first["team_b_id"]},
        )
        clock.advance(hours=2)

        skipped = client.post(_url(tournament_id, "/tick")).json()
        assert skipped["processed_count"] == 0
        assert "disabled" in skipped["message"]

        client.post(_url(tournament_id, "/auto-process"), json={"enabled": True})
        done = client.post(_url(tournament_id, "/tick")).json()
        assert done["processed_count"] == 1
        assert done["resolved_match_ids"] == [first["id"]]


class TestComments:
    def test_comment_from_outsider_rejected(self, client: TestClient, tournament_id: int, fixtures):
        first, second = fixtures
        resp = client.post(
            f"/api/tournaments/{tournament_id}/matches/{first['id']}/comments",
            json={"author": "X", "body": "hi", "team_id": second["team_a_id"]},
        )
        assert resp.status_code == 404

    def test_list_comments(self, client: TestClient, tournament_id: int, fixtures):
        first, _ = fixtures
        client.post(
            f"/api/tournaments/{tournament_id}/matches/{first['id']}/comments", json={"author": "Admin", "body": "Jadwal?"}
        )
        comments = client.get(f"/api/tournaments/{tournament_id}/matches/{first['id']}/comments").json()
        assert [c["body"] for c in comments] == ["Jadwal?"]
        assert comments[0]["team_id"] is None
