"""Fixture generation (preview / confirm) and group match edits over HTTP."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def grouped(client: TestClient, tournament_id: int, add_team):
    """Four teams in group A, three in group B."""
    group_a = [add_team(f"A{i}", "A") for i in range(1, 5)]
    group_b = [add_team(f"B{i}", "B") for i in range(1, 4)]
    return group_a, group_b


def _matches(client, tournament_id, **params):
    return client.get(f"/api/tournaments/{tournament_id}/matches", params=params).json()


def test_preview_writes_nothing(client: TestClient, tournament_id: int, grouped):
    resp = client.post(f"/api/tournaments/{tournament_id}/fixtures/preview", json={})
    assert resp.status_code == 200
    data = resp.json()
    assert data["committed"] is False
    assert data["leg_mode"] == "single"
    assert len(data["matches"]) == 6 + 3
    assert data["total_matchdays"] == 3
    assert _matches(client, tournament_id) == []


def test_generate_requires_confirmation(client: TestClient, tournament_id: int, grouped):
    resp = client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": False})
    assert resp.status_code == 400
    assert "CONFIRMATION_REQUIRED" in resp.json()["detail"]
    assert _matches(client, tournament_id) == []


def test_generate_double_leg(client: TestClient, tournament_id: int, grouped):
    resp = client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True, "leg_mode": "double"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["committed"] is True
    assert len(data["matches"]) == 12 + 6
    assert data["total_matchdays"] == 6
    assert len(_matches(client, tournament_id)) == 18
    assert len(_matches(client, tournament_id, group="B", matchday=1)) == 1


def test_regenerate_discards_scores_of_that_group_only(client: TestClient, tournament_id: int, grouped):
    group_a, group_b = grouped
    client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
    b_match = _matches(client, tournament_id, group="B")[0]
    a_match = _matches(client, tournament_id, group="A")[0]
    client.post(f"/api/tournaments/{tournament_id}/matches/{b_match['id']}/score", json={"score_a": 1, "score_b": 0})
    client.post(f"/api/tournaments/{tournament_id}/matches/{a_match['id']}/score", json={"score_a": 2, "score_b": 2})

    preview = client.post(
        f"/api/tournaments/{tournament_id}/fixtures/preview", json={"groups": {"A": group_a}}
    ).json()
    assert preview["discarded_count"] == 6

    resp = client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"groups": {"A": group_a}, "confirm": True})
    assert resp.status_code == 200

    b_after = {m["id"]: m for m in _matches(client, tournament_id, group="B")}
    assert b_after[b_match["id"]]["status"] == "finished"
    assert all(m["status"] == "scheduled" for m in _matches(client, tournament_id, group="A"))


def test_group_of_one_fails_and_keeps_existing(client: TestClient, tournament_id: int, grouped):
    group_a, group_b = grouped
    client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
    before = _matches(client, tournament_id)
    version = client.get(f"/api/tournaments/{tournament_id}/state").json()["state_version"]

    resp = client.post(
        f"/api/tournaments/{tournament_id}/fixtures",
        json={"groups": {"A": group_a, "B": group_b[:1]}, "confirm": True},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "INSUFFICIENT_TEAMS"
    assert _matches(client, tournament_id) == before
    assert client.get(f"/api/tournaments/{tournament_id}/state").json()["state_version"] == version


def test_team_cannot_join_second_group(client: TestClient, tournament_id: int, grouped):
    group_a, group_b = grouped
    client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
    before = _matches(client, tournament_id)

    resp = client.post(
        f"/api/tournaments/{tournament_id}/fixtures",
        json={"groups": {"A": group_a + group_b[:1]}, "confirm": True},
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "DUPLICATE_TEAM_SLOTS"
    assert _matches(client, tournament_id) == before

def test_unknown_team_in_group(client: TestClient, tournament_id: int, grouped):
    resp = client.post(
        f"/api/tournaments/{tournament_id}/fixtures/preview", json={"groups": {"A": [grouped[0][0], 999]}}
    )
    assert resp.status_code == 404
    assert resp.json()["code"] == "TEAM_NOT_FOUND"


class TestMatchEdits:
    def test_score_then_edit_teams_resets(self, client: TestClient, tournament_id: int, grouped):
        group_a, _ = grouped
        client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
        match = _matches(client, tournament_id, group="A")[0]

        resp = client.post(
            f"/api/tournaments/{tournament_id}/matches/{match['id']}/score",
            json={"score_a": 3, "score_b": 1, "proof_url": "https://img/proof.png"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "finished"
        assert resp.json()["proof_url"] == "https://img/proof.png"

        others = [t for t in group_a if t not in (match["team_a_id"], match["team_b_id"])]
        resp = client.patch(
            f"/api/tournaments/{tournament_id}/matches/{match['id']}/teams",
            json={"team_a_id": others[0], "team_b_id": others[1]},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "scheduled"
        assert data["score_a"] is None and data["score_b"] is None

    def test_same_team_twice_rejected(self, client: TestClient, tournament_id: int, grouped):
        client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
        match = _matches(client, tournament_id)[0]
        resp = client.patch(
            f"/api/tournaments/{tournament_id}/matches/{match['id']}/teams",
            json={"team_a_id": match["team_a_id"], "team_b_id": match["team_a_id"]},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "DUPLICATE_TEAM_SLOTS"

    def test_negative_score_rejected(self, client: TestClient, tournament_id: int, grouped):
        client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
        match = _matches(client, tournament_id)[0]
        resp = client.post(
            f"/api/tournaments/{tournament_id}/matches/{match['id']}/score", json={"score_a": -1, "score_b": 0}
        )
        assert resp.status_code == 400

    def test_live(self, client: TestClient, tournament_id: int, grouped):
        client.post(f"/api/tournaments/{tournament_id}/fixtures", json={"confirm": True})
        match = _matches(client, tournament_id)[0]
        resp = client.post(f"/api/tournaments/{tournament_id}/matches/{match['id']}/live")
        assert resp.json()["status"] == "live"

    def test_unknown_match(self, client: TestClient, tournament_id: int):
        resp = client.post(f"/api/tournaments/{tournament_id}/matches/m-nope/live")
        assert resp.status_code == 404
        assert resp.json()["code"] == "MATCH_NOT_FOUND"
