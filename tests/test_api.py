from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from doubles_league.api import app, get_repository


@pytest.fixture
def client(repository):
    app.dependency_overrides[get_repository] = lambda: repository
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def tournament_id(client) -> str:
    response = client.post("/tournaments", json={"name": "Spring Doubles"})
    assert response.status_code == 201
    return response.json()["id"]


def _add_teams(client, tournament_id: str, *names: str) -> list:
    ids = []
    for name in names:
        response = client.post(f"/tournaments/{tournament_id}/teams", json={"name": name})
        assert response.status_code == 201
        ids.append(response.json()["id"])
    return ids


def test_create_and_fetch_tournament(client, tournament_id) -> None:
    response = client.get(f"/tournaments/{tournament_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["slug"] == "spring-doubles"
    assert body["is_active"] is True


def test_duplicate_name_conflicts(client, tournament_id) -> None:
    response = client.post("/tournaments", json={"name": "Spring Doubles"})

    assert response.status_code == 409


def test_invalid_date_range(client) -> None:
    response = client.post(
        "/tournaments",
        json={"name": "Backwards", "starts_on": "2024-02-01", "ends_on": "2024-01-01"},
    )

    assert response.status_code == 422


def test_unknown_tournament(client) -> None:
    assert client.get("/tournaments/missing").status_code == 404
    assert client.delete("/tournaments/missing").status_code == 404
    assert client.get("/standings/missing").status_code == 404


def test_generate_schedule(client, tournament_id) -> None:
    team_ids = _add_teams(client, tournament_id, "Aces", "Blocks", "Cuts")

    response = client.post(
        "/matches/bulk",
        json={
            "tournament_id": tournament_id,
            "start_date": "2024-01-01",
            "matches_per_day": {"1": 2, "3": 1},
        },
    )

    assert response.status_code == 201
    matches = response.json()
    assert len(matches) == 3
    assert {frozenset((m["team1_id"], m["team2_id"])) for m in matches} == {
        frozenset(pair)
        for pair in [
            (team_ids[0], team_ids[1]),
            (team_ids[0], team_ids[2]),
            (team_ids[1], team_ids[2]),
        ]
    }
    assert all(m["match_type"] == "ROUNDROBIN" for m in matches)
    assert [m["play_date"] for m in matches] == ["2024-01-01", "2024-01-01", "2024-01-03"]

    listed = client.get(f"/tournaments/{tournament_id}/matches").json()
    assert [m["id"] for m in listed] == [m["id"] for m in matches]


def test_regenerating_replaces_schedule(client, tournament_id) -> None:
    _add_teams(client, tournament_id, "Aces", "Blocks", "Cuts", "Drops")
    payload = {"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"6": 3}}

    first = client.post("/matches/bulk", json=payload).json()
    second = client.post("/matches/bulk", json=payload).json()

    listed = client.get(f"/tournaments/{tournament_id}/matches").json()
    assert len(listed) == 6
    assert {m["id"] for m in listed} == {m["id"] for m in second}
    assert not {m["id"] for m in first} & {m["id"] for m in listed}


def test_schedule_needs_two_teams(client, tournament_id) -> None:
    _add_teams(client, tournament_id, "Aces")

    response = client.post(
        "/matches/bulk",
        json={"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"1": 2}},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "InsufficientTeams"


def test_schedule_rejects_zero_capacity(client, tournament_id) -> None:
    _add_teams(client, tournament_id, "Aces", "Blocks")

    response = client.post(
        "/matches/bulk",
        json={"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"1": 0}},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ZeroCapacity"
    assert client.get(f"/tournaments/{tournament_id}/matches").json() == []


def test_schedule_rejects_negative_capacity(client, tournament_id) -> None:
    _add_teams(client, tournament_id, "Aces", "Blocks")

    response = client.post(
        "/matches/bulk",
        json={"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"1": -1, "2": 1}},
    )

    assert response.status_code == 422
    assert response.json()["error"] == "InvalidCapacity"


def test_results_feed_standings(client, tournament_id) -> None:
    aces, blocks = _add_teams(client, tournament_id, "Aces", "Blocks")
    (match,) = client.post(
        "/matches/bulk",
        json={"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"1": 1}},
    ).json()
    winner = match["team2_id"]

    response = client.put(
        "/matches/bulk",
        json=[{"id": match["id"], "team1_points": 15, "team2_points": 21, "winner_id": winner}],
    )
    assert response.status_code == 204

    standings = client.get(f"/standings/{tournament_id}").json()
    assert [row["team_id"] for row in standings] == [winner, match["team1_id"]]
    assert standings[0] == {
        "team_id": winner,
        "team_name": "Blocks" if winner == blocks else "Aces",
        "wins": 1,
        "losses": 0,
        "win_pct": 1.0,
        "points_for": 21,
        "points_against": 15,
        "point_diff": 6,
        "ranking_points": 3,
    }


def test_result_with_foreign_winner_is_rejected(client, tournament_id) -> None:
    _add_teams(client, tournament_id, "Aces", "Blocks")
    (match,) = client.post(
        "/matches/bulk",
        json={"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"1": 1}},
    ).json()

    response = client.put("/matches/bulk", json=[{"id": match["id"], "winner_id": "someone-else"}])

    assert response.status_code == 422


def test_update_tournament_finalizes(client, tournament_id) -> None:
    response = client.put(
        f"/tournaments/{tournament_id}",
        json={"is_active": False, "is_finalized": True, "ends_on": "2024-06-30"},
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["name"], body["slug"]) == ("Spring Doubles", "spring-doubles")
    assert (body["is_active"], body["is_finalized"], body["ends_on"]) == (False, True, "2024-06-30")
    assert [t["id"] for t in client.get("/tournaments", params={"is_finalized": True}).json()] == [tournament_id]


def test_update_tournament_errors(client, tournament_id) -> None:
    client.post("/tournaments", json={"name": "Autumn Doubles"})

    assert client.put("/tournaments/missing", json={"name": "Ghost"}).status_code == 404
    assert client.put(f"/tournaments/{tournament_id}", json={"name": "Autumn Doubles"}).status_code == 409
    response = client.put(
        f"/tournaments/{tournament_id}",
        json={"starts_on": "2024-02-01", "ends_on": "2024-01-01"},
    )
    assert response.status_code == 422


def test_team_lifecycle(client, tournament_id) -> None:
    (team_id,) = _add_teams(client, tournament_id, "Aces")

    assert client.get(f"/teams/{team_id}").json()["name"] == "Aces"

    response = client.put(f"/teams/{team_id}", json={"name": "Smashers"})
    assert response.status_code == 200
    assert response.json()["name"] == "Smashers"

    assert client.delete(f"/teams/{team_id}").status_code == 204
    assert client.get(f"/teams/{team_id}").status_code == 404
    assert client.put(f"/teams/{team_id}", json={"name": "Ghosts"}).status_code == 404
    assert client.delete(f"/teams/{team_id}").status_code == 404


def test_bulk_teams_replace_existing(client, tournament_id) -> None:
    _add_teams(client, tournament_id, "Aces", "Blocks")

    response = client.post(
        "/teams/bulk",
        json={"tournament_id": tournament_id, "teams": [{"name": "Lobs"}, {"name": "Volleys"}, {"name": "Spins"}]},
    )

    assert response.status_code == 201
    assert [t["name"] for t in response.json()] == ["Lobs", "Volleys", "Spins"]
    listed = client.get(f"/tournaments/{tournament_id}/teams").json()
    assert [t["name"] for t in listed] == ["Lobs", "Volleys", "Spins"]

    missing = client.post("/teams/bulk", json={"tournament_id": "missing", "teams": [{"name": "Lobs"}]})
    assert missing.status_code == 404


def test_match_lifecycle(client, tournament_id) -> None:
    aces, blocks = _add_teams(client, tournament_id, "Aces", "Blocks")

    created = client.post(
        "/matches",
        json={
            "tournament_id": tournament_id,
            "team1_id": aces,
            "team2_id": blocks,
            "play_date": "2024-03-02",
            "match_type": "FINAL",
        },
    )
    assert created.status_code == 201
    match = created.json()
    assert match["match_type"] == "FINAL"
    assert client.get(f"/matches/{match['id']}").json() == match

    response = client.put(
        f"/matches/{match['id']}",
        json={"team1_points": 21, "team2_points": 18, "winner_id": aces},
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["team1_points"], body["team2_points"], body["winner_id"]) == (21, 18, aces)
    assert (body["play_date"], body["match_type"]) == ("2024-03-02", "FINAL")

    cleared = client.put(f"/matches/{match['id']}", json={"winner_id": None}).json()
    assert cleared["winner_id"] is None
    assert cleared["team1_points"] == 21

    assert client.delete(f"/matches/{match['id']}").status_code == 204
    assert client.get(f"/matches/{match['id']}").status_code == 404
    assert client.put(f"/matches/{match['id']}", json={"team1_points": 1}).status_code == 404
    assert client.delete(f"/matches/{match['id']}").status_code == 404


def test_invalid_matches_are_rejected(client, tournament_id) -> None:
    (aces,) = _add_teams(client, tournament_id, "Aces")
    other_id = client.post("/tournaments", json={"name": "Autumn Doubles"}).json()["id"]
    (outsider,) = _add_teams(client, other_id, "Outsiders")
    base = {"tournament_id": tournament_id, "play_date": "2024-03-02"}

    same_team = client.post("/matches", json={**base, "team1_id": aces, "team2_id": aces})
    assert same_team.status_code == 422
    assert same_team.json()["error"] == "InvalidMatch"

    foreign = client.post("/matches", json={**base, "team1_id": aces, "team2_id": outsider})
    assert foreign.status_code == 422
    assert foreign.json()["error"] == "InvalidMatch"

    missing = client.post("/matches", json={**base, "tournament_id": "missing", "team1_id": aces, "team2_id": outsider})
    assert missing.status_code == 404


def test_list_matches_filters_by_type_and_team(client, tournament_id) -> None:
    aces, blocks, cuts = _add_teams(client, tournament_id, "Aces", "Blocks", "Cuts")
    client.post(
        "/matches/bulk",
        json={"tournament_id": tournament_id, "start_date": "2024-01-01", "matches_per_day": {"1": 3}},
    )
    base = {"tournament_id": tournament_id, "team1_id": aces, "team2_id": blocks}
    semi = client.post("/matches", json={**base, "play_date": "2024-02-03", "match_type": "SEMIFINAL"}).json()
    final = client.post("/matches", json={**base, "play_date": "2024-02-10", "match_type": "FINAL"}).json()

    default = client.get("/matches", params={"tournament_id": tournament_id}).json()
    assert len(default) == 3
    assert all(m["match_type"] == "ROUNDROBIN" for m in default)

    playoffs = client.get("/matches", params={"tournament_id": tournament_id, "type": "semifinal,FINAL"}).json()
    assert [m["id"] for m in playoffs] == [semi["id"], final["id"]]

    repeated = client.get("/matches", params=[("type", "SEMIFINAL"), ("type", "FINAL")]).json()
    assert [m["id"] for m in repeated] == [semi["id"], final["id"]]

    for_cuts = client.get("/matches", params={"team_id": cuts}).json()
    assert len(for_cuts) == 2
    assert all(cuts in (m["team1_id"], m["team2_id"]) for m in for_cuts)

    response = client.get("/matches", params={"type": "QUARTERFINAL"})
    assert response.status_code == 400
