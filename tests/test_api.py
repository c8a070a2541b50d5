"""Tests for the HTTP adapter."""

import random

import pytest
from fastapi.testclient import TestClient

from tournaments import (
    ImageProvider,
    InMemoryTournamentRepository,
    RosterService,
    StaticImageProvider,
    TournamentManager,
)
from web.app import create_app

pytestmark = pytest.mark.integration


class FailingImageProvider(ImageProvider):
    async def fetch_images(self, contestant_id: int, name: str) -> list[str]:
        raise RuntimeError("image service down")


def _client(roster_size: int = 80, image_provider: ImageProvider | None = None):
    repository = InMemoryTournamentRepository()
    manager = TournamentManager(repository, random.Random(99))
    roster = RosterService(repository)
    roster.seed_roster([f"Contestant {i:03d}" for i in range(1, roster_size + 1)])
    app = create_app(manager, roster, image_provider)
    return TestClient(app), repository


@pytest.fixture
def client() -> TestClient:
    test_client, _ = _client(
        image_provider=StaticImageProvider({"1": ["https://img.example/1.jpg"]})
    )
    return test_client


def test_health(client) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"isAlive": True}


def test_current_match_starts_a_tournament(client) -> None:
    response = client.get("/api/current-match")

    assert response.status_code == 200
    data = response.json()
    assert data["round_name"] == "Round of 64"
    assert data["match_number"] == 1
    for side in (data["contestant1"], data["contestant2"]):
        expected = ["https://img.example/1.jpg"] if side["id"] == 1 else []
        assert side["image_urls"] == expected

    assert len(client.get("/api/contestants/active").json()) == 64


def test_image_failures_do_not_fail_the_request() -> None:
    client, _ = _client(image_provider=FailingImageProvider())

    response = client.get("/api/current-match")

    assert response.status_code == 200
    assert response.json()["contestant1"]["image_urls"] == []
    assert client.get("/api/contestants/1/images").json()["image_urls"] == []


def test_select_winner_flow(client) -> None:
    match = client.get("/api/current-match").json()
    payload = {"match_id": match["match_id"], "winner_id": match["contestant1"]["id"]}

    response = client.post("/api/select-winner", json=payload)
    assert response.status_code == 200
    result = response.json()
    assert result["tournament_changed"] is False
    assert result["next_match"]["match_number"] == 2

    repeated = client.post("/api/select-winner", json=payload)
    assert repeated.status_code == 409

    next_match = client.post("/api/next-match").json()
    assert next_match["match_number"] == 2

    progress = client.get("/api/tournament-progress").json()
    assert progress["completed_matches"] == 1
    assert progress["percent_complete"] == 1


def test_select_winner_rejections(client) -> None:
    match = client.get("/api/current-match").json()

    unknown = client.post("/api/select-winner", json={"match_id": 9999, "winner_id": 1})
    assert unknown.status_code == 404

    outsider = client.post(
        "/api/select-winner", json={"match_id": match["match_id"], "winner_id": 80000}
    )
    assert outsider.status_code == 400

    malformed = client.post("/api/select-winner", json={"match_id": match["match_id"]})
    assert malformed.status_code == 422


def test_tournament_views(client) -> None:
    tournament = client.get("/api/tournament/current").json()

    bracket = client.get(f"/api/tournaments/{tournament['id']}/bracket")
    assert bracket.status_code == 200
    assert bracket.json()["rounds"][0]["name"] == "Round of 64"
    assert bracket.json()["rounds"][0]["matches"][0]["status"] == "pending"
    assert client.get("/api/tournament/bracket").json() == bracket.json()

    assert client.get("/api/tournaments/999/bracket").status_code == 404

    history = client.get("/api/tournament/history").json()
    assert [entry["tournament"]["id"] for entry in history] == [tournament["id"]]

    match_id = bracket.json()["rounds"][0]["matches"][0]["id"]
    assert client.get(f"/api/matches/{match_id}").json()["id"] == match_id
    assert client.get("/api/matches/9999").status_code == 404


def test_initialize_replaces_the_running_tournament(client) -> None:
    first = client.get("/api/tournament/current").json()

    response = client.post("/api/initialize")

    assert response.status_code == 200
    assert response.json()["tournament"]["id"] != first["id"]
    assert client.get("/api/tournament/current").json()["id"] != first["id"]


def test_contestant_routes(client) -> None:
    created = client.post(
        "/api/contestants", json={"name": "Nova Contestant", "nationality": "CL"}
    )
    assert created.status_code == 200
    contestant = created.json()
    assert contestant["ranking_points"] == 1000

    duplicate = client.post("/api/contestants", json={"name": "nova contestant"})
    assert duplicate.status_code == 400
    assert client.post("/api/contestants", json={"name": "  "}).status_code == 422

    patched = client.patch(
        f"/api/contestants/{contestant['id']}", json={"nationality": "PE"}
    )
    assert patched.json()["nationality"] == "PE"

    detail = client.get(f"/api/contestants/{contestant['id']}").json()
    assert detail["contestant"]["name"] == "Nova Contestant"
    assert detail["point_history"] == []
    assert client.get("/api/contestants/9999").status_code == 404

    assert len(client.get("/api/contestants").json()) == 81
    assert len(client.get("/api/contestants/ranking").json()) == 81
    assert len(client.get("/api/contestants/tournament-ranking").json()) == 81


def test_stats_routes(client) -> None:
    match = client.get("/api/current-match").json()
    winner_id = match["contestant2"]["id"]
    client.post(
        "/api/select-winner", json={"match_id": match["match_id"], "winner_id": winner_id}
    )

    stats = client.get("/api/stats/general").json()
    assert stats[0]["id"] == winner_id

    history = client.get("/api/stats/top-performers-history", params={"limit": 2}).json()
    assert [c["id"] for c in history["top_performers"]][0] == winner_id
    assert len(history["point_history"][str(winner_id)]) == 1


def test_short_roster_is_service_unavailable() -> None:
    client, repository = _client(roster_size=10)

    response = client.get("/api/current-match")

    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["available"] == 10
    assert detail["required"] == 64
    assert detail["completed_tournament_id"] is None
    assert "10" in detail["message"]
    assert repository.list_tournaments() == []


def _decide_current(client) -> tuple[dict, object]:
    match = client.get("/api/current-match").json()
    response = client.post(
        "/api/select-winner",
        json={"match_id": match["match_id"], "winner_id": match["contestant1"]["id"]},
    )
    return match, response


def test_final_without_a_successor_field() -> None:
    client, repository = _client(roster_size=64)
    tournament_id = client.get("/api/tournament/current").json()["id"]
    for _ in range(32):
        assert _decide_current(client)[1].status_code == 200
    broke_loser = repository.get_matches(tournament_id, 1)[0].loser_id
    repository.update_contestant(broke_loser, ranking_points=0)
    for _ in range(31):
        assert _decide_current(client)[1].status_code == 200

    final, response = _decide_current(client)

    assert final["round_name"] == "Final"
    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["completed_tournament_id"] == tournament_id
    assert detail["available"] == 63
    assert detail["required"] == 64

    closed = repository.get_tournament(tournament_id)
    assert closed.completed is True
    assert closed.champion_id == final["contestant1"]["id"]
    assert repository.get_current_tournament() is None

    again = client.get("/api/current-match")
    assert again.status_code == 503
    assert again.json()["detail"]["required"] == 64


def test_ranking_limits() -> None:
    client, _ = _client()

    ranking = client.get("/api/contestants/ranking", params={"limit": 5})
    assert ranking.status_code == 200
    assert len(ranking.json()) == 5

    by_tournament = client.get("/api/contestants/tournament-ranking", params={"limit": 3})
    assert len(by_tournament.json()) == 3

    assert len(client.get("/api/contestants/ranking").json()) == 80
    assert client.get("/api/contestants/ranking", params={"limit": 0}).status_code == 400
    assert (
        client.get("/api/contestants/tournament-ranking", params={"limit": -1}).status_code
        == 400
    )
