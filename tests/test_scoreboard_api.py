from __future__ import annotations


def test_monthly_leaderboard_for_explicit_period(client):
    response = client.get("/api/v1/scoreboard/monthly", params={"month": 1, "year": 2026})
    assert response.status_code == 200
    payload = response.json()
    assert payload["data"]["periodType"] == "monthly"
    assert payload["data"]["isComplete"] is True
    assert [row["employeeId"] for row in payload["data"]["rankings"]] == ["emp-ava", "emp-cleo", "emp-ben"]
    assert payload["data"]["rankings"][0]["totalPoints"] == 120
    assert payload["pagination"]["totalItems"] == 3
    assert payload["meta"]["timeWindow"] == "2026-01"
    assert payload["meta"]["dataStatus"] == "final"


def test_monthly_leaderboard_pagination(client):
    response = client.get(
        "/api/v1/scoreboard/monthly",
        params={"month": 1, "year": 2026, "page": 2, "page_size": 2},
    )
    assert response.status_code == 200
    payload = response.json()
    assert [row["rank"] for row in payload["data"]["rankings"]] == [3]
    assert payload["pagination"]["totalPages"] == 2


def test_monthly_leaderboard_rejects_invalid_month(client):
    response = client.get("/api/v1/scoreboard/monthly", params={"month": 13})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"


def test_yearly_leaderboard(client):
    response = client.get("/api/v1/scoreboard/yearly", params={"year": 2026})
    assert response.status_code == 200
    rankings = response.json()["data"]["rankings"]
    assert [(row["rank"], row["employeeName"], row["totalPoints"]) for row in rankings] == [
        (1, "Ava Stone", 300),
        (2, "Ben Ortiz", 85),
        (3, "Cleo Park", 65),
    ]


def test_last_month_podium_respects_limit(client):
    response = client.get("/api/v1/scoreboard/last-month", params={"limit": 1})
    assert response.status_code == 200
    payload = response.json()
    assert payload["data"]["isComplete"] is True
    assert len(payload["data"]["rankings"]) <= 1
    assert payload["pagination"] is None
