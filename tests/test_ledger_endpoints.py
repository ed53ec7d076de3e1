"""Tests for food log endpoints."""

import pytest
from fastapi.testclient import TestClient

from calorie_ledger.api.app import create_app
from calorie_ledger.domain.errors import StorageError

RICE = {"name": "Rice", "ccal": 200, "protein": 4, "fat": 1, "carbohydrates": 45}


@pytest.fixture
def client(container) -> TestClient:
    return TestClient(create_app(container))


def _log_rice(client: TestClient, auth_headers: dict[str, str]) -> dict:
    response = client.post(
        "/log/foodLog",
        json={"meal": "lunch", "date": "2024-03-01", "log": RICE},
        headers=auth_headers,
    )
    assert response.status_code == 200
    return response.json()


def test_requests_without_token_are_unauthorized(client) -> None:
    response = client.post("/log/foodLog", json={"meal": "lunch", "log": RICE})

    assert response.status_code == 401
    assert client.get("/log/days").status_code == 401


def test_unknown_token_is_unauthorized(client) -> None:
    response = client.get("/log/days", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401


def test_log_food_returns_day_and_log_id(client, auth_headers) -> None:
    data = _log_rice(client, auth_headers)

    assert data["success"] is True
    day = data["day"]
    assert day["date"] == "2024-03-01T00:00:00+00:00"
    assert day["lunch"]["logs"][0]["id"] == data["logId"]
    assert day["lunch"]["totals"]["ccal"] == 200
    assert day["totals"]["carbohydrates"] == 45
    assert day["breakfast"] == {
        "logs": [],
        "totals": {"ccal": 0.0, "protein": 0.0, "fat": 0.0, "carbohydrates": 0.0},
    }


def test_log_food_rejects_invalid_meal(client, auth_headers, day_repository) -> None:
    response = client.post(
        "/log/foodLog",
        json={"meal": "brunch", "log": RICE},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid meal"}
    assert day_repository.days == {}


def test_log_food_requires_name(client, auth_headers) -> None:
    response = client.post(
        "/log/foodLog",
        json={"meal": "lunch", "log": {"ccal": 10}},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Log must include name"


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({"meal": 3, "log": RICE}, "Invalid meal"),
        ({"meal": "lunch", "log": "Rice"}, "Log must include name"),
        ({"meal": "lunch", "log": ["Rice"]}, "Log must include name"),
    ],
)
def test_log_food_rejects_wrongly_typed_fields(
    client, auth_headers, day_repository, body, error
) -> None:
    response = client.post("/log/foodLog", json=body, headers=auth_headers)

    assert response.status_code == 400
    assert response.json() == {"error": error}
    assert day_repository.days == {}


def test_log_food_rejects_non_string_date(client, auth_headers) -> None:
    response = client.post(
        "/log/foodLog",
        json={"meal": "lunch", "date": 5, "log": RICE},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert "error" in response.json()


def test_get_day_is_empty_before_first_log(client, auth_headers) -> None:
    response = client.get("/log/days/2024-03-02", headers=auth_headers)

    assert response.status_code == 204
    assert response.content == b""


def test_get_day_rejects_unparseable_date(client, auth_headers) -> None:
    response = client.get("/log/days/yesterday", headers=auth_headers)

    assert response.status_code == 400


def test_get_day_after_logging(client, auth_headers) -> None:
    logged = _log_rice(client, auth_headers)

    response = client.get("/log/days/2024-03-01", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["day"]["lunch"]["logs"][0]["id"] == logged["logId"]


def test_edit_log_updates_only_given_fields(client, auth_headers) -> None:
    logged = _log_rice(client, auth_headers)

    response = client.put(
        f"/log/days/2024-03-01/lunch/{logged['logId']}",
        json={"protein": 10},
        headers=auth_headers,
    )

    assert response.status_code == 200
    day = response.json()["day"]
    assert day["totals"]["protein"] == 10
    assert day["totals"]["ccal"] == 200
    assert day["lunch"]["logs"][0]["name"] == "Rice"


def test_edit_unknown_log_is_not_found(client, auth_headers) -> None:
    _log_rice(client, auth_headers)

    response = client.put(
        "/log/days/2024-03-01/lunch/not-a-log",
        json={"protein": 10},
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Log not found"}


def test_edit_log_rejects_non_object_body(client, auth_headers) -> None:
    logged = _log_rice(client, auth_headers)

    response = client.put(
        f"/log/days/2024-03-01/lunch/{logged['logId']}",
        json=["protein", 10],
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Log fields must be an object"}


def test_fractional_macros_total_exactly_after_delete(client, auth_headers) -> None:
    first = client.post(
        "/log/foodLog",
        json={
            "meal": "snacks",
            "date": "2024-03-01",
            "log": {"name": "Tea", "protein": 0.1},
        },
        headers=auth_headers,
    ).json()
    client.post(
        "/log/foodLog",
        json={
            "meal": "snacks",
            "date": "2024-03-01",
            "log": {"name": "Milk", "protein": 0.2},
        },
        headers=auth_headers,
    )

    response = client.delete(
        f"/log/days/2024-03-01/snacks/{first['logId']}", headers=auth_headers
    )

    assert response.status_code == 200
    day = response.json()["day"]
    assert day["totals"]["protein"] == 0.2
    assert day["snacks"]["totals"]["protein"] == 0.2


def test_delete_log_twice(client, auth_headers) -> None:
    logged = _log_rice(client, auth_headers)
    path = f"/log/days/2024-03-01/lunch/{logged['logId']}"

    first = client.delete(path, headers=auth_headers)
    second = client.delete(path, headers=auth_headers)

    assert first.status_code == 200
    assert first.json()["day"]["totals"]["ccal"] == 0
    assert first.json()["day"]["lunch"]["logs"] == []
    assert second.status_code == 404


def test_delete_on_missing_day_is_not_found(client, auth_headers) -> None:
    response = client.delete(
        "/log/days/2024-03-05/dinner/00000000-0000-0000-0000-000000000000",
        headers=auth_headers,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Day not found"}


def test_list_days_tolerates_junk_limit(client, auth_headers) -> None:
    _log_rice(client, auth_headers)

    response = client.get("/log/days?limit=abc", headers=auth_headers)

    assert response.status_code == 200
    assert len(response.json()["days"]) == 1


def test_reconcile_day(client, auth_headers) -> None:
    _log_rice(client, auth_headers)

    response = client.post("/log/days/2024-03-01/reconcile", headers=auth_headers)
    missing = client.post("/log/days/2024-03-09/reconcile", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["day"]["totals"]["ccal"] == 200
    assert missing.status_code == 204


def test_storage_failure_maps_to_service_unavailable(
    client, auth_headers, day_repository, monkeypatch
) -> None:
    def fail(*_args: object) -> None:
        raise StorageError("Failed to fetch ledger day")

    monkeypatch.setattr(day_repository, "fetch_day", fail)

    response = client.get("/log/days/2024-03-01", headers=auth_headers)

    assert response.status_code == 503
    assert response.json() == {"error": "Failed to fetch ledger day"}


def test_identity_outage_is_not_unauthorized(
    client, auth_headers, container
) -> None:
    container.auth_service.provider.unavailable = True

    response = client.get("/log/days", headers=auth_headers)

    assert response.status_code == 503
    assert response.json() == {"error": "Identity provider unavailable"}


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
