import json
import logging
from typing import Any

from fastapi.testclient import TestClient
from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax

from tests.helpers import MANAGER_HEADERS, api_lease_request, user_headers

console = Console()

VENDOR = user_headers(3)


def _log_response_json(title: str, response_json: dict[str, Any] | list[Any]) -> None:
    pretty = json.dumps(response_json, indent=2, ensure_ascii=False)
    syntax = Syntax(pretty, "json", theme="monokai", word_wrap=False)
    console.rule(title)
    console.print(syntax)


def _setup_logging_once() -> None:
    if any(isinstance(h, RichHandler) for h in logging.getLogger().handlers):
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(message)s",
        datefmt="%H:%M:%S",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _create_request(client: TestClient, **overrides: Any) -> dict[str, Any]:
    response = client.post(
        "/api/v1/lease-requests",
        json=api_lease_request(**overrides),
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_create_lease_request(client: TestClient):
    _setup_logging_once()
    response = client.post(
        "/api/v1/lease-requests",
        json=api_lease_request(meta={"source": "shop"}),
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 201
    data = response.json()
    _log_response_json("create_lease_request response", data)

    assert data["id"] > 0
    assert data["status"] == "awaiting lessor response"
    assert data["start_date"] == "2024-03-01T10:00"
    assert data["end_date"] == "2024-03-05T16:00"
    assert data["qty"] == 2
    assert data["meta"] == {"source": "shop"}
    assert data["created_at"] is not None
    assert data["updated_at"] is None


def test_create_defaults_requester_to_caller(client: TestClient):
    body = api_lease_request()
    del body["requester_id"]
    response = client.post("/api/v1/lease-requests", json=body, headers=user_headers(2))
    assert response.status_code == 201
    assert response.json()["requester_id"] == 2


def test_all_date_formats_are_accepted(client: TestClient):
    data = _create_request(
        client, start_date="2024-03-01", end_date="2024-03-05 16:30:00"
    )
    assert data["start_date"] == "2024-03-01T00:00"
    assert data["end_date"] == "2024-03-05T16:30"


def test_get_lease_request(client: TestClient):
    created = _create_request(client)
    response = client.get(
        f"/api/v1/lease-requests/{created['id']}", headers=MANAGER_HEADERS
    )
    assert response.status_code == 200
    assert response.json() == created


def test_status_change_and_history(client: TestClient):
    _setup_logging_once()
    created = _create_request(client)
    request_id = created["id"]

    response = client.put(
        f"/api/v1/lease-requests/{request_id}/status",
        json={"status": "accepted"},
        headers=VENDOR,
    )
    assert response.status_code == 200
    data = response.json()
    _log_response_json("status change", data)
    assert data["status"] == "accepted"
    assert data["updated_at"] is not None
    assert data["history_recorded"] is True

    response = client.get(
        f"/api/v1/lease-requests/{request_id}/history", headers=VENDOR
    )
    assert response.status_code == 200
    history = response.json()
    assert history["request_id"] == request_id
    assert len(history["history"]) == 1
    assert history["history"][0]["status"] == "awaiting lessor response"
    assert history["history"][0]["id"] == request_id


def test_recreated_request_has_its_own_history(client: TestClient):
    old = _create_request(client, notes="old")
    client.put(
        f"/api/v1/lease-requests/{old['id']}/status",
        json={"status": "accepted"},
        headers=MANAGER_HEADERS,
    )
    client.delete(f"/api/v1/lease-requests/{old['id']}", headers=MANAGER_HEADERS)

    new = _create_request(client)
    response = client.get(
        f"/api/v1/lease-requests/{new['id']}/history", headers=MANAGER_HEADERS
    )

    assert new["id"] != old["id"]
    assert response.status_code == 200
    assert response.json()["history"] == []


def test_patch_updates_only_given_fields(client: TestClient):
    created = _create_request(client, notes="original")

    response = client.patch(
        f"/api/v1/lease-requests/{created['id']}",
        json={"qty": 3, "end_date": "2024-03-06"},
        headers=VENDOR,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["qty"] == 3
    assert data["end_date"] == "2024-03-06T00:00"
    assert data["notes"] == "original"
    assert data["history_recorded"] is None


def test_patch_can_unset_variation(client: TestClient):
    created = _create_request(client, variation_id=9)
    response = client.patch(
        f"/api/v1/lease-requests/{created['id']}",
        json={"variation_id": None},
        headers=VENDOR,
    )
    assert response.status_code == 200
    assert response.json()["variation_id"] is None


def test_list_lease_requests_by_status(client: TestClient):
    accepted = _create_request(client)
    _create_request(client)
    client.put(
        f"/api/v1/lease-requests/{accepted['id']}/status",
        json={"status": "accepted"},
        headers=MANAGER_HEADERS,
    )

    response = client.get(
        "/api/v1/lease-requests",
        params={"status": "accepted", "page": 1, "per_page": 20},
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["per_page"] == 20
    assert data["total_pages"] == 1
    assert [item["id"] for item in data["items"]] == [accepted["id"]]


def test_list_clamps_paging_parameters(client: TestClient):
    _create_request(client)
    response = client.get(
        "/api/v1/lease-requests",
        params={"page": 0, "per_page": 1000},
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 200
    data = response.json()
    assert (data["page"], data["per_page"]) == (1, 100)


def test_delete_lease_request(client: TestClient):
    created = _create_request(client)
    url = f"/api/v1/lease-requests/{created['id']}"

    assert client.delete(url, headers=MANAGER_HEADERS).status_code == 204
    assert client.get(url, headers=MANAGER_HEADERS).status_code == 404
    assert client.delete(url, headers=MANAGER_HEADERS).status_code == 404


def test_lease_crud(client: TestClient):
    response = client.post(
        "/api/v1/leases",
        json={
            "product_id": 5,
            "customer_id": 2,
            "start_date": "2024-03-01T10:00",
            "end_date": "2024-03-05T16:00",
            "qty": 2,
        },
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 201
    lease = response.json()
    assert lease["status"] == "active"
    url = f"/api/v1/leases/{lease['id']}"

    response = client.patch(url, json={"order_id": 40}, headers=MANAGER_HEADERS)
    assert response.status_code == 200
    assert response.json()["order_id"] == 40

    response = client.put(
        f"{url}/status", json={"status": "completed"}, headers=MANAGER_HEADERS
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = client.get("/api/v1/leases", headers=MANAGER_HEADERS)
    assert [item["id"] for item in response.json()] == [lease["id"]]

    assert client.delete(url, headers=MANAGER_HEADERS).status_code == 204
    assert client.get(url, headers=MANAGER_HEADERS).status_code == 404


def test_lease_from_accepted_request(client: TestClient):
    created = _create_request(client)
    request_id = created["id"]
    client.put(
        f"/api/v1/lease-requests/{request_id}/status",
        json={"status": "accepted"},
        headers=MANAGER_HEADERS,
    )

    response = client.post(
        f"/api/v1/lease-requests/{request_id}/lease",
        json={"order_id": 501},
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 201
    lease = response.json()
    assert lease["request_id"] == request_id
    assert lease["customer_id"] == created["requester_id"]
    assert lease["order_id"] == 501
    assert lease["start_date"] == created["start_date"]

    response = client.get(
        "/api/v1/leases", params={"request_id": request_id}, headers=MANAGER_HEADERS
    )
    assert len(response.json()) == 1


def test_lease_from_open_request_is_rejected(client: TestClient):
    created = _create_request(client)
    response = client.post(
        f"/api/v1/lease-requests/{created['id']}/lease", headers=MANAGER_HEADERS
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_status_transition"


def test_product_deleted_hook(client: TestClient):
    created = _create_request(client)
    client.post(
        "/api/v1/leases",
        json={
            "product_id": 5,
            "customer_id": 2,
            "start_date": "2024-03-01",
            "end_date": "2024-03-02",
            "request_id": created["id"],
        },
        headers=MANAGER_HEADERS,
    )

    response = client.post(
        "/api/v1/hooks/product-deleted",
        json={"product_id": 5},
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 200
    assert response.json() == {
        "product_id": 5,
        "requests_deleted": 1,
        "leases_deleted": 1,
        "succeeded": True,
    }
    response = client.get(
        f"/api/v1/lease-requests/{created['id']}", headers=MANAGER_HEADERS
    )
    assert response.status_code == 404
