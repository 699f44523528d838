"""Admin screens rendered for rental managers."""

import pytest
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient
from sqlmodel import Session

from src.application.lease_request_service import LeaseRequestService
from src.application.lease_service import LeaseService
from tests.helpers import (
    MANAGER_HEADERS,
    lease_payload,
    lease_request_payload,
    user_headers,
)


@pytest.fixture
def request_service(session: Session) -> LeaseRequestService:
    return LeaseRequestService(session)


@pytest.fixture
def lease_service(session: Session) -> LeaseService:
    return LeaseService(session)


def _soup(response) -> BeautifulSoup:
    return BeautifulSoup(response.text, "html.parser")


def test_admin_home_redirects(client: TestClient):
    response = client.get("/admin", headers=MANAGER_HEADERS, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/admin/lease-requests"


def test_lease_request_list(client: TestClient, request_service: LeaseRequestService):
    first = request_service.create(lease_request_payload())
    second = request_service.create(lease_request_payload(product_id=6))
    request_service.update_status(second.id, "accepted")

    response = client.get("/admin/lease-requests", headers=MANAGER_HEADERS)

    assert response.status_code == 200
    soup = _soup(response)
    assert soup.find(id="total").get_text(strip=True) == "2 request(s)"
    rows = soup.select("table#lease-requests tbody tr[data-request-id]")
    assert [int(row["data-request-id"]) for row in rows] == [second.id, first.id]
    assert rows[0].select_one(".status").get_text(strip=True) == "Accepted"
    assert rows[1].select_one(".status").get_text(strip=True) == (
        "Awaiting lessor response"
    )


def test_lease_request_list_filters(
    client: TestClient, request_service: LeaseRequestService
):
    request_service.create(lease_request_payload())
    wanted = request_service.create(lease_request_payload(product_id=6))

    response = client.get(
        "/admin/lease-requests",
        params={"product_id": "6", "status": ""},
        headers=MANAGER_HEADERS,
    )

    soup = _soup(response)
    rows = soup.select("tr[data-request-id]")
    assert [int(row["data-request-id"]) for row in rows] == [wanted.id]
    assert soup.select_one("#filters input[name=product_id]")["value"] == "6"


def test_lease_request_list_paginates(
    client: TestClient, request_service: LeaseRequestService, monkeypatch
):
    from src.config import settings

    monkeypatch.setattr(settings, "admin_per_page", 2)
    for _ in range(3):
        request_service.create(lease_request_payload())

    response = client.get(
        "/admin/lease-requests", params={"page": 2}, headers=MANAGER_HEADERS
    )

    soup = _soup(response)
    assert len(soup.select("tr[data-request-id]")) == 1
    assert "Page 2 of 2" in soup.select_one(".pagination").get_text()
    assert soup.select_one(".pagination a[rel=prev]") is not None
    assert soup.select_one(".pagination a[rel=next]") is None


def test_lease_request_detail_shows_history(
    client: TestClient, request_service: LeaseRequestService
):
    created = request_service.create(lease_request_payload(notes="Bring helmet"))
    request_service.update_status(created.id, "awaiting payment")
    request_service.update_status(created.id, "accepted")

    response = client.get(
        f"/admin/lease-requests/{created.id}", headers=MANAGER_HEADERS
    )

    assert response.status_code == 200
    soup = _soup(response)
    assert soup.find(id="status").get_text(strip=True) == "Accepted"
    assert "Bring helmet" in soup.find(id="details").get_text()
    statuses = [
        row.find("td").get_text(strip=True)
        for row in soup.select("table#history tbody tr")
    ]
    assert statuses == ["Awaiting payment", "Awaiting lessor response"]


def test_status_form_changes_status(
    client: TestClient, request_service: LeaseRequestService
):
    created = request_service.create(lease_request_payload())

    response = client.post(
        f"/admin/lease-requests/{created.id}/status",
        data={"status": "declined"},
        headers=MANAGER_HEADERS,
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"].startswith(
        f"/admin/lease-requests/{created.id}"
    )
    assert request_service.get(created.id).status == "declined"


def test_status_form_rejects_invalid_transition(
    client: TestClient, request_service: LeaseRequestService
):
    created = request_service.create(lease_request_payload())
    request_service.update_status(created.id, "cancelled")

    response = client.post(
        f"/admin/lease-requests/{created.id}/status",
        data={"status": "accepted"},
        headers=MANAGER_HEADERS,
    )

    assert response.status_code == 400
    message = _soup(response).find(id="error-message").get_text(strip=True)
    assert "'cancelled' to 'accepted'" in message


def test_delete_redirects_to_list(
    client: TestClient, request_service: LeaseRequestService
):
    created = request_service.create(lease_request_payload())

    response = client.post(
        f"/admin/lease-requests/{created.id}/delete",
        headers=MANAGER_HEADERS,
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/admin/lease-requests"
    assert request_service.find_by_id(created.id) is None


def test_missing_request_renders_error_page(client: TestClient):
    response = client.get("/admin/lease-requests/999", headers=MANAGER_HEADERS)

    assert response.status_code == 404
    assert "text/html" in response.headers["content-type"]
    message = _soup(response).find(id="error-message").get_text(strip=True)
    assert message == "Lease request 999 not found"


def test_admin_requires_capability(client: TestClient):
    response = client.get("/admin/lease-requests", headers=user_headers(2))
    assert response.status_code == 403
    assert _soup(response).find(id="error-message") is not None

    response = client.get("/admin/leases")
    assert response.status_code == 401


def test_lease_list(client: TestClient, lease_service: LeaseService):
    lease = lease_service.create(lease_payload())

    response = client.get("/admin/leases", headers=MANAGER_HEADERS)

    soup = _soup(response)
    rows = soup.select("table#leases tbody tr[data-lease-id]")
    assert [int(row["data-lease-id"]) for row in rows] == [lease.id]
    assert rows[0].select_one(".status").get_text(strip=True) == "Active"


def test_lease_edit_success(client: TestClient, lease_service: LeaseService):
    lease = lease_service.create(lease_payload())

    form = _soup(client.get(f"/admin/leases/{lease.id}/edit", headers=MANAGER_HEADERS))
    assert form.select_one("#lease-form input[name=start_date]")["value"] == (
        "2024-03-01T10:00"
    )

    response = client.post(
        f"/admin/leases/{lease.id}/edit",
        data={
            "start_date": "2024-03-02",
            "end_date": "2024-03-06 12:00:00",
            "qty": "3",
            "status": "completed",
            "order_id": "88",
            "order_item_id": "",
        },
        headers=MANAGER_HEADERS,
        follow_redirects=False,
    )

    assert response.status_code == 303
    updated = lease_service.get(lease.id)
    assert updated.quantity == 3
    assert updated.order_id == 88
    assert updated.order_item_id is None
    assert updated.status == "completed"
    assert updated.to_dict()["end_date"] == "2024-03-06T12:00"


def test_lease_edit_error_keeps_input(client: TestClient, lease_service: LeaseService):
    lease = lease_service.create(lease_payload())

    response = client.post(
        f"/admin/leases/{lease.id}/edit",
        data={
            "start_date": "2024-03-09",
            "end_date": "2024-03-01",
            "qty": "2",
            "status": "active",
        },
        headers=MANAGER_HEADERS,
    )

    assert response.status_code == 400
    soup = _soup(response)
    assert "start_date" in soup.find(id="form-error").get_text()
    assert soup.select_one("input[name=start_date]")["value"] == "2024-03-09"
    assert lease_service.get(lease.id).to_dict()["start_date"] == "2024-03-01T10:00"
