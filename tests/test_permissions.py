"""Caller identification and access rules of the REST API."""

from fastapi.testclient import TestClient

from tests.helpers import MANAGER_HEADERS, api_lease_request, user_headers

REQUESTER = user_headers(2)
VENDOR = user_headers(3)
STRANGER = user_headers(4)


def _create_request(client: TestClient, **overrides) -> int:
    response = client.post(
        "/api/v1/lease-requests",
        json=api_lease_request(**overrides),
        headers=MANAGER_HEADERS,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def test_missing_user_header_is_unauthenticated(client: TestClient):
    response = client.get("/api/v1/lease-requests")
    assert response.status_code == 401
    assert response.json()["code"] == "unauthenticated"


def test_malformed_user_header_is_unauthenticated(client: TestClient):
    for value in ("abc", "0", "-3"):
        response = client.get("/api/v1/leases", headers={"X-User-Id": value})
        assert response.status_code == 401, value


def test_customer_cannot_create_for_someone_else(client: TestClient):
    response = client.post(
        "/api/v1/lease-requests",
        json=api_lease_request(requester_id=9),
        headers=REQUESTER,
    )
    assert response.status_code == 403
    assert response.json()["code"] == "forbidden"


def test_participants_can_view_a_request(client: TestClient):
    request_id = _create_request(client)
    url = f"/api/v1/lease-requests/{request_id}"

    assert client.get(url, headers=REQUESTER).status_code == 200
    assert client.get(url, headers=VENDOR).status_code == 200
    assert client.get(url, headers=STRANGER).status_code == 403
    assert client.get(f"{url}/history", headers=STRANGER).status_code == 403


def test_requester_may_cancel(client: TestClient):
    request_id = _create_request(client)
    response = client.put(
        f"/api/v1/lease-requests/{request_id}/status",
        json={"status": "cancelled"},
        headers=REQUESTER,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"


def test_requester_may_not_accept(client: TestClient):
    request_id = _create_request(client)
    response = client.put(
        f"/api/v1/lease-requests/{request_id}/status",
        json={"status": "accepted"},
        headers=REQUESTER,
    )
    assert response.status_code == 403

    response = client.patch(
        f"/api/v1/lease-requests/{request_id}",
        json={"total_price": 1},
        headers=REQUESTER,
    )
    assert response.status_code == 403

    response = client.get(
        f"/api/v1/lease-requests/{request_id}", headers=MANAGER_HEADERS
    )
    assert response.json()["status"] == "awaiting lessor response"
    assert response.json()["total_price"] == 1000


def test_stranger_cannot_update(client: TestClient):
    request_id = _create_request(client)
    response = client.put(
        f"/api/v1/lease-requests/{request_id}/status",
        json={"status": "declined"},
        headers=STRANGER,
    )
    assert response.status_code == 403


def test_listing_is_scoped_to_participants(client: TestClient):
    own = _create_request(client)
    vendored = _create_request(client, requester_id=7, requesting_vendor_id=2)
    _create_request(client, requester_id=7, requesting_vendor_id=8)

    response = client.get("/api/v1/lease-requests", headers=REQUESTER)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {item["id"] for item in data["items"]} == {own, vendored}

    response = client.get("/api/v1/lease-requests", headers=MANAGER_HEADERS)
    assert response.json()["total"] == 3


def test_only_managers_delete_requests(client: TestClient):
    request_id = _create_request(client)
    url = f"/api/v1/lease-requests/{request_id}"

    assert client.delete(url, headers=REQUESTER).status_code == 403
    assert client.delete(url, headers=VENDOR).status_code == 403
    assert client.get(url, headers=MANAGER_HEADERS).status_code == 200


def test_lease_management_needs_capability(client: TestClient):
    body = {
        "product_id": 5,
        "customer_id": 2,
        "start_date": "2024-03-01",
        "end_date": "2024-03-02",
    }
    response = client.post("/api/v1/leases", json=body, headers=REQUESTER)
    assert response.status_code == 403

    requests_only = user_headers(1, "manage_rental_requests")
    response = client.post("/api/v1/leases", json=body, headers=requests_only)
    assert response.status_code == 403

    leases_only = user_headers(1, "manage_rental_leases")
    response = client.post("/api/v1/leases", json=body, headers=leases_only)
    assert response.status_code == 201


def test_customers_see_only_their_leases(client: TestClient):
    for customer_id in (2, 2, 6):
        client.post(
            "/api/v1/leases",
            json={
                "product_id": 5,
                "customer_id": customer_id,
                "start_date": "2024-03-01",
                "end_date": "2024-03-02",
            },
            headers=MANAGER_HEADERS,
        )

    response = client.get("/api/v1/leases", headers=REQUESTER)
    assert response.status_code == 200
    assert {lease["customer_id"] for lease in response.json()} == {2}
    assert len(response.json()) == 2

    response = client.get(
        "/api/v1/leases", params={"customer_id": 6}, headers=REQUESTER
    )
    assert response.status_code == 403


def test_product_hook_needs_both_capabilities(client: TestClient):
    _create_request(client)
    for caps in (("manage_rental_requests",), ("manage_rental_leases",), ()):
        response = client.post(
            "/api/v1/hooks/product-deleted",
            json={"product_id": 5},
            headers=user_headers(1, *caps),
        )
        assert response.status_code == 403, caps

    response = client.get("/api/v1/lease-requests", headers=MANAGER_HEADERS)
    assert response.json()["total"] == 1


def test_capabilities_are_case_insensitive(client: TestClient):
    headers = user_headers(1, "Manage_Rental_Requests")
    response = client.get("/api/v1/lease-requests", headers=headers)
    assert response.status_code == 200
