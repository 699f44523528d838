"""Payload builders and header sets shared by the test modules."""

from typing import Any

MANAGER_HEADERS = {
    "X-User-Id": "1",
    "X-User-Capabilities": "manage_rental_requests,manage_rental_leases",
}


def user_headers(user_id: int, *capabilities: str) -> dict[str, str]:
    headers = {"X-User-Id": str(user_id)}
    if capabilities:
        headers["X-User-Capabilities"] = ",".join(capabilities)
    return headers


def lease_request_payload(**overrides: Any) -> dict[str, Any]:
    """Keyword arguments for a valid LeaseRequest entity."""
    payload: dict[str, Any] = {
        "product_id": 5,
        "requester_id": 2,
        "requesting_vendor_id": 3,
        "start_date": "2024-03-01T10:00",
        "end_date": "2024-03-05T16:00",
        "quantity": 2,
        "total_price": 1000,
    }
    payload.update(overrides)
    return payload


def lease_payload(**overrides: Any) -> dict[str, Any]:
    """Keyword arguments for a valid Lease entity."""
    payload: dict[str, Any] = {
        "product_id": 5,
        "customer_id": 2,
        "start_date": "2024-03-01T10:00",
        "end_date": "2024-03-05T16:00",
        "quantity": 2,
    }
    payload.update(overrides)
    return payload


def api_lease_request(**overrides: Any) -> dict[str, Any]:
    """JSON body for POST /api/v1/lease-requests."""
    body: dict[str, Any] = {
        "product_id": 5,
        "requester_id": 2,
        "requesting_vendor_id": 3,
        "start_date": "2024-03-01T10:00",
        "end_date": "2024-03-05T16:00",
        "qty": 2,
        "total_price": 1000,
    }
    body.update(overrides)
    return body
