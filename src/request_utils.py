"""Utilities for handling FastAPI requests."""

from fastapi import Request


def get_client_ip(request: Request) -> str:
    """Extract client IP address with proxy support.

    Checks X-Forwarded-For first, then X-Real-IP, then the direct connection.
    Returns "unknown" if none of these are available.
    """
    forwarded_for: str | None = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
        if client_ip:
            return client_ip

    real_ip: str | None = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return str(request.client.host)

    return "unknown"


def is_api_request(request: Request) -> bool:
    """Check if request is to an API endpoint."""
    return str(request.url.path).startswith("/api/")


def parse_capabilities(header_value: str | None) -> frozenset[str]:
    """Split a comma separated capability header into a set of names."""
    if not header_value:
        return frozenset()
    return frozenset(
        part.strip().lower() for part in header_value.split(",") if part.strip()
    )
