import logging
from datetime import UTC, datetime
from typing import Any, Final

from fastapi import Request

from .request_utils import get_client_ip

# Free text entered by customers is never copied into logs
CUSTOMER_TEXT_FIELDS: Final = frozenset({"notes", "meta"})
CREDENTIAL_MARKERS: Final = ("password", "secret", "token", "credential", "auth")


def log_user_action(
    action: str, user_id: int, logger_name: str = "user_actions", **kwargs: Any
) -> None:
    """Log rental actions performed on behalf of a user.

    Args:
        action: The action being performed (e.g., 'create_lease_request')
        user_id: Id of the acting user
        logger_name: Name of the logger to use
        **kwargs: Additional context data (request_id, lease_id, status...)
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "action": action,
        "user_id": user_id,
        "timestamp": datetime.now(UTC).isoformat(),
        **kwargs,
    }

    logger.info(f"User action: {action} by user {user_id}", extra=log_data)


def log_api_request(
    request: Request,
    response_status: int,
    process_time_ms: float | None = None,
    logger_name: str = "api",
) -> None:
    """Log API requests with consistent format.

    Args:
        request: FastAPI request object
        response_status: HTTP response status code
        process_time_ms: Request processing time in milliseconds
        logger_name: Name of the logger to use
    """
    logger = logging.getLogger(logger_name)

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "status_code": response_status,
        "client_ip": get_client_ip(request),
        "user_agent": request.headers.get("user-agent", "Unknown")[:100],
    }

    if process_time_ms is not None:
        log_data["process_time_ms"] = str(round(process_time_ms, 2))

    if response_status >= 500:
        log_level = logging.ERROR
    elif response_status >= 400:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    message = f"{request.method} {request.url.path} - {response_status}"
    if process_time_ms is not None:
        message += f" ({process_time_ms:.1f}ms)"

    logger.log(log_level, message, extra=log_data)


def log_database_operation(
    operation: str,
    table: str,
    success: bool = True,
    logger_name: str = "database",
    **kwargs: Any,
) -> None:
    """Log database operations.

    Args:
        operation: Database operation (create, update, delete, append)
        table: Table name being operated on
        success: Whether the operation was successful
        logger_name: Name of the logger to use
        **kwargs: Additional context data
    """
    logger = logging.getLogger(logger_name)

    log_data = {"operation": operation, "table": table, "success": success, **kwargs}

    level = logging.INFO if success else logging.ERROR
    status = "succeeded" if success else "failed"

    logger.log(level, f"Database {operation} on {table} {status}", extra=log_data)


def log_system_info(hostname: str, database_url: str, debug_mode: bool) -> None:
    """Log startup information without leaking database credentials."""
    logger = logging.getLogger("system")

    logger.info(
        "Application startup",
        extra={
            "hostname": hostname,
            "database": _redact_url(database_url),
            "debug_mode": debug_mode,
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


def log_validation_error(
    field: str | None,
    value: Any,
    error_message: str,
    logger_name: str = "validation",
) -> None:
    """Log validation errors with context.

    Args:
        field: Field name that failed validation, if known
        value: The invalid value (will be sanitized)
        error_message: Validation error message
        logger_name: Name of the logger to use
    """
    logger = logging.getLogger(logger_name)
    field_name = field or "unknown"

    safe_value = (
        "[REDACTED]" if _is_sensitive_field(field_name) else str(value)[:100]
    )

    logger.warning(
        f"Validation failed for field '{field_name}': {error_message}",
        extra={"field": field_name, "value": safe_value, "error": error_message},
    )


def _redact_url(url: str) -> str:
    """Hide the password part of a database URL."""
    scheme, sep, rest = url.partition("://")
    if not sep or "@" not in rest:
        return url
    credentials, _, host = rest.rpartition("@")
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


def _is_sensitive_field(field_name: str) -> bool:
    """Check if a field may hold customer text or credentials."""
    field_lower = field_name.lower()
    if field_lower in CUSTOMER_TEXT_FIELDS:
        return True
    return any(marker in field_lower for marker in CREDENTIAL_MARKERS)
