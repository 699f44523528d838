"""Validation primitives shared by every domain entity.

Pure domain validation without logging or external dependencies. Each helper
either returns the (normalized) value or raises ValidationError naming the
offending field.
"""

import json
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime, tzinfo
from enum import StrEnum
from typing import Any, TypeVar

from .constants import (
    DATE_FORMATS_DESCRIPTION,
    DATE_INPUT_FORMATS,
    DATE_OUTPUT_FORMAT,
    TIMESTAMP_OUTPUT_FORMAT,
)
from .exceptions import ValidationError

S = TypeVar("S", bound=StrEnum)


def _require_int(value: Any, field: str) -> int:
    # bool is an int subclass but never a meaningful id or quantity
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer", field=field)
    return value


def assert_positive_int(value: Any, field: str) -> int:
    """Return value if it is an integer greater than zero."""
    value = _require_int(value, field)
    if value <= 0:
        raise ValidationError(f"{field} must be a positive integer", field=field)
    return value


def assert_optional_positive_int(value: Any, field: str) -> int | None:
    """Like assert_positive_int, but None passes through as "no link"."""
    if value is None:
        return None
    return assert_positive_int(value, field)


def assert_min_int(value: Any, minimum: int, field: str) -> int:
    """Return value if it is an integer not below minimum."""
    value = _require_int(value, field)
    if value < minimum:
        raise ValidationError(f"{field} must be >= {minimum}", field=field)
    return value


def assert_allowed_status(
    status: Any, allowed: type[S], field: str = "status"
) -> S:
    """Return the enum member matching status, or raise.

    Matching is exact and case-sensitive on the literal value.
    """
    if isinstance(status, allowed):
        return status
    if isinstance(status, str):
        try:
            return allowed(status)
        except ValueError:
            pass
    choices = ", ".join(f"'{member.value}'" for member in allowed)
    raise ValidationError(
        f"Invalid {field} '{status}'. Allowed values: {choices}", field=field
    )


def assert_date_ymd(text: Any, field: str, tz: tzinfo = UTC) -> datetime:
    """Parse text in one of the accepted formats and return it in UTC.

    Formats are tried in order and a format only matches when formatting the
    parsed value again reproduces the input exactly, so "2024-3-1" or
    "2024-02-30" are rejected. The date-only format means midnight.
    """
    if not isinstance(text, str):
        raise ValidationError(
            f"{field} must be in {DATE_FORMATS_DESCRIPTION} format", field=field
        )

    for fmt in DATE_INPUT_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if parsed.strftime(fmt) == text:
            return parsed.replace(tzinfo=tz).astimezone(UTC)

    raise ValidationError(
        f"{field} must be in {DATE_FORMATS_DESCRIPTION} format", field=field
    )


def coerce_datetime(value: Any, field: str) -> datetime:
    """Normalize a datetime or accepted date text to an aware UTC datetime.

    Naive datetimes are taken to already be UTC, which is how they come back
    from the database.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)
    return assert_date_ymd(value, field)


def coerce_optional_datetime(value: Any, field: str) -> datetime | None:
    if value is None:
        return None
    return coerce_datetime(value, field)


def assert_start_before_or_equal_end(start: datetime, end: datetime) -> None:
    if start > end:
        raise ValidationError(
            "start_date must be before or equal to end_date", field="start_date"
        )


def _ensure_json_encodable(value: Any, field: str) -> None:
    try:
        json.dumps(value, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be JSON encodable", field=field) from e


def assert_json_encodable_map(mapping: Any, field: str) -> dict[str, Any]:
    """Return a copy of mapping if it is a string-keyed, JSON encodable map."""
    if not isinstance(mapping, Mapping):
        raise ValidationError(f"{field} must be an object", field=field)
    if not all(isinstance(key, str) for key in mapping):
        raise ValidationError(
            f"{field} must be an object with string keys", field=field
        )
    result = dict(mapping)
    _ensure_json_encodable(result, field)
    return result


def assert_json_encodable_list(items: Any, field: str) -> list[dict[str, Any]]:
    """Return a copy of items if it is a JSON encodable list of objects."""
    if isinstance(items, str | bytes | Mapping) or not isinstance(items, Iterable):
        raise ValidationError(f"{field} must be a list of objects", field=field)
    result = list(items)
    for item in result:
        if not isinstance(item, Mapping):
            raise ValidationError(f"{field} must be a list of objects", field=field)
    _ensure_json_encodable(result, field)
    return [dict(item) for item in result]


def format_datetime(value: datetime) -> str:
    """Render a datetime in the API date format (YYYY-MM-DDTHH:MM, UTC)."""
    return coerce_datetime(value, "datetime").strftime(DATE_OUTPUT_FORMAT)


def format_timestamp(value: datetime | None) -> str | None:
    """Render a record timestamp (YYYY-MM-DD HH:MM:SS, UTC)."""
    if value is None:
        return None
    return coerce_datetime(value, "timestamp").strftime(TIMESTAMP_OUTPUT_FORMAT)
