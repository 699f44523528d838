"""Tests for the shared validation primitives."""

import json
import math
from datetime import UTC, datetime, timedelta, timezone

import pytest

from src.domain.exceptions import ValidationError
from src.domain.status import LeaseRequestStatus, LeaseStatus
from src.domain.validation import (
    assert_allowed_status,
    assert_date_ymd,
    assert_json_encodable_list,
    assert_json_encodable_map,
    assert_min_int,
    assert_positive_int,
    assert_start_before_or_equal_end,
    coerce_datetime,
    format_datetime,
    format_timestamp,
)


@pytest.mark.parametrize("value", [1, 5, 10**9])
def test_positive_int_accepts_positive_values(value):
    assert assert_positive_int(value, "product_id") == value


@pytest.mark.parametrize("value", [0, -1, -500])
def test_positive_int_rejects_zero_and_negatives(value):
    with pytest.raises(ValidationError) as exc_info:
        assert_positive_int(value, "product_id")
    assert exc_info.value.field == "product_id"


@pytest.mark.parametrize("value", ["5", 5.0, None, True])
def test_positive_int_rejects_non_integers(value):
    with pytest.raises(ValidationError):
        assert_positive_int(value, "product_id")


def test_min_int_boundary():
    assert assert_min_int(1, 1, "qty") == 1
    with pytest.raises(ValidationError, match="qty must be >= 1"):
        assert_min_int(0, 1, "qty")


@pytest.mark.parametrize(
    "text",
    ["2024-03-01T10:00", "2024-03-01 10:00:00", "2024-03-01", "2024-12-31T23:59"],
)
def test_date_formats_reformat_to_the_same_string(text):
    parsed = assert_date_ymd(text, "start_date")
    assert parsed.tzinfo == UTC
    for fmt in ("%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d"):
        try:
            original = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if original.strftime(fmt) == text:
            assert parsed.strftime(fmt) == text
            break


@pytest.mark.parametrize(
    "text",
    [
        "2024-3-1",
        "2024-02-30",
        "01/03/2024",
        "2024-03-01T10:00:00",
        "2024-03-01 10:00",
        "",
        "tomorrow",
    ],
)
def test_date_rejects_unknown_formats(text):
    with pytest.raises(ValidationError) as exc_info:
        assert_date_ymd(text, "end_date")
    assert exc_info.value.field == "end_date"


def test_date_only_means_midnight_utc():
    assert assert_date_ymd("2024-03-01", "start_date") == datetime(
        2024, 3, 1, tzinfo=UTC
    )


def test_date_is_converted_from_given_timezone():
    berlin_winter = timezone(timedelta(hours=1))
    parsed = assert_date_ymd("2024-03-01T10:00", "start_date", tz=berlin_winter)
    assert parsed == datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def test_coerce_datetime_treats_naive_values_as_utc(utc):
    assert coerce_datetime(datetime(2024, 3, 1, 10), "start_date") == utc(
        2024, 3, 1, 10
    )


def test_start_before_or_equal_end(utc):
    start = utc(2024, 3, 1)
    assert_start_before_or_equal_end(start, start)
    assert_start_before_or_equal_end(start, utc(2024, 3, 2))
    with pytest.raises(ValidationError) as exc_info:
        assert_start_before_or_equal_end(utc(2024, 3, 5), start)
    assert exc_info.value.field == "start_date"


def test_allowed_status_returns_enum_member():
    status = assert_allowed_status("accepted", LeaseRequestStatus)
    assert status is LeaseRequestStatus.ACCEPTED
    assert assert_allowed_status(LeaseStatus.ACTIVE, LeaseStatus) is LeaseStatus.ACTIVE


@pytest.mark.parametrize("value", ["pending", "Accepted", "", None, 3])
def test_allowed_status_rejects_other_values(value):
    with pytest.raises(ValidationError) as exc_info:
        assert_allowed_status(value, LeaseRequestStatus)
    assert exc_info.value.field == "status"


def test_lease_status_is_not_a_request_status():
    with pytest.raises(ValidationError):
        assert_allowed_status("active", LeaseRequestStatus)


def test_meta_with_string_keys_survives_json_round_trip():
    meta = {"color": "red", "sizes": [1, 2], "nested": {"ok": True}, "none": None}
    checked = assert_json_encodable_map(meta, "meta")
    assert json.loads(json.dumps(checked)) == meta


@pytest.mark.parametrize(
    "meta",
    [
        {1: "int key"},
        {"when": datetime(2024, 1, 1)},
        {"nan": math.nan},
        {"inf": math.inf},
        ["not", "a", "map"],
        "text",
    ],
)
def test_meta_rejects_unencodable_values(meta):
    with pytest.raises(ValidationError) as exc_info:
        assert_json_encodable_map(meta, "meta")
    assert exc_info.value.field == "meta"


def test_history_list_must_hold_objects():
    assert assert_json_encodable_list([{"status": "accepted"}], "history") == [
        {"status": "accepted"}
    ]
    with pytest.raises(ValidationError):
        assert_json_encodable_list(["accepted"], "history")
    with pytest.raises(ValidationError):
        assert_json_encodable_list({"status": "accepted"}, "history")


def test_output_formats(utc):
    value = utc(2024, 3, 1, 10, 30, 15)
    assert format_datetime(value) == "2024-03-01T10:30"
    assert format_timestamp(value) == "2024-03-01 10:30:15"
    assert format_timestamp(None) is None
