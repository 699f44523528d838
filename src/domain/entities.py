"""Pure domain entities without infrastructure dependencies."""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar

from .constants import MIN_QUANTITY
from .exceptions import ValidationError
from .status import (
    LeaseRequestStatus,
    LeaseStatus,
    ensure_lease_request_transition,
    ensure_lease_transition,
)
from .validation import (
    assert_allowed_status,
    assert_json_encodable_list,
    assert_json_encodable_map,
    assert_min_int,
    assert_optional_positive_int,
    assert_positive_int,
    assert_start_before_or_equal_end,
    coerce_datetime,
    coerce_optional_datetime,
    format_datetime,
    format_timestamp,
)


def _apply_changes(entity, changes: Mapping[str, Any], entity_type: str):
    """Merge a partial update into an entity and validate the result.

    Only keys present in changes are considered; dataclasses.replace runs
    __post_init__ again, so the merged record is validated exactly as a newly
    constructed one would be.
    """
    unknown = set(changes) - entity.UPDATABLE_FIELDS
    if unknown:
        names = ", ".join(sorted(unknown))
        raise ValidationError(
            f"Cannot update {entity_type} field(s): {names}",
            field=sorted(unknown)[0],
        )
    return dataclasses.replace(entity, **dict(changes))


@dataclass
class LeaseRequest:
    """A customer's request to rent a product for a date range."""

    UPDATABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "start_date",
            "end_date",
            "quantity",
            "notes",
            "meta",
            "variation_id",
            "status",
            "total_price",
            "requesting_vendor_id",
        }
    )

    product_id: int
    requester_id: int
    requesting_vendor_id: int
    start_date: datetime
    end_date: datetime
    total_price: int
    quantity: int = 1
    variation_id: int | None = None
    notes: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    status: LeaseRequestStatus = LeaseRequestStatus.AWAITING_LESSOR_RESPONSE
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        """Validate and normalize request data after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate lease request business rules."""
        self.product_id = assert_positive_int(self.product_id, "product_id")
        self.variation_id = assert_optional_positive_int(
            self.variation_id, "variation_id"
        )
        self.requester_id = assert_positive_int(self.requester_id, "requester_id")
        self.quantity = assert_min_int(self.quantity, MIN_QUANTITY, "qty")
        if self.notes is not None and not isinstance(self.notes, str):
            raise ValidationError("notes must be a string", field="notes")
        self.meta = assert_json_encodable_map(self.meta, "meta")
        self.status = assert_allowed_status(self.status, LeaseRequestStatus)
        self.total_price = assert_positive_int(self.total_price, "total_price")
        self.requesting_vendor_id = assert_positive_int(
            self.requesting_vendor_id, "requesting_vendor_id"
        )
        self.start_date = coerce_datetime(self.start_date, "start_date")
        self.end_date = coerce_datetime(self.end_date, "end_date")
        assert_start_before_or_equal_end(self.start_date, self.end_date)
        self.created_at = coerce_optional_datetime(self.created_at, "created_at")
        self.updated_at = coerce_optional_datetime(self.updated_at, "updated_at")

    def with_changes(self, changes: Mapping[str, Any]) -> "LeaseRequest":
        """Return a validated copy with the given fields replaced.

        A status change must follow the lease request lifecycle.
        """
        if "status" in changes:
            target = assert_allowed_status(changes["status"], LeaseRequestStatus)
            ensure_lease_request_transition(self.status, target)
        return _apply_changes(self, changes, "lease request")

    def involves(self, user_id: int) -> bool:
        """Check if a user is the requester or the vendor of this request."""
        return user_id in (self.requester_id, self.requesting_vendor_id)

    def to_dict(self) -> dict[str, Any]:
        """Full field snapshot in the external (API/history) representation."""
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variation_id": self.variation_id,
            "requester_id": self.requester_id,
            "start_date": format_datetime(self.start_date),
            "end_date": format_datetime(self.end_date),
            "qty": self.quantity,
            "notes": self.notes,
            "meta": dict(self.meta),
            "status": self.status.value,
            "total_price": self.total_price,
            "requesting_vendor_id": self.requesting_vendor_id,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


@dataclass
class Lease:
    """A confirmed rental, optionally originating from a lease request."""

    UPDATABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {
            "product_id",
            "variation_id",
            "order_id",
            "order_item_id",
            "customer_id",
            "request_id",
            "start_date",
            "end_date",
            "quantity",
            "meta",
            "status",
        }
    )

    product_id: int
    customer_id: int
    start_date: datetime
    end_date: datetime
    quantity: int = 1
    variation_id: int | None = None
    order_id: int | None = None
    order_item_id: int | None = None
    request_id: int | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    status: LeaseStatus = LeaseStatus.ACTIVE
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate lease business rules."""
        self.product_id = assert_positive_int(self.product_id, "product_id")
        self.variation_id = assert_optional_positive_int(
            self.variation_id, "variation_id"
        )
        self.order_id = assert_optional_positive_int(self.order_id, "order_id")
        self.order_item_id = assert_optional_positive_int(
            self.order_item_id, "order_item_id"
        )
        self.customer_id = assert_positive_int(self.customer_id, "customer_id")
        self.request_id = assert_optional_positive_int(self.request_id, "request_id")
        self.quantity = assert_min_int(self.quantity, MIN_QUANTITY, "qty")
        self.meta = assert_json_encodable_map(self.meta, "meta")
        self.status = assert_allowed_status(self.status, LeaseStatus)
        self.start_date = coerce_datetime(self.start_date, "start_date")
        self.end_date = coerce_datetime(self.end_date, "end_date")
        assert_start_before_or_equal_end(self.start_date, self.end_date)
        self.created_at = coerce_optional_datetime(self.created_at, "created_at")
        self.updated_at = coerce_optional_datetime(self.updated_at, "updated_at")

    def with_changes(self, changes: Mapping[str, Any]) -> "Lease":
        """Return a validated copy with the given fields replaced."""
        if "status" in changes:
            target = assert_allowed_status(changes["status"], LeaseStatus)
            ensure_lease_transition(self.status, target)
        return _apply_changes(self, changes, "lease")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "variation_id": self.variation_id,
            "order_id": self.order_id,
            "order_item_id": self.order_item_id,
            "customer_id": self.customer_id,
            "request_id": self.request_id,
            "start_date": format_datetime(self.start_date),
            "end_date": format_datetime(self.end_date),
            "qty": self.quantity,
            "meta": dict(self.meta),
            "status": self.status.value,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
        }


@dataclass
class LeaseRequestHistory:
    """Append-only list of prior-state snapshots for one lease request."""

    request_id: int
    history: list[dict[str, Any]] = field(default_factory=list)
    id: int | None = None
    created_at: datetime | None = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        self.request_id = assert_positive_int(self.request_id, "request_id")
        self.history = assert_json_encodable_list(self.history, "history")
        self.created_at = coerce_optional_datetime(self.created_at, "created_at")

    def appended(self, snapshot: Mapping[str, Any]) -> "LeaseRequestHistory":
        """Return a copy with snapshot added after the existing entries."""
        return dataclasses.replace(self, history=[*self.history, dict(snapshot)])

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "request_id": self.request_id,
            "history": [dict(snapshot) for snapshot in self.history],
            "created_at": format_timestamp(self.created_at),
        }
