"""SQLModel tables for lease requests, leases and request history."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Index, Text
from sqlmodel import JSON, Column, Field, SQLModel

from ...domain.entities import Lease as DomainLease
from ...domain.entities import LeaseRequest as DomainLeaseRequest
from ...domain.entities import LeaseRequestHistory as DomainLeaseRequestHistory
from ...domain.status import LeaseRequestStatus, LeaseStatus


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_db_datetime(value: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values are taken to be UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def timestamp_column(nullable: bool = False, index: bool = False) -> Column:
    """Timezone-aware timestamp column; SQLite keeps the UTC wall time."""
    return Column(DateTime(timezone=True), nullable=nullable, index=index)


class LeaseRequest(SQLModel, table=True):  # type: ignore[call-arg]
    """A customer's request to rent a product, awaiting vendor action."""

    __tablename__: str = "lease_requests"  # type: ignore[assignment]
    # AUTOINCREMENT keeps SQLite from reusing a deleted id, whose history remains
    __table_args__ = (
        Index("ix_lease_requests_start_end", "start_date", "end_date"),
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    product_id: int = Field(index=True)
    variation_id: int | None = None
    requester_id: int = Field(index=True)
    requesting_vendor_id: int = Field(index=True)
    start_date: datetime = Field(sa_column=timestamp_column())
    end_date: datetime = Field(sa_column=timestamp_column())
    qty: int = Field(default=1)
    notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    total_price: int
    meta: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    status: str = Field(
        default=LeaseRequestStatus.AWAITING_LESSOR_RESPONSE.value, index=True
    )
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=timestamp_column(index=True)
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=timestamp_column(nullable=True)
    )

    @classmethod
    def from_domain(cls, request: DomainLeaseRequest) -> "LeaseRequest":
        """Convert domain entity to persistence model."""
        model = cls(
            id=request.id,
            product_id=request.product_id,
            requester_id=request.requester_id,
            requesting_vendor_id=request.requesting_vendor_id,
            start_date=to_db_datetime(request.start_date),
            end_date=to_db_datetime(request.end_date),
            total_price=request.total_price,
        )
        model.update_from_domain(request)
        if request.created_at is not None:
            model.created_at = to_db_datetime(request.created_at)  # type: ignore[assignment]
        return model

    def update_from_domain(self, request: DomainLeaseRequest) -> None:
        """Copy the mutable fields of a domain entity onto this row."""
        self.product_id = request.product_id
        self.variation_id = request.variation_id
        self.requester_id = request.requester_id
        self.requesting_vendor_id = request.requesting_vendor_id
        self.start_date = to_db_datetime(request.start_date)  # type: ignore[assignment]
        self.end_date = to_db_datetime(request.end_date)  # type: ignore[assignment]
        self.qty = request.quantity
        self.notes = request.notes
        self.total_price = request.total_price
        self.meta = dict(request.meta)
        self.status = request.status.value

    def to_domain(self) -> DomainLeaseRequest:
        """Convert persistence model to domain entity."""
        return DomainLeaseRequest(
            id=self.id,
            product_id=self.product_id,
            variation_id=self.variation_id,
            requester_id=self.requester_id,
            requesting_vendor_id=self.requesting_vendor_id,
            start_date=self.start_date,
            end_date=self.end_date,
            quantity=self.qty,
            notes=self.notes,
            total_price=self.total_price,
            meta=dict(self.meta or {}),
            status=LeaseRequestStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class Lease(SQLModel, table=True):  # type: ignore[call-arg]
    """A realized rental of a product for a date range."""

    __tablename__: str = "leases"  # type: ignore[assignment]
    __table_args__ = (
        Index("ix_leases_start_end", "start_date", "end_date"),
        {"sqlite_autoincrement": True},
    )

    id: int | None = Field(default=None, primary_key=True)
    product_id: int = Field(index=True)
    variation_id: int | None = None
    order_id: int | None = None
    order_item_id: int | None = None
    customer_id: int = Field(index=True)
    # Weak link, no foreign key: leases outlive the requests they came from
    request_id: int | None = Field(default=None, index=True)
    start_date: datetime = Field(sa_column=timestamp_column())
    end_date: datetime = Field(sa_column=timestamp_column())
    qty: int = Field(default=1)
    meta: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    status: str = Field(default=LeaseStatus.ACTIVE.value, index=True)
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=timestamp_column(index=True)
    )
    updated_at: datetime | None = Field(
        default=None, sa_column=timestamp_column(nullable=True)
    )

    @classmethod
    def from_domain(cls, lease: DomainLease) -> "Lease":
        model = cls(
            id=lease.id,
            product_id=lease.product_id,
            customer_id=lease.customer_id,
            start_date=to_db_datetime(lease.start_date),
            end_date=to_db_datetime(lease.end_date),
        )
        model.update_from_domain(lease)
        if lease.created_at is not None:
            model.created_at = to_db_datetime(lease.created_at)  # type: ignore[assignment]
        return model

    def update_from_domain(self, lease: DomainLease) -> None:
        self.product_id = lease.product_id
        self.variation_id = lease.variation_id
        self.order_id = lease.order_id
        self.order_item_id = lease.order_item_id
        self.customer_id = lease.customer_id
        self.request_id = lease.request_id
        self.start_date = to_db_datetime(lease.start_date)  # type: ignore[assignment]
        self.end_date = to_db_datetime(lease.end_date)  # type: ignore[assignment]
        self.qty = lease.quantity
        self.meta = dict(lease.meta)
        self.status = lease.status.value

    def to_domain(self) -> DomainLease:
        return DomainLease(
            id=self.id,
            product_id=self.product_id,
            variation_id=self.variation_id,
            order_id=self.order_id,
            order_item_id=self.order_item_id,
            customer_id=self.customer_id,
            request_id=self.request_id,
            start_date=self.start_date,
            end_date=self.end_date,
            quantity=self.qty,
            meta=dict(self.meta or {}),
            status=LeaseStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class LeaseRequestHistory(SQLModel, table=True):  # type: ignore[call-arg]
    """Snapshots of a lease request taken before each status change."""

    __tablename__: str = "lease_request_history"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    request_id: int = Field(index=True)
    # JSON array of full request snapshots, oldest first
    history: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=utcnow, sa_column=timestamp_column(index=True)
    )

    @classmethod
    def from_domain(cls, history: DomainLeaseRequestHistory) -> "LeaseRequestHistory":
        model = cls(
            id=history.id,
            request_id=history.request_id,
            history=[dict(snapshot) for snapshot in history.history],
        )
        if history.created_at is not None:
            model.created_at = to_db_datetime(history.created_at)  # type: ignore[assignment]
        return model

    def to_domain(self) -> DomainLeaseRequestHistory:
        return DomainLeaseRequestHistory(
            id=self.id,
            request_id=self.request_id,
            history=list(self.history or []),
            created_at=self.created_at,
        )


class SchemaVersion(SQLModel, table=True):  # type: ignore[call-arg]
    """Single-row record of the installed schema version."""

    __tablename__: str = "schema_version"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    version: str
    installed_at: datetime = Field(
        default_factory=utcnow, sa_column=timestamp_column()
    )
