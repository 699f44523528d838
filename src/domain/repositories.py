"""Persistence contracts the application layer depends on.

The SQL implementations live in infrastructure.database.repositories; tests and
alternative stores only need to satisfy these protocols.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

from .constants import DEFAULT_PER_PAGE, MAX_PER_PAGE
from .entities import Lease, LeaseRequest, LeaseRequestHistory
from .status import LeaseRequestStatus, LeaseStatus

T = TypeVar("T")


@dataclass(frozen=True)
class PageRequest:
    """Normalized pagination input: page >= 1, 1 <= per_page <= MAX_PER_PAGE."""

    page: int = 1
    per_page: int = DEFAULT_PER_PAGE

    @classmethod
    def clamp(cls, page: int | None, per_page: int | None) -> "PageRequest":
        page = max(1, page or 1)
        if not per_page or per_page <= 0:
            per_page = DEFAULT_PER_PAGE
        return cls(page=page, per_page=min(per_page, MAX_PER_PAGE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


@dataclass
class Page(Generic[T]):
    """One page of results plus the total number of matching records."""

    items: list[T]
    total: int
    page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        return max(1, -(-self.total // self.per_page))


@dataclass(frozen=True)
class LeaseRequestFilters:
    status: LeaseRequestStatus | None = None
    product_id: int | None = None
    requester_id: int | None = None
    requesting_vendor_id: int | None = None
    # Matches requests where the user is requester OR vendor
    participant_id: int | None = None


@dataclass(frozen=True)
class LeaseFilters:
    status: LeaseStatus | None = None
    product_id: int | None = None
    customer_id: int | None = None
    request_id: int | None = None


@dataclass
class LockedRecord(Generic[T]):
    """A record read with a row lock held until the transaction ends."""

    entity: T
    handle: Any = field(repr=False)


class LeaseRequestRepository(Protocol):
    def add(self, request: LeaseRequest) -> LeaseRequest: ...

    def find_by_id(self, request_id: int) -> LeaseRequest | None: ...

    def lock_for_update(self, request_id: int) -> LockedRecord[LeaseRequest] | None: ...

    def save_locked(
        self, locked: LockedRecord[LeaseRequest], request: LeaseRequest
    ) -> LeaseRequest: ...

    def release(self) -> None: ...

    def find_page(
        self, filters: LeaseRequestFilters, page: PageRequest
    ) -> Page[LeaseRequest]: ...

    def delete(self, request_id: int) -> bool: ...

    def delete_by_product_id(self, product_id: int) -> int: ...


class LeaseRepository(Protocol):
    def add(self, lease: Lease) -> Lease: ...

    def find_by_id(self, lease_id: int) -> Lease | None: ...

    def lock_for_update(self, lease_id: int) -> LockedRecord[Lease] | None: ...

    def save_locked(self, locked: LockedRecord[Lease], lease: Lease) -> Lease: ...

    def release(self) -> None: ...

    def find_recent(self, filters: LeaseFilters, limit: int) -> list[Lease]: ...

    def delete(self, lease_id: int) -> bool: ...

    def delete_by_product_id(self, product_id: int) -> int: ...


class LeaseRequestHistoryRepository(Protocol):
    def add(self, history: LeaseRequestHistory) -> LeaseRequestHistory: ...

    def find_by_request_id(self, request_id: int) -> list[LeaseRequestHistory]: ...

    def append_snapshot(
        self, history_id: int, snapshot: Mapping[str, Any]
    ) -> LeaseRequestHistory | None: ...

    def delete_by_request_ids(self, request_ids: Sequence[int]) -> int: ...
