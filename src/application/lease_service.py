"""Lease use cases."""

from collections.abc import Mapping
from typing import Any, Final

from sqlmodel import Session

from ..domain.constants import LEASE_LIST_LIMIT
from ..domain.entities import Lease as DomainLease
from ..domain.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from ..domain.repositories import (
    LeaseFilters,
    LeaseRepository,
    LeaseRequestRepository,
)
from ..domain.status import LeaseRequestStatus, LeaseStatus
from ..infrastructure.database.repositories import (
    LeaseRepository as SqlLeaseRepository,
)
from ..infrastructure.database.repositories import (
    LeaseRequestRepository as SqlLeaseRequestRepository,
)
from ..logging_config import get_logger
from ..metrics import record_lease_created, record_status_transition
from .validation import build_entity_with_logging, merge_changes_with_logging

logger: Final = get_logger(__name__)


class LeaseService:
    """Application service for Lease operations."""

    def __init__(
        self,
        session: Session | None = None,
        lease_repo: LeaseRepository | None = None,
        request_repo: LeaseRequestRepository | None = None,
    ):
        if lease_repo is None or request_repo is None:
            if session is None:
                raise ValueError("LeaseService needs a session or both repositories")
            lease_repo = lease_repo or SqlLeaseRepository(session)
            request_repo = request_repo or SqlLeaseRequestRepository(session)
        self.lease_repo = lease_repo
        self.request_repo = request_repo

    def create(self, lease: DomainLease | Mapping[str, Any]) -> DomainLease:
        """Validate and persist a new lease."""
        if not isinstance(lease, DomainLease):
            lease = build_entity_with_logging(DomainLease, lease, "lease")

        created = self.lease_repo.add(lease)
        record_lease_created("request" if created.request_id else "direct")
        logger.info(
            "Lease created",
            lease_id=created.id,
            product_id=created.product_id,
            customer_id=created.customer_id,
        )
        return created

    def create_from_request(
        self,
        request_id: int,
        order_id: int | None = None,
        order_item_id: int | None = None,
        meta: Mapping[str, Any] | None = None,
    ) -> DomainLease:
        """Turn an accepted lease request into a lease.

        Product, variation, dates and quantity are copied from the request and
        the requester becomes the customer.

        Raises:
            NotFoundError: If the request does not exist
            InvalidStatusTransitionError: If the request is not accepted
            ValidationError: If the request already has a lease
        """
        request = self.request_repo.find_by_id(request_id)
        if request is None:
            raise NotFoundError("Lease request", request_id)

        if request.status != LeaseRequestStatus.ACCEPTED:
            raise InvalidStatusTransitionError(
                request.status.value, LeaseStatus.ACTIVE.value, "lease request"
            )

        if self.lease_repo.find_recent(LeaseFilters(request_id=request_id), limit=1):
            raise ValidationError(
                f"Lease request {request_id} already has a lease", field="request_id"
            )

        return self.create(
            DomainLease(
                product_id=request.product_id,
                variation_id=request.variation_id,
                customer_id=request.requester_id,
                start_date=request.start_date,
                end_date=request.end_date,
                quantity=request.quantity,
                order_id=order_id,
                order_item_id=order_item_id,
                request_id=request_id,
                meta=dict(meta or {}),
            )
        )

    def find_by_id(self, lease_id: int) -> DomainLease | None:
        return self.lease_repo.find_by_id(lease_id)

    def get(self, lease_id: int) -> DomainLease:
        lease = self.find_by_id(lease_id)
        if lease is None:
            raise NotFoundError("Lease", lease_id)
        return lease

    def update_fields(self, lease_id: int, changes: Mapping[str, Any]) -> DomainLease:
        """Apply a partial update under a row lock, re-validating the result."""
        locked = self.lease_repo.lock_for_update(lease_id)
        if locked is None:
            self.lease_repo.release()
            raise NotFoundError("Lease", lease_id)

        current = locked.entity
        try:
            merged = merge_changes_with_logging(current, changes, "lease")
        except ValidationError:
            self.lease_repo.release()
            raise

        saved = self.lease_repo.save_locked(locked, merged)
        if saved.status != current.status:
            record_status_transition("lease", current.status.value, saved.status.value)
            logger.info(
                "Lease status changed",
                lease_id=lease_id,
                from_status=current.status.value,
                to_status=saved.status.value,
            )
        else:
            logger.info("Lease updated", lease_id=lease_id, fields=sorted(changes))
        return saved

    def update_status(self, lease_id: int, status: LeaseStatus | str) -> DomainLease:
        return self.update_fields(lease_id, {"status": status})

    def delete(self, lease_id: int) -> bool:
        deleted = self.lease_repo.delete(lease_id)
        if deleted:
            logger.info("Lease deleted", lease_id=lease_id)
        return deleted

    def delete_by_product_id(self, product_id: int) -> int:
        deleted = self.lease_repo.delete_by_product_id(product_id)
        logger.info("Leases deleted for product", product_id=product_id, count=deleted)
        return deleted

    def list(
        self, filters: LeaseFilters | None = None, limit: int = LEASE_LIST_LIMIT
    ) -> list[DomainLease]:
        """Newest leases first, never more than LEASE_LIST_LIMIT."""
        limit = min(max(limit, 1), LEASE_LIST_LIMIT)
        return self.lease_repo.find_recent(filters or LeaseFilters(), limit)
