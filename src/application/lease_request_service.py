"""Lease request use cases: create, read, list, update and delete."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from sqlmodel import Session

from ..domain.constants import DEFAULT_PER_PAGE
from ..domain.entities import LeaseRequest as DomainLeaseRequest
from ..domain.exceptions import NotFoundError, PersistenceError, ValidationError
from ..domain.repositories import (
    LeaseRequestFilters,
    LeaseRequestRepository,
    Page,
    PageRequest,
)
from ..domain.status import LeaseRequestStatus
from ..infrastructure.database.repositories import (
    LeaseRequestRepository as SqlLeaseRequestRepository,
)
from ..logging_config import get_logger
from ..metrics import record_lease_request_created, record_status_transition
from .history_service import HistoryAppendOutcome, HistoryService
from .validation import build_entity_with_logging, merge_changes_with_logging

logger: Final = get_logger(__name__)


@dataclass(frozen=True)
class UpdateResult:
    """Updated request plus the outcome of the history write, if one was due."""

    request: DomainLeaseRequest
    history: HistoryAppendOutcome | None = None

    @property
    def status_changed(self) -> bool:
        return self.history is not None


class LeaseRequestService:
    """Application service for LeaseRequest operations."""

    def __init__(
        self,
        session: Session | None = None,
        history_service: HistoryService | None = None,
        request_repo: LeaseRequestRepository | None = None,
    ):
        if request_repo is None:
            if session is None:
                raise ValueError("LeaseRequestService needs a session or a repository")
            request_repo = SqlLeaseRequestRepository(session)
        self.request_repo = request_repo
        self.history_service = history_service or HistoryService(session)

    def create(
        self, request: DomainLeaseRequest | Mapping[str, Any]
    ) -> DomainLeaseRequest:
        """Validate and persist a new request, then open its history row.

        Raises:
            ValidationError: If the request violates an invariant
            PersistenceError: If the store rejects the insert
        """
        if not isinstance(request, DomainLeaseRequest):
            request = build_entity_with_logging(
                DomainLeaseRequest, request, "lease request"
            )

        created = self.request_repo.add(request)
        if created.id is None:
            raise PersistenceError(
                "Lease request was stored without an id", operation="insert"
            )

        try:
            self.history_service.create_for_request(created.id)
        except PersistenceError as e:
            # The first transition creates the row if this one is missing
            logger.warning(
                "History row not created", request_id=created.id, error=str(e)
            )

        record_lease_request_created()
        logger.info(
            "Lease request created",
            request_id=created.id,
            product_id=created.product_id,
            requester_id=created.requester_id,
        )
        return created

    def find_by_id(self, request_id: int) -> DomainLeaseRequest | None:
        return self.request_repo.find_by_id(request_id)

    def get(self, request_id: int) -> DomainLeaseRequest:
        """Get a request or raise NotFoundError."""
        request = self.find_by_id(request_id)
        if request is None:
            raise NotFoundError("Lease request", request_id)
        return request

    def list(
        self,
        filters: LeaseRequestFilters | None = None,
        page: int | None = 1,
        per_page: int | None = DEFAULT_PER_PAGE,
    ) -> Page[DomainLeaseRequest]:
        """Newest requests first; page and per_page are clamped, never rejected."""
        return self.request_repo.find_page(
            filters or LeaseRequestFilters(), PageRequest.clamp(page, per_page)
        )

    def update_fields(
        self, request_id: int, changes: Mapping[str, Any]
    ) -> UpdateResult:
        """Apply a partial update under a row lock.

        Only keys present in changes are touched. When the status moves to a
        different value the stored pre-change snapshot is appended to the
        request history after the update is committed.

        Raises:
            NotFoundError: If the request does not exist
            ValidationError: If the change set is empty, names unknown fields,
                breaks an invariant or is an illegal status transition
            PersistenceError: If the store rejects the write
        """
        locked = self.request_repo.lock_for_update(request_id)
        if locked is None:
            self.request_repo.release()
            raise NotFoundError("Lease request", request_id)

        current = locked.entity
        try:
            merged = merge_changes_with_logging(current, changes, "lease request")
        except ValidationError:
            self.request_repo.release()
            raise

        status_changed = merged.status != current.status
        saved = self.request_repo.save_locked(locked, merged)

        if not status_changed:
            logger.info(
                "Lease request updated", request_id=request_id, fields=sorted(changes)
            )
            return UpdateResult(request=saved)

        record_status_transition(
            "lease_request", current.status.value, saved.status.value
        )
        logger.info(
            "Lease request status changed",
            request_id=request_id,
            from_status=current.status.value,
            to_status=saved.status.value,
        )
        outcome = self.history_service.record_transition(request_id, current.to_dict())
        return UpdateResult(request=saved, history=outcome)

    def update_status(
        self, request_id: int, status: LeaseRequestStatus | str
    ) -> UpdateResult:
        return self.update_fields(request_id, {"status": status})

    def delete(self, request_id: int) -> bool:
        """Delete a request; False when there was nothing to delete."""
        deleted = self.request_repo.delete(request_id)
        if deleted:
            logger.info("Lease request deleted", request_id=request_id)
        return deleted

    def delete_by_product_id(self, product_id: int) -> int:
        """Delete all requests of a product together with their history.

        Both go in one transaction, so a failure leaves requests and history
        as they were.
        """
        deleted = self.request_repo.delete_by_product_id(product_id)
        logger.info(
            "Lease requests deleted for product", product_id=product_id, count=deleted
        )
        return deleted
