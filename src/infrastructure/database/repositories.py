"""Infrastructure layer - Repository implementations."""

from collections.abc import Mapping, Sequence
from typing import Any, NoReturn

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...domain.entities import Lease as DomainLease
from ...domain.entities import LeaseRequest as DomainLeaseRequest
from ...domain.entities import LeaseRequestHistory as DomainLeaseRequestHistory
from ...domain.exceptions import PersistenceError, ValidationError
from ...domain.repositories import (
    LeaseFilters,
    LeaseRequestFilters,
    LockedRecord,
    Page,
    PageRequest,
)
from ...logging_config import get_logger
from ...logging_utils import log_database_operation
from .models import Lease as LeaseModel
from .models import LeaseRequest as LeaseRequestModel
from .models import LeaseRequestHistory as LeaseRequestHistoryModel
from .models import utcnow

logger = get_logger(__name__)


class _SqlRepository:
    """Shared session handling and error mapping for SQL repositories."""

    table: str = ""

    def __init__(self, session: Session):
        self.session = session

    def _fail(self, e: SQLAlchemyError, operation: str, **context: Any) -> NoReturn:
        """Roll back, log and convert a database error into PersistenceError."""
        self.session.rollback()
        log_database_operation(
            operation=operation,
            table=self.table,
            success=False,
            error=str(e),
            **context,
        )
        logger.error(
            "Database operation failed",
            operation=operation,
            table=self.table,
            error_type=type(e).__name__,
            **context,
        )
        raise PersistenceError(
            f"Failed to {operation} {self.table.replace('_', ' ')}",
            operation=operation,
        ) from e

    def _commit(self, operation: str, **context: Any) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail(e, operation, **context)

    def release(self) -> None:
        """End the current transaction without writing, dropping row locks."""
        self.session.rollback()


class LeaseRequestRepository(_SqlRepository):
    """Repository for LeaseRequest persistence operations."""

    table = "lease_requests"

    def add(self, request: DomainLeaseRequest) -> DomainLeaseRequest:
        """Insert a new request; created_at is assigned here."""
        model = LeaseRequestModel.from_domain(request)
        model.id = None
        model.created_at = utcnow()
        model.updated_at = None
        try:
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        except SQLAlchemyError as e:
            self._fail(e, "insert", product_id=request.product_id)

        log_database_operation(
            operation="create", table=self.table, success=True, request_id=model.id
        )
        return model.to_domain()

    def find_by_id(self, request_id: int) -> DomainLeaseRequest | None:
        model = self.session.get(LeaseRequestModel, request_id)
        return model.to_domain() if model else None

    def lock_for_update(
        self, request_id: int
    ) -> LockedRecord[DomainLeaseRequest] | None:
        """Read a request with SELECT ... FOR UPDATE."""
        model = self.session.exec(
            select(LeaseRequestModel)
            .where(LeaseRequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if model is None:
            return None
        return LockedRecord(entity=model.to_domain(), handle=model)

    def save_locked(
        self,
        locked: LockedRecord[DomainLeaseRequest],
        request: DomainLeaseRequest,
    ) -> DomainLeaseRequest:
        """Write a merged request back and stamp updated_at."""
        model: LeaseRequestModel = locked.handle
        model.update_from_domain(request)
        model.updated_at = utcnow()
        self.session.add(model)
        self._commit("update", request_id=model.id)
        self.session.refresh(model)

        log_database_operation(
            operation="update", table=self.table, success=True, request_id=model.id
        )
        return model.to_domain()

    def _where(self, filters: LeaseRequestFilters) -> list[Any]:
        conditions: list[Any] = []
        if filters.status is not None:
            conditions.append(LeaseRequestModel.status == filters.status.value)
        if filters.product_id is not None:
            conditions.append(LeaseRequestModel.product_id == filters.product_id)
        if filters.requester_id is not None:
            conditions.append(LeaseRequestModel.requester_id == filters.requester_id)
        if filters.requesting_vendor_id is not None:
            conditions.append(
                LeaseRequestModel.requesting_vendor_id == filters.requesting_vendor_id
            )
        if filters.participant_id is not None:
            conditions.append(
                or_(
                    LeaseRequestModel.requester_id == filters.participant_id,
                    LeaseRequestModel.requesting_vendor_id == filters.participant_id,
                )
            )
        return conditions

    def find_page(
        self, filters: LeaseRequestFilters, page: PageRequest
    ) -> Page[DomainLeaseRequest]:
        """Newest requests first, with the total count of matching rows."""
        conditions = self._where(filters)

        total = self.session.exec(
            select(func.count()).select_from(LeaseRequestModel).where(*conditions)
        ).one()

        models = self.session.exec(
            select(LeaseRequestModel)
            .where(*conditions)
            .order_by(
                LeaseRequestModel.created_at.desc(),  # type: ignore[attr-defined]
                LeaseRequestModel.id.desc(),  # type: ignore[union-attr]
            )
            .offset(page.offset)
            .limit(page.per_page)
        ).all()

        return Page(
            items=[model.to_domain() for model in models],
            total=int(total),
            page=page.page,
            per_page=page.per_page,
        )

    def delete(self, request_id: int) -> bool:
        """Delete request by ID."""
        model = self.session.get(LeaseRequestModel, request_id)
        if not model:
            return False
        self.session.delete(model)
        self._commit("delete", request_id=request_id)
        log_database_operation(
            operation="delete", table=self.table, success=True, request_id=request_id
        )
        return True

    def delete_by_product_id(self, product_id: int) -> int:
        """Delete a product's requests and their history rows in one commit."""
        models = self.session.exec(
            select(LeaseRequestModel).where(LeaseRequestModel.product_id == product_id)
        ).all()
        if not models:
            return 0
        request_ids = [model.id for model in models]
        history = self.session.exec(
            select(LeaseRequestHistoryModel).where(
                LeaseRequestHistoryModel.request_id.in_(request_ids)  # type: ignore[attr-defined]
            )
        ).all()
        for row in [*models, *history]:
            self.session.delete(row)
        self._commit("delete", product_id=product_id)
        log_database_operation(
            operation="delete",
            table=self.table,
            success=True,
            product_id=product_id,
            rows_affected=len(models),
            history_rows=len(history),
        )
        return len(models)


class LeaseRepository(_SqlRepository):
    """Repository for Lease persistence operations."""

    table = "leases"

    def add(self, lease: DomainLease) -> DomainLease:
        model = LeaseModel.from_domain(lease)
        model.id = None
        model.created_at = utcnow()
        model.updated_at = None
        try:
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        except SQLAlchemyError as e:
            self._fail(e, "insert", product_id=lease.product_id)

        log_database_operation(
            operation="create", table=self.table, success=True, lease_id=model.id
        )
        return model.to_domain()

    def find_by_id(self, lease_id: int) -> DomainLease | None:
        model = self.session.get(LeaseModel, lease_id)
        return model.to_domain() if model else None

    def lock_for_update(self, lease_id: int) -> LockedRecord[DomainLease] | None:
        model = self.session.exec(
            select(LeaseModel)
            .where(LeaseModel.id == lease_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if model is None:
            return None
        return LockedRecord(entity=model.to_domain(), handle=model)

    def save_locked(
        self, locked: LockedRecord[DomainLease], lease: DomainLease
    ) -> DomainLease:
        model: LeaseModel = locked.handle
        model.update_from_domain(lease)
        model.updated_at = utcnow()
        self.session.add(model)
        self._commit("update", lease_id=model.id)
        self.session.refresh(model)

        log_database_operation(
            operation="update", table=self.table, success=True, lease_id=model.id
        )
        return model.to_domain()

    def find_recent(self, filters: LeaseFilters, limit: int) -> list[DomainLease]:
        """Most recently created leases matching the filters."""
        statement = select(LeaseModel)
        if filters.status is not None:
            statement = statement.where(LeaseModel.status == filters.status.value)
        if filters.product_id is not None:
            statement = statement.where(LeaseModel.product_id == filters.product_id)
        if filters.customer_id is not None:
            statement = statement.where(LeaseModel.customer_id == filters.customer_id)
        if filters.request_id is not None:
            statement = statement.where(LeaseModel.request_id == filters.request_id)

        models = self.session.exec(
            statement.order_by(
                LeaseModel.created_at.desc(),  # type: ignore[attr-defined]
                LeaseModel.id.desc(),  # type: ignore[union-attr]
            ).limit(limit)
        ).all()
        return [model.to_domain() for model in models]

    def delete(self, lease_id: int) -> bool:
        model = self.session.get(LeaseModel, lease_id)
        if not model:
            return False
        self.session.delete(model)
        self._commit("delete", lease_id=lease_id)
        log_database_operation(
            operation="delete", table=self.table, success=True, lease_id=lease_id
        )
        return True

    def delete_by_product_id(self, product_id: int) -> int:
        models = self.session.exec(
            select(LeaseModel).where(LeaseModel.product_id == product_id)
        ).all()
        if not models:
            return 0
        for model in models:
            self.session.delete(model)
        self._commit("delete", product_id=product_id)
        log_database_operation(
            operation="delete",
            table=self.table,
            success=True,
            product_id=product_id,
            rows_affected=len(models),
        )
        return len(models)


class LeaseRequestHistoryRepository(_SqlRepository):
    """Repository for lease request history rows."""

    table = "lease_request_history"

    def add(self, history: DomainLeaseRequestHistory) -> DomainLeaseRequestHistory:
        model = LeaseRequestHistoryModel.from_domain(history)
        model.id = None
        model.created_at = utcnow()
        try:
            self.session.add(model)
            self.session.commit()
            self.session.refresh(model)
        except SQLAlchemyError as e:
            self._fail(e, "insert", request_id=history.request_id)
        return model.to_domain()

    def find_by_request_id(self, request_id: int) -> list[DomainLeaseRequestHistory]:
        """All history rows of a request, newest row first."""
        models = self.session.exec(
            select(LeaseRequestHistoryModel)
            .where(LeaseRequestHistoryModel.request_id == request_id)
            .order_by(
                LeaseRequestHistoryModel.created_at.desc(),  # type: ignore[attr-defined]
                LeaseRequestHistoryModel.id.desc(),  # type: ignore[union-attr]
            )
        ).all()
        return [model.to_domain() for model in models]

    def append_snapshot(
        self, history_id: int, snapshot: Mapping[str, Any]
    ) -> DomainLeaseRequestHistory | None:
        """Append one snapshot under a row lock; None if the row is missing."""
        model = self.session.exec(
            select(LeaseRequestHistoryModel)
            .where(LeaseRequestHistoryModel.id == history_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if model is None:
            self.session.rollback()
            return None

        try:
            updated = model.to_domain().appended(snapshot)
        except ValidationError:
            self.session.rollback()
            raise
        # Assign a new list so the JSON column is flagged as modified
        model.history = [dict(entry) for entry in updated.history]
        self.session.add(model)
        self._commit("append", history_id=history_id)
        self.session.refresh(model)
        return model.to_domain()

    def delete_by_request_ids(self, request_ids: Sequence[int]) -> int:
        if not request_ids:
            return 0
        models = self.session.exec(
            select(LeaseRequestHistoryModel).where(
                LeaseRequestHistoryModel.request_id.in_(request_ids)  # type: ignore[attr-defined]
            )
        ).all()
        if not models:
            return 0
        for model in models:
            self.session.delete(model)
        self._commit("delete", request_ids=list(request_ids))
        return len(models)
