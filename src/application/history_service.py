"""Lease request history: one row per request holding a growing snapshot list."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final

from sqlmodel import Session

from ..domain.entities import LeaseRequestHistory as DomainLeaseRequestHistory
from ..domain.exceptions import NotFoundError, PersistenceError
from ..domain.repositories import LeaseRequestHistoryRepository
from ..infrastructure.database.repositories import (
    LeaseRequestHistoryRepository as SqlLeaseRequestHistoryRepository,
)
from ..logging_config import get_logger
from ..metrics import record_history_append_failure

logger: Final = get_logger(__name__)


@dataclass(frozen=True)
class HistoryAppendOutcome:
    """Result of the secondary history write that follows a status change."""

    appended: bool
    history_id: int | None = None
    error: str | None = None


class HistoryService:
    """Application service for lease request history rows."""

    def __init__(
        self,
        session: Session | None = None,
        history_repo: LeaseRequestHistoryRepository | None = None,
    ):
        if history_repo is None:
            if session is None:
                raise ValueError("HistoryService needs a session or a repository")
            history_repo = SqlLeaseRequestHistoryRepository(session)
        self.history_repo = history_repo

    def create(self, history: DomainLeaseRequestHistory) -> DomainLeaseRequestHistory:
        """Persist a history row (normally with an empty snapshot list)."""
        created = self.history_repo.add(history)
        logger.debug(
            "History row created", history_id=created.id, request_id=created.request_id
        )
        return created

    def create_for_request(self, request_id: int) -> DomainLeaseRequestHistory:
        return self.create(DomainLeaseRequestHistory(request_id=request_id))

    def find_by_request_id(self, request_id: int) -> list[DomainLeaseRequestHistory]:
        """All history rows of a request, newest first."""
        return self.history_repo.find_by_request_id(request_id)

    def get_snapshots(self, request_id: int) -> list[dict[str, Any]]:
        """Every recorded snapshot of a request in chronological order."""
        snapshots: list[dict[str, Any]] = []
        for row in reversed(self.find_by_request_id(request_id)):
            snapshots.extend(dict(snapshot) for snapshot in row.history)
        return snapshots

    def append_snapshot(
        self, history_id: int, snapshot: Mapping[str, Any]
    ) -> DomainLeaseRequestHistory:
        """Append one snapshot to the end of a history row.

        Raises:
            NotFoundError: If the history row does not exist
            ValidationError: If the snapshot is not JSON encodable
            PersistenceError: If the store rejects the write
        """
        updated = self.history_repo.append_snapshot(history_id, snapshot)
        if updated is None:
            raise NotFoundError("Lease request history", history_id)
        logger.debug(
            "Snapshot appended",
            history_id=history_id,
            entries=len(updated.history),
        )
        return updated

    def record_transition(
        self, request_id: int, snapshot: Mapping[str, Any]
    ) -> HistoryAppendOutcome:
        """Append the pre-change snapshot of a request, creating the row if needed.

        This is a best-effort secondary write: failures are logged and
        reported in the outcome, never raised.
        """
        history_id: int | None = None
        try:
            rows = self.find_by_request_id(request_id)
            row = rows[0] if rows else self.create_for_request(request_id)
            history_id = row.id
            if history_id is None:
                raise PersistenceError(
                    "History row was stored without an id", operation="insert"
                )
            self.append_snapshot(history_id, snapshot)
        except Exception as e:
            record_history_append_failure()
            logger.warning(
                "Failed to record lease request history",
                request_id=request_id,
                history_id=history_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return HistoryAppendOutcome(
                appended=False, history_id=history_id, error=str(e)
            )

        logger.info(
            "Status transition recorded", request_id=request_id, history_id=history_id
        )
        return HistoryAppendOutcome(appended=True, history_id=history_id)

    def delete_by_request_id(self, request_id: int) -> int:
        return self.delete_by_request_ids([request_id])

    def delete_by_request_ids(self, request_ids: Sequence[int]) -> int:
        """Remove all history rows of the given requests; returns the count."""
        deleted = self.history_repo.delete_by_request_ids(list(request_ids))
        if deleted:
            logger.info("History rows deleted", count=deleted, request_ids=request_ids)
        return deleted
