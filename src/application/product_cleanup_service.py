"""Removes rental data that belongs to a deleted product."""

from dataclasses import dataclass
from typing import Final

from sqlmodel import Session

from ..domain.validation import assert_positive_int
from ..logging_config import get_logger
from ..metrics import record_product_cleanup
from .lease_request_service import LeaseRequestService
from .lease_service import LeaseService

logger: Final = get_logger(__name__)


@dataclass(frozen=True)
class CleanupReport:
    product_id: int
    requests_deleted: int = 0
    leases_deleted: int = 0
    succeeded: bool = True


class ProductCleanupService:
    """Cascade for product removal: requests (with history) first, then leases."""

    def __init__(
        self,
        session: Session | None = None,
        request_service: LeaseRequestService | None = None,
        lease_service: LeaseService | None = None,
    ):
        self.request_service = request_service or LeaseRequestService(session)
        self.lease_service = lease_service or LeaseService(session)

    def handle_product_deletion(
        self, product_id: int, source: str = "hook"
    ) -> CleanupReport:
        """Delete everything that references product_id.

        The product is already gone when this runs, so a failure here is
        logged and reported instead of raised.
        """
        requests_deleted = 0
        leases_deleted = 0
        try:
            product_id = assert_positive_int(product_id, "product_id")
            requests_deleted = self.request_service.delete_by_product_id(product_id)
            leases_deleted = self.lease_service.delete_by_product_id(product_id)
        except Exception as e:
            record_product_cleanup(succeeded=False)
            logger.error(
                "Product cleanup failed",
                product_id=product_id,
                source=source,
                requests_deleted=requests_deleted,
                error_type=type(e).__name__,
                error=str(e),
            )
            return CleanupReport(
                product_id=product_id,
                requests_deleted=requests_deleted,
                leases_deleted=leases_deleted,
                succeeded=False,
            )

        record_product_cleanup(succeeded=True)
        logger.info(
            "Product cleanup completed",
            product_id=product_id,
            source=source,
            requests_deleted=requests_deleted,
            leases_deleted=leases_deleted,
        )
        return CleanupReport(
            product_id=product_id,
            requests_deleted=requests_deleted,
            leases_deleted=leases_deleted,
        )
