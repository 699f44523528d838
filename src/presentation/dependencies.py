"""Request-scoped dependencies: caller identity, permissions and services."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import Depends, Header
from sqlmodel import Session

from ..application.history_service import HistoryService
from ..application.lease_request_service import LeaseRequestService
from ..application.lease_service import LeaseService
from ..application.product_cleanup_service import ProductCleanupService
from ..constants import (
    MANAGE_LEASES_CAPABILITY,
    MANAGE_REQUESTS_CAPABILITY,
    USER_CAPABILITIES_HEADER,
    USER_ID_HEADER,
)
from ..domain.entities import Lease, LeaseRequest
from ..domain.exceptions import AuthenticationError, AuthorizationError
from ..domain.repositories import LeaseFilters, LeaseRequestFilters
from ..domain.status import REQUESTER_SETTABLE_STATUSES, LeaseRequestStatus
from ..infrastructure.database.database import get_session
from ..request_utils import parse_capabilities


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an API operation."""

    user_id: int
    capabilities: frozenset[str] = field(default_factory=frozenset)

    @property
    def manages_requests(self) -> bool:
        return MANAGE_REQUESTS_CAPABILITY in self.capabilities

    @property
    def manages_leases(self) -> bool:
        return MANAGE_LEASES_CAPABILITY in self.capabilities


def get_actor(
    user_id: Annotated[str | None, Header(alias=USER_ID_HEADER)] = None,
    capabilities: Annotated[str | None, Header(alias=USER_CAPABILITIES_HEADER)] = None,
) -> Actor:
    """Identify the caller from the user headers set by the gateway.

    Raises:
        AuthenticationError: If the user id header is missing or malformed
    """
    if user_id is None or not user_id.strip():
        raise AuthenticationError(f"Missing {USER_ID_HEADER} header")
    try:
        parsed = int(user_id.strip())
    except ValueError:
        raise AuthenticationError(f"Invalid {USER_ID_HEADER} header") from None
    if parsed <= 0:
        raise AuthenticationError(f"Invalid {USER_ID_HEADER} header")
    return Actor(user_id=parsed, capabilities=parse_capabilities(capabilities))


ActorDep = Annotated[Actor, Depends(get_actor)]
SessionDep = Annotated[Session, Depends(get_session)]


def get_history_service(session: SessionDep) -> HistoryService:
    return HistoryService(session)


def get_lease_request_service(
    session: SessionDep,
    history_service: Annotated[HistoryService, Depends(get_history_service)],
) -> LeaseRequestService:
    return LeaseRequestService(session, history_service=history_service)


def get_lease_service(session: SessionDep) -> LeaseService:
    return LeaseService(session)


def get_product_cleanup_service(
    request_service: Annotated[LeaseRequestService, Depends(get_lease_request_service)],
    lease_service: Annotated[LeaseService, Depends(get_lease_service)],
) -> ProductCleanupService:
    return ProductCleanupService(
        request_service=request_service, lease_service=lease_service
    )


HistoryServiceDep = Annotated[HistoryService, Depends(get_history_service)]
RequestServiceDep = Annotated[LeaseRequestService, Depends(get_lease_request_service)]
LeaseServiceDep = Annotated[LeaseService, Depends(get_lease_service)]
CleanupServiceDep = Annotated[
    ProductCleanupService, Depends(get_product_cleanup_service)
]


# Permission checks


def ensure_can_create_request(actor: Actor, requester_id: Any) -> None:
    if actor.manages_requests or requester_id == actor.user_id:
        return
    raise AuthorizationError("You can only create lease requests for yourself")


def ensure_can_view_request(actor: Actor, request: LeaseRequest) -> None:
    if actor.manages_requests or request.involves(actor.user_id):
        return
    raise AuthorizationError("You do not have access to this lease request")


def ensure_can_update_request(
    actor: Actor, request: LeaseRequest, changes: Mapping[str, Any]
) -> None:
    """Managers and the requesting vendor may change anything.

    The requester may only cancel the request or hand it back to the vendor.
    """
    if actor.manages_requests or actor.user_id == request.requesting_vendor_id:
        return
    if actor.user_id == request.requester_id:
        if set(changes) == {"status"} and _is_requester_settable(changes["status"]):
            return
        raise AuthorizationError(
            "Requesters may only cancel a lease request or return it to the vendor"
        )
    raise AuthorizationError("You do not have access to this lease request")


def _is_requester_settable(value: Any) -> bool:
    try:
        return LeaseRequestStatus(value) in REQUESTER_SETTABLE_STATUSES
    except ValueError:
        return False


def ensure_manages_requests(actor: Actor) -> None:
    if not actor.manages_requests:
        raise AuthorizationError(
            f"The {MANAGE_REQUESTS_CAPABILITY} capability is required"
        )


def ensure_manages_leases(actor: Actor) -> None:
    if not actor.manages_leases:
        raise AuthorizationError(
            f"The {MANAGE_LEASES_CAPABILITY} capability is required"
        )


def ensure_can_view_lease(actor: Actor, lease: Lease) -> None:
    if actor.manages_leases or lease.customer_id == actor.user_id:
        return
    raise AuthorizationError("You do not have access to this lease")


def scope_request_filters(
    actor: Actor, filters: LeaseRequestFilters
) -> LeaseRequestFilters:
    """Restrict a listing to the caller's own requests unless they manage them."""
    if actor.manages_requests:
        return filters
    return LeaseRequestFilters(
        status=filters.status,
        product_id=filters.product_id,
        requester_id=filters.requester_id,
        requesting_vendor_id=filters.requesting_vendor_id,
        participant_id=actor.user_id,
    )


def scope_lease_filters(actor: Actor, filters: LeaseFilters) -> LeaseFilters:
    if actor.manages_leases:
        return filters
    if filters.customer_id not in (None, actor.user_id):
        raise AuthorizationError("You can only list your own leases")
    return LeaseFilters(
        status=filters.status,
        product_id=filters.product_id,
        customer_id=actor.user_id,
        request_id=filters.request_id,
    )
