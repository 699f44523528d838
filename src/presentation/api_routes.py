from typing import Annotated, Any, Final

from fastapi import APIRouter, Path, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field

from ..application.lease_request_service import LeaseRequestService
from ..constants import API_PREFIX
from ..domain.constants import DATE_FORMATS_DESCRIPTION, DEFAULT_PER_PAGE
from ..domain.entities import Lease as DomainLease
from ..domain.entities import LeaseRequest as DomainLeaseRequest
from ..domain.exceptions import NotFoundError
from ..domain.repositories import LeaseFilters, LeaseRequestFilters
from ..domain.status import LeaseRequestStatus, LeaseStatus
from ..domain.validation import assert_allowed_status
from ..logging_utils import log_user_action
from .dependencies import (
    Actor,
    ActorDep,
    CleanupServiceDep,
    HistoryServiceDep,
    LeaseServiceDep,
    RequestServiceDep,
    ensure_can_create_request,
    ensure_can_update_request,
    ensure_can_view_lease,
    ensure_can_view_request,
    ensure_manages_leases,
    ensure_manages_requests,
    scope_lease_filters,
    scope_request_filters,
)

api_router: Final = APIRouter(
    prefix=API_PREFIX,
    responses={
        400: {"description": "Bad Request - Invalid input or status transition"},
        401: {"description": "Unauthorized - Missing or invalid user headers"},
        403: {"description": "Forbidden - Caller lacks the required rights"},
        404: {"description": "Not Found - Resource does not exist"},
        422: {"description": "Validation Error - Request body validation failed"},
    },
)

RecordId = Annotated[int, Path(gt=0, description="Record id")]


def _wire_to_domain(payload: dict[str, Any]) -> dict[str, Any]:
    """Rename wire field names to entity field names."""
    if "qty" in payload:
        payload["quantity"] = payload.pop("qty")
    return payload


# Request Models
class LeaseRequestCreate(BaseModel):
    """Request model for creating a lease request.

    Dates are validated by the domain so every accepted format works.
    """

    product_id: int = Field(..., description="Product to rent", examples=[42])
    variation_id: int | None = Field(None, description="Product variation, if any")
    requester_id: int | None = Field(
        None, description="Requesting customer; defaults to the caller"
    )
    requesting_vendor_id: int = Field(..., description="Vendor who must respond")
    start_date: str = Field(
        ..., description=DATE_FORMATS_DESCRIPTION, examples=["2026-05-01T10:00"]
    )
    end_date: str = Field(
        ..., description=DATE_FORMATS_DESCRIPTION, examples=["2026-05-03"]
    )
    qty: int = Field(1, description="Number of units")
    notes: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
    total_price: int = Field(..., description="Total price in minor currency units")


class LeaseRequestUpdate(BaseModel):
    """Partial update; only the fields sent are changed.

    Unknown fields are passed through so the domain can reject them.
    """

    model_config = ConfigDict(extra="allow")

    requesting_vendor_id: int | None = None
    variation_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    qty: int | None = None
    notes: str | None = None
    meta: dict[str, Any] | None = None
    status: str | None = None
    total_price: int | None = None


class StatusUpdate(BaseModel):
    status: str = Field(..., examples=["accepted"])


class LeaseCreate(BaseModel):
    product_id: int
    customer_id: int
    start_date: str = Field(..., description=DATE_FORMATS_DESCRIPTION)
    end_date: str = Field(..., description=DATE_FORMATS_DESCRIPTION)
    qty: int = 1
    variation_id: int | None = None
    order_id: int | None = None
    order_item_id: int | None = None
    request_id: int | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class LeaseUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    product_id: int | None = None
    customer_id: int | None = None
    variation_id: int | None = None
    order_id: int | None = None
    order_item_id: int | None = None
    request_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    qty: int | None = None
    meta: dict[str, Any] | None = None
    status: str | None = None


class LeaseFromRequest(BaseModel):
    order_id: int | None = None
    order_item_id: int | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class ProductDeleted(BaseModel):
    product_id: int
    source: str = Field("hook", max_length=50)


# Response Models
class LeaseRequestResponse(BaseModel):
    """A lease request as exposed by the API."""

    id: int
    product_id: int
    variation_id: int | None
    requester_id: int
    requesting_vendor_id: int
    start_date: str = Field(..., examples=["2026-05-01T10:00"])
    end_date: str
    qty: int
    notes: str | None
    meta: dict[str, Any]
    status: LeaseRequestStatus
    total_price: int
    created_at: str | None = Field(None, examples=["2026-04-20 09:15:00"])
    updated_at: str | None = None

    @classmethod
    def from_domain(cls, request: DomainLeaseRequest) -> "LeaseRequestResponse":
        return cls(**request.to_dict())


class LeaseRequestUpdateResponse(LeaseRequestResponse):
    history_recorded: bool | None = Field(
        None,
        description="Whether the status change was added to the history; "
        "null when the status did not change",
    )


class LeaseRequestPage(BaseModel):
    items: list[LeaseRequestResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


class LeaseRequestHistoryResponse(BaseModel):
    request_id: int
    history: list[dict[str, Any]] = Field(
        ..., description="Snapshots of the request before each status change"
    )


class LeaseResponse(BaseModel):
    id: int
    product_id: int
    variation_id: int | None
    order_id: int | None
    order_item_id: int | None
    customer_id: int
    request_id: int | None
    start_date: str
    end_date: str
    qty: int
    meta: dict[str, Any]
    status: LeaseStatus
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_domain(cls, lease: DomainLease) -> "LeaseResponse":
        return cls(**lease.to_dict())


class CleanupResponse(BaseModel):
    product_id: int
    requests_deleted: int
    leases_deleted: int
    succeeded: bool


# Lease request endpoints
@api_router.post(
    "/lease-requests",
    response_model=LeaseRequestResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["lease requests"],
    summary="Create a lease request",
)
def create_lease_request(
    payload: LeaseRequestCreate, actor: ActorDep, service: RequestServiceDep
) -> LeaseRequestResponse:
    data = _wire_to_domain(payload.model_dump())
    if data["requester_id"] is None:
        data["requester_id"] = actor.user_id
    ensure_can_create_request(actor, data["requester_id"])

    created = service.create(data)
    log_user_action("create_lease_request", actor.user_id, request_id=created.id)
    return LeaseRequestResponse.from_domain(created)


@api_router.get(
    "/lease-requests",
    response_model=LeaseRequestPage,
    tags=["lease requests"],
    summary="List lease requests, newest first",
)
def list_lease_requests(
    actor: ActorDep,
    service: RequestServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    product_id: int | None = None,
    requester_id: int | None = None,
    requesting_vendor_id: int | None = None,
    page: int = 1,
    per_page: int = DEFAULT_PER_PAGE,
) -> LeaseRequestPage:
    filters = LeaseRequestFilters(
        status=(
            assert_allowed_status(status_filter, LeaseRequestStatus)
            if status_filter
            else None
        ),
        product_id=product_id,
        requester_id=requester_id,
        requesting_vendor_id=requesting_vendor_id,
    )
    result = service.list(scope_request_filters(actor, filters), page, per_page)
    return LeaseRequestPage(
        items=[LeaseRequestResponse.from_domain(item) for item in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        total_pages=result.total_pages,
    )


@api_router.get(
    "/lease-requests/{request_id}",
    response_model=LeaseRequestResponse,
    tags=["lease requests"],
)
def get_lease_request(
    request_id: RecordId, actor: ActorDep, service: RequestServiceDep
) -> LeaseRequestResponse:
    request = service.get(request_id)
    ensure_can_view_request(actor, request)
    return LeaseRequestResponse.from_domain(request)


def _update_lease_request(
    request_id: int,
    changes: dict[str, Any],
    actor: Actor,
    service: LeaseRequestService,
) -> LeaseRequestUpdateResponse:
    ensure_can_update_request(actor, service.get(request_id), changes)
    result = service.update_fields(request_id, _wire_to_domain(changes))
    log_user_action(
        "update_lease_request",
        actor.user_id,
        request_id=request_id,
        fields=sorted(changes),
        status=result.request.status.value,
    )
    return LeaseRequestUpdateResponse(
        **result.request.to_dict(),
        history_recorded=result.history.appended if result.history else None,
    )


@api_router.patch(
    "/lease-requests/{request_id}",
    response_model=LeaseRequestUpdateResponse,
    tags=["lease requests"],
    summary="Update some fields of a lease request",
)
def update_lease_request(
    request_id: RecordId,
    payload: LeaseRequestUpdate,
    actor: ActorDep,
    service: RequestServiceDep,
) -> LeaseRequestUpdateResponse:
    return _update_lease_request(
        request_id, payload.model_dump(exclude_unset=True), actor, service
    )


@api_router.put(
    "/lease-requests/{request_id}/status",
    response_model=LeaseRequestUpdateResponse,
    tags=["lease requests"],
    summary="Move a lease request to another status",
)
def update_lease_request_status(
    request_id: RecordId,
    payload: StatusUpdate,
    actor: ActorDep,
    service: RequestServiceDep,
) -> LeaseRequestUpdateResponse:
    return _update_lease_request(
        request_id, {"status": payload.status}, actor, service
    )


@api_router.delete(
    "/lease-requests/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["lease requests"],
)
def delete_lease_request(
    request_id: RecordId, actor: ActorDep, service: RequestServiceDep
) -> Response:
    ensure_manages_requests(actor)
    if not service.delete(request_id):
        raise NotFoundError("Lease request", request_id)
    log_user_action("delete_lease_request", actor.user_id, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api_router.get(
    "/lease-requests/{request_id}/history",
    response_model=LeaseRequestHistoryResponse,
    tags=["lease requests"],
    summary="Snapshots recorded before each status change",
)
def get_lease_request_history(
    request_id: RecordId,
    actor: ActorDep,
    service: RequestServiceDep,
    history_service: HistoryServiceDep,
) -> LeaseRequestHistoryResponse:
    ensure_can_view_request(actor, service.get(request_id))
    return LeaseRequestHistoryResponse(
        request_id=request_id, history=history_service.get_snapshots(request_id)
    )


@api_router.post(
    "/lease-requests/{request_id}/lease",
    response_model=LeaseResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["leases"],
    summary="Create the lease for an accepted request",
)
def create_lease_from_request(
    request_id: RecordId,
    actor: ActorDep,
    service: LeaseServiceDep,
    payload: LeaseFromRequest | None = None,
) -> LeaseResponse:
    ensure_manages_leases(actor)
    options = payload or LeaseFromRequest()
    lease = service.create_from_request(
        request_id,
        order_id=options.order_id,
        order_item_id=options.order_item_id,
        meta=options.meta,
    )
    log_user_action(
        "create_lease", actor.user_id, lease_id=lease.id, request_id=request_id
    )
    return LeaseResponse.from_domain(lease)


# Lease endpoints
@api_router.post(
    "/leases",
    response_model=LeaseResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["leases"],
)
def create_lease(
    payload: LeaseCreate, actor: ActorDep, service: LeaseServiceDep
) -> LeaseResponse:
    ensure_manages_leases(actor)
    lease = service.create(_wire_to_domain(payload.model_dump()))
    log_user_action("create_lease", actor.user_id, lease_id=lease.id)
    return LeaseResponse.from_domain(lease)


@api_router.get(
    "/leases",
    response_model=list[LeaseResponse],
    tags=["leases"],
    summary="List the most recent leases",
)
def list_leases(
    actor: ActorDep,
    service: LeaseServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    product_id: int | None = None,
    customer_id: int | None = None,
    request_id: int | None = None,
) -> list[LeaseResponse]:
    filters = LeaseFilters(
        status=(
            assert_allowed_status(status_filter, LeaseStatus) if status_filter else None
        ),
        product_id=product_id,
        customer_id=customer_id,
        request_id=request_id,
    )
    leases = service.list(scope_lease_filters(actor, filters))
    return [LeaseResponse.from_domain(lease) for lease in leases]


@api_router.get("/leases/{lease_id}", response_model=LeaseResponse, tags=["leases"])
def get_lease(
    lease_id: RecordId, actor: ActorDep, service: LeaseServiceDep
) -> LeaseResponse:
    lease = service.get(lease_id)
    ensure_can_view_lease(actor, lease)
    return LeaseResponse.from_domain(lease)


@api_router.patch(
    "/leases/{lease_id}", response_model=LeaseResponse, tags=["leases"]
)
def update_lease(
    lease_id: RecordId,
    payload: LeaseUpdate,
    actor: ActorDep,
    service: LeaseServiceDep,
) -> LeaseResponse:
    ensure_manages_leases(actor)
    changes = payload.model_dump(exclude_unset=True)
    lease = service.update_fields(lease_id, _wire_to_domain(changes))
    log_user_action(
        "update_lease", actor.user_id, lease_id=lease_id, fields=sorted(changes)
    )
    return LeaseResponse.from_domain(lease)


@api_router.put(
    "/leases/{lease_id}/status", response_model=LeaseResponse, tags=["leases"]
)
def update_lease_status(
    lease_id: RecordId,
    payload: StatusUpdate,
    actor: ActorDep,
    service: LeaseServiceDep,
) -> LeaseResponse:
    ensure_manages_leases(actor)
    lease = service.update_status(lease_id, payload.status)
    log_user_action(
        "update_lease_status", actor.user_id, lease_id=lease_id, status=payload.status
    )
    return LeaseResponse.from_domain(lease)


@api_router.delete(
    "/leases/{lease_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["leases"]
)
def delete_lease(
    lease_id: RecordId, actor: ActorDep, service: LeaseServiceDep
) -> Response:
    ensure_manages_leases(actor)
    if not service.delete(lease_id):
        raise NotFoundError("Lease", lease_id)
    log_user_action("delete_lease", actor.user_id, lease_id=lease_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Integration hooks
@api_router.post(
    "/hooks/product-deleted",
    response_model=CleanupResponse,
    tags=["hooks"],
    summary="Remove rental data of a deleted product",
)
def product_deleted(
    payload: ProductDeleted, actor: ActorDep, service: CleanupServiceDep
) -> CleanupResponse:
    ensure_manages_requests(actor)
    ensure_manages_leases(actor)
    report = service.handle_product_deletion(payload.product_id, payload.source)
    log_user_action(
        "product_cleanup",
        actor.user_id,
        product_id=payload.product_id,
        succeeded=report.succeeded,
    )
    return CleanupResponse(
        product_id=report.product_id,
        requests_deleted=report.requests_deleted,
        leases_deleted=report.leases_deleted,
        succeeded=report.succeeded,
    )
