"""Admin screens for rental managers."""

from typing import Annotated, Any, Final

from fastapi import APIRouter, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse

from ..config import settings
from ..domain.exceptions import ValidationError
from ..domain.repositories import LeaseFilters, LeaseRequestFilters
from ..domain.status import LeaseRequestStatus, LeaseStatus
from ..domain.validation import assert_allowed_status
from ..logging_config import get_logger
from ..logging_utils import log_user_action
from .dependencies import (
    ActorDep,
    HistoryServiceDep,
    LeaseServiceDep,
    RequestServiceDep,
    ensure_manages_leases,
    ensure_manages_requests,
)
from .error_handlers import templates

logger: Final = get_logger(__name__)

admin_router: Final = APIRouter(prefix="/admin", include_in_schema=False)


def _status_label(value: str) -> str:
    return str(value).capitalize()


templates.env.filters["status_label"] = _status_label


def _optional_int(value: str | None, field: str) -> int | None:
    """Parse an optional numeric form or query value."""
    if value is None or not value.strip():
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{field} must be a whole number", field=field) from None


@admin_router.get("", response_class=RedirectResponse)
def admin_home() -> RedirectResponse:
    return RedirectResponse("/admin/lease-requests", status_code=status.HTTP_302_FOUND)


@admin_router.get("/lease-requests", response_class=HTMLResponse)
def lease_request_list(
    request: Request,
    actor: ActorDep,
    service: RequestServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    product_id: str | None = None,
    page: int = 1,
):
    ensure_manages_requests(actor)
    filters = LeaseRequestFilters(
        status=(
            assert_allowed_status(status_filter, LeaseRequestStatus)
            if status_filter
            else None
        ),
        product_id=_optional_int(product_id, "product_id"),
    )
    result = service.list(filters, page, settings.admin_per_page)

    return templates.TemplateResponse(
        request,
        "admin/lease_requests.html",
        {
            "page": result,
            "statuses": list(LeaseRequestStatus),
            "status_filter": status_filter or "",
            "product_id": product_id or "",
            "settings": settings,
        },
    )


@admin_router.get("/lease-requests/{request_id}", response_class=HTMLResponse)
def lease_request_detail(
    request: Request,
    request_id: int,
    actor: ActorDep,
    service: RequestServiceDep,
    history_service: HistoryServiceDep,
    message: str | None = None,
):
    ensure_manages_requests(actor)
    lease_request = service.get(request_id)
    snapshots = history_service.get_snapshots(request_id)

    return templates.TemplateResponse(
        request,
        "admin/lease_request_detail.html",
        {
            "lease_request": lease_request.to_dict(),
            "history": list(reversed(snapshots)),
            "statuses": list(LeaseRequestStatus),
            "message": message,
            "settings": settings,
        },
    )


@admin_router.post("/lease-requests/{request_id}/status")
def lease_request_change_status(
    request_id: int,
    actor: ActorDep,
    service: RequestServiceDep,
    new_status: Annotated[str, Form(alias="status")],
):
    ensure_manages_requests(actor)
    result = service.update_status(request_id, new_status)
    log_user_action(
        "update_lease_request",
        actor.user_id,
        request_id=request_id,
        status=result.request.status.value,
        source="admin",
    )
    return RedirectResponse(
        f"/admin/lease-requests/{request_id}?message=Status+updated",
        status_code=status.HTTP_303_SEE_OTHER,
    )


@admin_router.post("/lease-requests/{request_id}/delete")
def lease_request_delete(request_id: int, actor: ActorDep, service: RequestServiceDep):
    ensure_manages_requests(actor)
    if service.delete(request_id):
        log_user_action(
            "delete_lease_request", actor.user_id, request_id=request_id, source="admin"
        )
    return RedirectResponse(
        "/admin/lease-requests", status_code=status.HTTP_303_SEE_OTHER
    )


@admin_router.get("/leases", response_class=HTMLResponse)
def lease_list(
    request: Request,
    actor: ActorDep,
    service: LeaseServiceDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    product_id: str | None = None,
):
    ensure_manages_leases(actor)
    filters = LeaseFilters(
        status=(
            assert_allowed_status(status_filter, LeaseStatus) if status_filter else None
        ),
        product_id=_optional_int(product_id, "product_id"),
    )

    return templates.TemplateResponse(
        request,
        "admin/leases.html",
        {
            "leases": [lease.to_dict() for lease in service.list(filters)],
            "statuses": list(LeaseStatus),
            "status_filter": status_filter or "",
            "product_id": product_id or "",
            "settings": settings,
        },
    )


def _render_lease_form(
    request: Request,
    lease: dict[str, Any],
    error: str | None = None,
    status_code: int = status.HTTP_200_OK,
):
    return templates.TemplateResponse(
        request,
        "admin/lease_edit.html",
        {
            "lease": lease,
            "statuses": list(LeaseStatus),
            "error": error,
            "settings": settings,
        },
        status_code=status_code,
    )


@admin_router.get("/leases/{lease_id}/edit", response_class=HTMLResponse)
def lease_edit_form(
    request: Request, lease_id: int, actor: ActorDep, service: LeaseServiceDep
):
    ensure_manages_leases(actor)
    return _render_lease_form(request, service.get(lease_id).to_dict())


@admin_router.post("/leases/{lease_id}/edit", response_class=HTMLResponse)
def lease_edit_submit(
    request: Request,
    lease_id: int,
    actor: ActorDep,
    service: LeaseServiceDep,
    start_date: Annotated[str, Form()],
    end_date: Annotated[str, Form()],
    qty: Annotated[str, Form()],
    new_status: Annotated[str, Form(alias="status")],
    order_id: Annotated[str | None, Form()] = None,
    order_item_id: Annotated[str | None, Form()] = None,
):
    ensure_manages_leases(actor)
    current = service.get(lease_id)

    try:
        changes = {
            "start_date": start_date.strip(),
            "end_date": end_date.strip(),
            "quantity": _optional_int(qty, "qty"),
            "status": new_status,
            "order_id": _optional_int(order_id, "order_id"),
            "order_item_id": _optional_int(order_item_id, "order_item_id"),
        }
        service.update_fields(lease_id, changes)
    except ValidationError as e:
        logger.info("Lease edit rejected", lease_id=lease_id, error=str(e))
        submitted = current.to_dict() | {
            "start_date": start_date,
            "end_date": end_date,
            "qty": qty,
            "status": new_status,
            "order_id": order_id,
            "order_item_id": order_item_id,
        }
        return _render_lease_form(
            request, submitted, error=str(e), status_code=status.HTTP_400_BAD_REQUEST
        )

    log_user_action("update_lease", actor.user_id, lease_id=lease_id, source="admin")
    return RedirectResponse("/admin/leases", status_code=status.HTTP_303_SEE_OTHER)

