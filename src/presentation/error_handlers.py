"""Centralized error handling for the presentation layer."""

from pathlib import Path
from typing import Final

from fastapi import Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.templating import Jinja2Templates

from ..domain.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    InvalidStatusTransitionError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from ..request_utils import is_api_request
from .problem_details import (
    ErrorCodes,
    ProblemDetail,
    ProblemDetailFactory,
    problem_content,
)

TEMPLATES_DIR: Final = Path(__file__).resolve().parents[2] / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

GENERIC_ERROR_MESSAGE: Final = "Something went wrong. Please try again."
PERSISTENCE_ERROR_MESSAGE: Final = "The change could not be saved. Please try again."


class ErrorFormatter:
    """Formats errors for consistent user experience."""

    @staticmethod
    def format_user_friendly_message(error: Exception) -> str:
        """Convert errors to messages that are safe to show to users."""
        if isinstance(error, PersistenceError):
            return PERSISTENCE_ERROR_MESSAGE
        if isinstance(error, DomainError):
            return str(error)
        return GENERIC_ERROR_MESSAGE


def status_code_for(error: DomainError) -> int:
    if isinstance(error, ValidationError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(error, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def problem_for(error: DomainError, instance: str | None = None) -> ProblemDetail:
    """Map a domain error to its Problem Details document."""
    message = ErrorFormatter.format_user_friendly_message(error)

    if isinstance(error, ValidationError):
        return ProblemDetailFactory.validation_failed(
            detail=message,
            instance=instance,
            field_errors=_extract_field_errors(error),
            code=error.code,
        )
    if isinstance(error, NotFoundError):
        return ProblemDetailFactory.not_found(detail=message, instance=instance)
    if isinstance(error, AuthenticationError):
        return ProblemDetailFactory.unauthenticated(detail=message, instance=instance)
    if isinstance(error, AuthorizationError):
        return ProblemDetailFactory.forbidden(detail=message, instance=instance)
    if isinstance(error, PersistenceError):
        return ProblemDetailFactory.internal_server_error(
            detail=message, instance=instance, code=ErrorCodes.PERSISTENCE_ERROR
        )
    return ProblemDetailFactory.internal_server_error(instance=instance)


def handle_domain_error(error: DomainError, request: Request) -> Response:
    """Convert domain errors to Problem Details (API) or an error page (admin)."""
    if is_api_request(request):
        problem = problem_for(error, instance=str(request.url.path))
        return JSONResponse(
            status_code=problem.status, content=problem_content(problem)
        )

    return render_error_response(
        request,
        ErrorFormatter.format_user_friendly_message(error),
        status_code=status_code_for(error),
    )


def render_error_response(
    request: Request, message: str, status_code: int = 400
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": message, "status_code": status_code},
        status_code=status_code,
    )


def _extract_field_errors(error: ValidationError) -> list[dict[str, str]]:
    if not error.field:
        return []
    if isinstance(error, InvalidStatusTransitionError):
        code = ErrorCodes.INVALID_STATUS_TRANSITION
    else:
        code = ErrorCodes.FIELD_INVALID_VALUE
    return [{"field": error.field, "code": code, "message": str(error)}]
