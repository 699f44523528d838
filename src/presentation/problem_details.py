"""RFC 7807 Problem Details for HTTP APIs."""

from typing import Any

from pydantic import BaseModel, Field

PROBLEM_TYPE_BASE = "https://lease-rentals.dev/problems/"


class ErrorCodes:
    """Stable machine readable error codes."""

    VALIDATION_FAILED = "validation_failed"
    INVALID_STATUS_TRANSITION = "invalid_status_transition"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    PERSISTENCE_ERROR = "persistence_error"
    INTERNAL_ERROR = "internal_error"

    # Field level
    FIELD_INVALID_VALUE = "field_invalid_value"


class FieldError(BaseModel):
    field: str
    code: str
    message: str


class ProblemDetail(BaseModel):
    """Problem Details object (RFC 7807) with an extra stable code."""

    type: str = Field(default="about:blank", description="Problem type URI")
    title: str = Field(description="Short summary of the problem type")
    status: int = Field(description="HTTP status code")
    detail: str | None = Field(default=None, description="Occurrence explanation")
    instance: str | None = Field(default=None, description="Request path")
    code: str = Field(description="Machine readable error code")


class ValidationProblemDetail(ProblemDetail):
    errors: list[FieldError] = Field(default_factory=list)


def _problem_type(code: str) -> str:
    return PROBLEM_TYPE_BASE + code.replace("_", "-")


class ProblemDetailFactory:
    """Builds the problem documents the API returns."""

    @staticmethod
    def validation_failed(
        detail: str,
        instance: str | None = None,
        field_errors: list[dict[str, str]] | None = None,
        code: str = ErrorCodes.VALIDATION_FAILED,
    ) -> ValidationProblemDetail:
        return ValidationProblemDetail(
            type=_problem_type(code),
            title="Validation Failed",
            status=400,
            detail=detail,
            instance=instance,
            code=code,
            errors=[FieldError(**error) for error in field_errors or []],
        )

    @staticmethod
    def request_invalid(
        detail: str, instance: str | None, field_errors: list[dict[str, str]]
    ) -> ValidationProblemDetail:
        """Malformed request body or parameters (framework level validation)."""
        problem = ProblemDetailFactory.validation_failed(detail, instance, field_errors)
        problem.status = 422
        return problem

    @staticmethod
    def not_found(detail: str, instance: str | None = None) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.NOT_FOUND),
            title="Resource Not Found",
            status=404,
            detail=detail,
            instance=instance,
            code=ErrorCodes.NOT_FOUND,
        )

    @staticmethod
    def unauthenticated(detail: str, instance: str | None = None) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.UNAUTHENTICATED),
            title="Authentication Required",
            status=401,
            detail=detail,
            instance=instance,
            code=ErrorCodes.UNAUTHENTICATED,
        )

    @staticmethod
    def forbidden(detail: str, instance: str | None = None) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(ErrorCodes.FORBIDDEN),
            title="Forbidden",
            status=403,
            detail=detail,
            instance=instance,
            code=ErrorCodes.FORBIDDEN,
        )

    @staticmethod
    def internal_server_error(
        detail: str = "An unexpected error occurred. Please try again.",
        instance: str | None = None,
        code: str = ErrorCodes.INTERNAL_ERROR,
    ) -> ProblemDetail:
        return ProblemDetail(
            type=_problem_type(code),
            title="Internal Server Error",
            status=500,
            detail=detail,
            instance=instance,
            code=code,
        )


def problem_content(problem: ProblemDetail) -> dict[str, Any]:
    return problem.model_dump(exclude_none=True)
