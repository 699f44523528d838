import socket
from contextlib import asynccontextmanager
from typing import Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import settings
from .domain.exceptions import DomainError
from .infrastructure.database.database import get_main_engine
from .infrastructure.database.installer import install
from .logging_config import get_logger, setup_logging
from .logging_utils import log_system_info
from .middleware import log_requests_middleware
from .presentation.admin_routes import admin_router
from .presentation.api_routes import api_router
from .presentation.error_handlers import handle_domain_error, render_error_response
from .presentation.problem_details import ProblemDetailFactory, problem_content
from .request_utils import is_api_request
from .telemetry import setup_telemetry


@asynccontextmanager
async def lifespan(_app: FastAPI):
    setup_logging()
    logger = get_logger(__name__)

    # Create or upgrade the schema once at startup
    install(get_main_engine())

    log_system_info(socket.gethostname(), settings.database_url, settings.debug)

    yield

    logger.info("Application shutdown completed")


app: Final = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan,
    description="""
**Lease Rentals** - rental requests and leases for e-commerce products.

## Workflow

- A customer **requests** a product for a date range
- The vendor answers: counter-offer, ask for payment, accept, decline or cancel
- Every status change keeps a **snapshot** of the previous state in the
  request history
- An accepted request becomes a **lease** (active, completed or cancelled)

## Dates

Dates are accepted as `YYYY-MM-DDTHH:MM`, `YYYY-MM-DD HH:MM:SS` or
`YYYY-MM-DD` and returned as `YYYY-MM-DDTHH:MM` in UTC.

## Authentication

Callers are identified by the `X-User-Id` header. Rental managers send
`X-User-Capabilities: manage_rental_requests,manage_rental_leases`.

## Errors

Errors follow RFC 7807 Problem Details with an extra stable `code` field.
    """.strip(),
    openapi_tags=[
        {
            "name": "lease requests",
            "description": "Create, review and answer rental requests",
        },
        {"name": "leases", "description": "Confirmed rentals"},
        {"name": "hooks", "description": "Integration callbacks from the shop"},
    ],
)

setup_telemetry(app)

app.middleware("http")(log_requests_middleware)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Global handler for domain-specific errors."""
    logger = get_logger(__name__)
    logger.warning(
        "Domain error occurred",
        error_type=type(exc).__name__,
        error_code=exc.code,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return handle_domain_error(exc, request)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Global handler for Pydantic validation errors."""
    logger = get_logger(__name__)
    logger.warning(
        "Request validation error occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
    )

    if is_api_request(request):
        field_errors = []
        for error in exc.errors():
            field_name = ".".join(str(loc) for loc in error["loc"] if loc != "body")
            field_errors.append(
                {
                    "field": field_name or "unknown",
                    "code": error["type"],
                    "message": error["msg"],
                }
            )

        problem = ProblemDetailFactory.request_invalid(
            detail="Request validation failed",
            instance=str(request.url.path),
            field_errors=field_errors,
        )
        return JSONResponse(
            status_code=problem.status, content=problem_content(problem)
        )

    return render_error_response(
        request, "Please check your input and try again.", status_code=422
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Global handler for database errors that escaped the repositories."""
    logger = get_logger(__name__)
    logger.error(
        "Database error occurred",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
    )

    if is_api_request(request):
        problem = ProblemDetailFactory.internal_server_error(
            detail="A database error occurred. Please try again.",
            instance=str(request.url.path),
        )
        return JSONResponse(
            status_code=problem.status, content=problem_content(problem)
        )

    return render_error_response(
        request, "A database error occurred. Please try again.", status_code=500
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Global handler for unexpected errors."""
    logger = get_logger(__name__)
    logger.error(
        "Unexpected error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )

    if is_api_request(request):
        problem = ProblemDetailFactory.internal_server_error(
            instance=str(request.url.path)
        )
        return JSONResponse(
            status_code=problem.status, content=problem_content(problem)
        )

    return render_error_response(
        request, "Something went wrong. Please try again.", status_code=500
    )


app.include_router(api_router)
app.include_router(admin_router)
