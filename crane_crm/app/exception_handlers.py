"""Global exception handlers for FastAPI application."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from crane_crm.core.exceptions import AppException
from crane_crm.core.schemas.problem_details import (
    FieldError,
    ProblemDetails,
    ValidationProblemDetails,
)
from crane_crm.infra.metrics import tracking

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _problem_response(
    request: Request,
    status_code: int,
    data: dict[str, Any],
) -> JSONResponse:
    request_id = _get_request_id(request)
    if request_id:
        data["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=data, media_type=PROBLEM_JSON)


def _create_problem_detail(
    status_code: int,
    detail: str,
    type_: str = "about:blank",
    title: str | None = None,
    instance: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create RFC 7807 Problem Details response body.

    Args:
        status_code: HTTP status code.
        detail: Human-readable error description.
        type_: Error type identifier.
        title: Short human-readable summary.
        instance: URI identifying this occurrence.
        extra: Additional context information.

    Returns:
        Dictionary representing the problem detail.
    """
    problem = ProblemDetails(
        type=type_,
        title=title or AppException._default_title(status_code),
        status=status_code,
        detail=detail,
        instance=instance,
    )
    response_data = problem.model_dump(exclude_none=True)
    if extra:
        response_data.update(extra)
    return response_data


def _field_errors(errors: list[Any]) -> list[FieldError]:
    return [
        FieldError(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            type=error["type"],
            value=error.get("input"),
        )
        for error in errors
    ]


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert AppException instances into RFC 7807 Problem Details responses.

    Args:
        request: The FastAPI request object.
        exc: The application exception that was raised.

    Returns:
        JSONResponse with RFC 7807 Problem Details format.
    """
    tracking.track_error(
        error_type=exc.type,
        endpoint=request.url.path,
        status_code=exc.status_code,
        extra={"detail": exc.detail},
    )
    logger.warning(
        "Application exception occurred",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "exception_type": exc.type,
            "status_code": exc.status_code,
            "detail": exc.detail,
        },
    )

    problem_data = _create_problem_detail(
        status_code=exc.status_code,
        detail=exc.detail,
        type_=exc.type,
        title=exc.title,
        instance=exc.instance or request.url.path,
        extra=exc.extra,
    )
    return _problem_response(request, exc.status_code, problem_data)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert request validation errors into field-level problem details.

    Args:
        request: The FastAPI request object.
        exc: The validation error that was raised.

    Returns:
        JSONResponse with RFC 7807 Problem Details format.
    """
    validation_errors = _field_errors(list(exc.errors()))
    for error in validation_errors:
        tracking.track_validation_error(request.url.path, error.field)

    logger.warning(
        "Request validation failed",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "error_count": len(validation_errors),
            "errors": [e.model_dump(exclude={"value"}) for e in validation_errors],
        },
    )

    problem = ValidationProblemDetails(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Request validation failed for {len(validation_errors)} field(s)",
        instance=request.url.path,
        errors=validation_errors,
    )
    return _problem_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        problem.model_dump(mode="json", exclude_none=True),
    )


async def pydantic_validation_exception_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors raised outside request parsing."""
    validation_errors = _field_errors(list(exc.errors()))
    logger.warning(
        "Pydantic validation failed",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "error_count": len(validation_errors),
        },
    )

    problem = ValidationProblemDetails(
        type="validation-error",
        title="Validation Error",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=f"Data validation failed for {len(validation_errors)} field(s)",
        instance=request.url.path,
        errors=validation_errors,
    )
    return _problem_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        problem.model_dump(mode="json", exclude_none=True),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: log the traceback and return a generic 500."""
    tracking.track_unhandled_exception(
        exception_type=type(exc).__name__,
        endpoint=request.url.path,
    )
    logger.error(
        "Unexpected exception occurred",
        extra={
            "request_id": _get_request_id(request),
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
        },
        exc_info=True,
    )

    # Internal details are never exposed to the client.
    problem_data = _create_problem_detail(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred while processing your request",
        type_="internal-error",
        title="Internal Server Error",
        instance=request.url.path,
    )
    return _problem_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, problem_data)


def configure_exception_handlers(app: FastAPI) -> None:
    """Register the problem-details exception handlers.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PydanticValidationError, pydantic_validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers configured")
