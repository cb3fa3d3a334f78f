"""Middleware configuration for FastAPI application."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING
import uuid

from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

from crane_crm.core.settings import get_app_settings
from crane_crm.infra.logging import clear_log_context, set_log_context
from crane_crm.infra.metrics.prometheus import (
    http_request_duration_seconds,
    http_requests_total,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from fastapi import FastAPI, Request, Response

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add a request ID to every request and its logging context.

    The ID is taken from the ``X-Request-ID`` header or generated as a UUID4,
    stored in ``request.state.request_id`` and echoed back on the response.
    The gateway's ``X-User-Id`` header is added to the log context as well.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        context: dict[str, str] = {"request_id": request_id}
        if user_id := request.headers.get("X-User-Id"):
            context["user_id"] = user_id
        set_log_context(**context)

        try:
            response = await call_next(request)
        finally:
            clear_log_context()
        response.headers["X-Request-ID"] = request_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record request counts and durations, linked to traces via exemplars.

    Route templates (``/api/templates/{template_id}``) are used as the
    endpoint label to keep cardinality low.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        method = request.method
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Process-Time"] = f"{time.perf_counter() - start_time:.6f}"
            return response
        finally:
            duration = time.perf_counter() - start_time
            route = request.scope.get("route")
            endpoint = getattr(route, "path", None) or request.url.path

            span_context = trace.get_current_span().get_span_context()
            exemplar = (
                {"trace_id": format(span_context.trace_id, "032x")}
                if span_context.is_valid
                else None
            )
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                duration, exemplar=exemplar
            )
            http_requests_total.labels(
                method=method, endpoint=endpoint, status=status_code
            ).inc(exemplar=exemplar)


def configure_middleware(app: FastAPI) -> None:
    """Configure middleware for the application.

    Middleware added last runs first, so request IDs are assigned before
    metrics and CORS handling.

    Args:
        app: FastAPI application instance.
    """
    app_settings = get_app_settings()

    if app_settings.cors_origins:
        logger.info("Configuring CORS", extra={"origins": app_settings.cors_origins})
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID", "X-PDF-Fallback", "Content-Disposition"],
            max_age=3600,
        )

    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
