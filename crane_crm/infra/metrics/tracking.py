"""Helper functions for tracking operational metrics."""

from __future__ import annotations

import logging
from typing import Any

from crane_crm.infra.metrics import prometheus

logger = logging.getLogger(__name__)


def track_error(
    error_type: str,
    endpoint: str,
    status_code: int,
    extra: dict[str, Any] | None = None,
) -> None:
    """Track an error occurrence.

    Args:
        error_type: Type of error (e.g., 'validation-error', 'template-not-found')
        endpoint: API endpoint where error occurred
        status_code: HTTP status code
        extra: Additional context for logging
    """
    prometheus.errors_total.labels(
        error_type=error_type,
        endpoint=endpoint,
        status_code=str(status_code),
    ).inc()

    logger.debug(
        "Tracked error: %s",
        error_type,
        extra={"endpoint": endpoint, "status_code": status_code, **(extra or {})},
    )


def track_validation_error(endpoint: str, field: str) -> None:
    """Track a validation error for a specific field."""
    prometheus.validation_errors_total.labels(endpoint=endpoint, field=field).inc()


def track_unhandled_exception(exception_type: str, endpoint: str) -> None:
    """Track an unhandled exception."""
    prometheus.exceptions_unhandled_total.labels(
        exception_type=exception_type,
        endpoint=endpoint,
    ).inc()


def track_document_render(theme: str) -> None:
    prometheus.document_renders_total.labels(theme=theme).inc()


def track_element_error(element_type: str) -> None:
    prometheus.element_render_errors_total.labels(element_type=element_type).inc()


def track_pdf_generation(outcome: str, duration: float | None = None) -> None:
    """Record a PDF export outcome and, when known, its duration."""
    prometheus.pdf_generations_total.labels(outcome=outcome).inc()
    if duration is not None:
        prometheus.pdf_generation_seconds.observe(duration)


def track_delivery(channel: str, success: bool) -> None:
    prometheus.notification_deliveries_total.labels(
        channel=channel, success=str(success).lower()
    ).inc()


def track_dispatch(notification_type: str, dispatched: bool) -> None:
    prometheus.notifications_dispatched_total.labels(
        notification_type=notification_type,
        result="dispatched" if dispatched else "skipped",
    ).inc()


def track_scheduled(status: str) -> None:
    prometheus.scheduled_notifications_processed_total.labels(status=status).inc()
