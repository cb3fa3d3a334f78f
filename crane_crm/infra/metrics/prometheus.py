"""Prometheus metrics definitions."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

REGISTRY = CollectorRegistry()

DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)

# PDF rendering runs from hundreds of milliseconds up to the timeout
RENDER_LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)

# ============================================================================
# HTTP
# ============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ============================================================================
# Errors
# ============================================================================

errors_total = Counter(
    "errors_total",
    "Total number of errors by type and endpoint",
    ["error_type", "endpoint", "status_code"],
    registry=REGISTRY,
)

exceptions_unhandled_total = Counter(
    "exceptions_unhandled_total",
    "Total number of unhandled exceptions",
    ["exception_type", "endpoint"],
    registry=REGISTRY,
)

validation_errors_total = Counter(
    "validation_errors_total",
    "Total number of request validation errors",
    ["endpoint", "field"],
    registry=REGISTRY,
)

# ============================================================================
# Documents
# ============================================================================

document_renders_total = Counter(
    "document_renders_total",
    "Quotation documents rendered to HTML",
    ["theme"],
    registry=REGISTRY,
)

element_render_errors_total = Counter(
    "element_render_errors_total",
    "Template elements replaced by an error block during rendering",
    ["element_type"],
    registry=REGISTRY,
)

pdf_generations_total = Counter(
    "pdf_generations_total",
    "PDF export attempts by outcome",
    ["outcome"],  # outcome: pdf, fallback, error
    registry=REGISTRY,
)

pdf_generation_seconds = Histogram(
    "pdf_generation_seconds",
    "Time spent converting HTML to PDF",
    buckets=RENDER_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ============================================================================
# Notifications
# ============================================================================

notification_deliveries_total = Counter(
    "notification_deliveries_total",
    "Per-recipient channel delivery attempts",
    ["channel", "success"],
    registry=REGISTRY,
)

notifications_dispatched_total = Counter(
    "notifications_dispatched_total",
    "send_notification calls by event type and result",
    ["notification_type", "result"],  # result: dispatched, skipped
    registry=REGISTRY,
)

scheduled_notifications_processed_total = Counter(
    "scheduled_notifications_processed_total",
    "Scheduled notifications processed by final status",
    ["status"],
    registry=REGISTRY,
)

websocket_connections = Gauge(
    "websocket_connections",
    "Open in-app notification sockets",
    registry=REGISTRY,
)
