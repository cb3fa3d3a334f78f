"""Prometheus metrics endpoint for observability.

Endpoints:
    GET /metrics - Prometheus scrape endpoint

Metrics Exposed:
    - http_requests_total / http_request_duration_seconds
    - document_renders_total / element_render_errors_total
    - pdf_generations_total / pdf_generation_seconds
    - notification_deliveries_total / notifications_dispatched_total
    - scheduled_notifications_processed_total
    - websocket_connections
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from crane_crm.infra.metrics.prometheus import REGISTRY

router = APIRouter(tags=["observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    response_class=Response,
    include_in_schema=False,
)
async def metrics() -> Response:
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
