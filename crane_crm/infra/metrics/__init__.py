"""Metrics infrastructure for Prometheus monitoring."""

from __future__ import annotations

from prometheus_client import generate_latest

from crane_crm.infra.metrics import prometheus, tracking
from crane_crm.infra.metrics.prometheus import REGISTRY

__all__ = [
    "REGISTRY",
    "generate_latest",
    "prometheus",
    "tracking",
]
