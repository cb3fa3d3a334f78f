"""Realtime socket infrastructure."""

from __future__ import annotations

from .manager import (
    ConnectionInfo,
    ConnectionManager,
    get_connection_manager,
    start_connection_manager,
    stop_connection_manager,
)

__all__ = [
    "ConnectionInfo",
    "ConnectionManager",
    "get_connection_manager",
    "start_connection_manager",
    "stop_connection_manager",
]
