"""In-process registry of live notification sockets, keyed by user id.

Each authenticated browser tab holds one WebSocket. The notification engine
pushes pre-rendered payloads to every socket of a user and treats the push as
fire-and-forget: a failed send drops the socket and is only logged.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
import contextlib
from dataclasses import dataclass, field
import logging
import time
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from crane_crm.core.settings import get_websocket_settings
from crane_crm.infra.metrics import prometheus

if TYPE_CHECKING:
    from fastapi import WebSocket

    from crane_crm.core.settings.websocket import WebSocketSettings

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    """Metadata about a WebSocket connection."""

    connection_id: str
    websocket: WebSocket
    user_id: str
    connected_at: float = field(default_factory=time.time)
    last_seen: float = field(default_factory=time.time)


class ConnectionManager:
    """Tracks notification sockets per user and fans messages out to them.

    Example:
        manager = get_connection_manager()
        connection_id = await manager.connect(websocket, user_id="u1")
        try:
            async for message in websocket.iter_json():
                ...
        finally:
            await manager.disconnect(connection_id)

        await manager.send_to_user("u1", {"type": "notification", "id": 7})
    """

    def __init__(self, settings: WebSocketSettings | None = None) -> None:
        self._settings = settings or get_websocket_settings()
        self._connections: dict[str, ConnectionInfo] = {}
        # user_id -> connection ids
        self._user_connections: dict[str, set[str]] = defaultdict(set)
        self._heartbeat_task: asyncio.Task | None = None
        self._running = False

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self._settings.heartbeat_interval > 0:
            self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info(
            "Connection manager started",
            extra={"heartbeat_interval": self._settings.heartbeat_interval},
        )

    async def stop(self) -> None:
        """Cancel the heartbeat and close every open socket."""
        self._running = False
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self._heartbeat_task = None

        closed = len(self._connections)
        for conn_info in list(self._connections.values()):
            with contextlib.suppress(Exception):
                await conn_info.websocket.close(code=1001, reason="Server shutdown")
        self._connections.clear()
        self._user_connections.clear()
        self._update_connection_metrics()
        logger.info("Connection manager stopped", extra={"connections_closed": closed})

    async def connect(self, websocket: WebSocket, user_id: str) -> str:
        """Accept a socket for ``user_id`` and register it.

        Raises:
            ConnectionRefusedError: If the instance or per-user limit is reached.
        """
        if len(self._connections) >= self._settings.max_connections:
            logger.warning(
                "Connection refused: max connections reached",
                extra={"max": self._settings.max_connections},
            )
            raise ConnectionRefusedError("Maximum connections reached")
        if len(self._user_connections.get(user_id, ())) >= self._settings.max_connections_per_user:
            logger.warning(
                "Connection refused: per-user limit reached",
                extra={"user_id": user_id, "max": self._settings.max_connections_per_user},
            )
            raise ConnectionRefusedError("Maximum connections per user reached")

        await websocket.accept()
        connection_id = str(uuid4())
        self._connections[connection_id] = ConnectionInfo(
            connection_id=connection_id, websocket=websocket, user_id=user_id
        )
        self._user_connections[user_id].add(connection_id)
        self._update_connection_metrics()

        logger.info(
            "WebSocket connected",
            extra={
                "connection_id": connection_id,
                "user_id": user_id,
                "total_connections": len(self._connections),
            },
        )
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        conn_info = self._connections.pop(connection_id, None)
        if conn_info is None:
            return

        user_ids = self._user_connections.get(conn_info.user_id)
        if user_ids is not None:
            user_ids.discard(connection_id)
            if not user_ids:
                del self._user_connections[conn_info.user_id]

        with contextlib.suppress(Exception):
            await conn_info.websocket.close()
        self._update_connection_metrics()

        logger.info(
            "WebSocket disconnected",
            extra={
                "connection_id": connection_id,
                "user_id": conn_info.user_id,
                "duration_seconds": round(time.time() - conn_info.connected_at, 3),
                "total_connections": len(self._connections),
            },
        )

    def touch(self, connection_id: str) -> None:
        """Record client activity on a connection."""
        conn_info = self._connections.get(connection_id)
        if conn_info is not None:
            conn_info.last_seen = time.time()

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        conn_info = self._connections.get(connection_id)
        if conn_info is None:
            return False
        try:
            await conn_info.websocket.send_json(message)
        except Exception as e:
            logger.warning(
                "Failed to send message to connection",
                extra={"connection_id": connection_id, "error": str(e)},
            )
            await self.disconnect(connection_id)
            return False
        return True

    async def send_to_user(self, user_id: str, message: dict[str, Any]) -> int:
        """Send ``message`` to every live socket of ``user_id``.

        Returns:
            Number of sockets the message reached.
        """
        count = 0
        for connection_id in list(self._user_connections.get(user_id, ())):
            if await self.send_to_connection(connection_id, message):
                count += 1
        return count

    def is_connected(self, user_id: str) -> bool:
        return bool(self._user_connections.get(user_id))

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def user_count(self) -> int:
        return len(self._user_connections)

    async def _heartbeat_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self._settings.heartbeat_interval)
                await self.heartbeat()
        except asyncio.CancelledError:
            pass

    async def heartbeat(self) -> None:
        """Close sockets idle past ``idle_timeout`` and ping the rest."""
        now = time.time()
        idle_timeout = self._settings.idle_timeout
        for connection_id, conn_info in list(self._connections.items()):
            if idle_timeout and now - conn_info.last_seen > idle_timeout:
                logger.info(
                    "Closing idle WebSocket",
                    extra={"connection_id": connection_id, "user_id": conn_info.user_id},
                )
                await self.disconnect(connection_id)
                continue
            await self.send_to_connection(connection_id, {"type": "ping"})

    def _update_connection_metrics(self) -> None:
        prometheus.websocket_connections.set(len(self._connections))


_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the process-wide connection manager, creating it on first use."""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager


async def start_connection_manager() -> ConnectionManager:
    manager = get_connection_manager()
    await manager.start()
    return manager


async def stop_connection_manager() -> None:
    global _manager
    if _manager is not None:
        await _manager.stop()
        _manager = None
