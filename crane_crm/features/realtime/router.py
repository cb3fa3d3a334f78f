"""WebSocket router for live notification delivery.

Endpoints:
- WS /ws/notifications?user_id=...: Per-user notification socket
- GET /ws/stats: Connection statistics (admin)
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel

from crane_crm.core.dependencies import CurrentUser, require_roles
from crane_crm.core.settings import get_websocket_settings
from crane_crm.infra.realtime import get_connection_manager

if TYPE_CHECKING:
    from crane_crm.infra.realtime import ConnectionManager

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ws", tags=["realtime"])


class ConnectionStats(BaseModel):
    connections: int
    users: int


@router.websocket("/notifications")
async def notifications_socket(
    websocket: WebSocket,
    user_id: Annotated[str | None, Query(description="User identifier")] = None,
) -> None:
    """Live notification socket keyed by user id.

    Message Protocol:
        Client -> Server:
        - {"type": "ping"}
        - {"type": "pong"}

        Server -> Client:
        - {"type": "connected", "connection_id": "...", "user_id": "..."}
        - {"type": "notification", "id", "title", "message", "notificationType", "priority", "timestamp"}
        - {"type": "ping"} / {"type": "pong"}
        - {"type": "error", "code": "...", "message": "..."}
    """
    if not get_websocket_settings().enabled:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason="WebSocket disabled")
        return
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="user_id is required")
        return

    manager = get_connection_manager()
    connection_id: str | None = None
    try:
        connection_id = await manager.connect(websocket, user_id)
        await websocket.send_json({"type": "connected", "connection_id": connection_id, "user_id": user_id})
        await _handle_messages(websocket, connection_id, manager)

    except ConnectionRefusedError as e:
        logger.warning("WebSocket connection refused", extra={"reason": str(e), "user_id": user_id})
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER, reason=str(e))

    except WebSocketDisconnect:
        logger.debug("WebSocket client disconnected normally")

    except Exception as e:
        logger.exception("WebSocket error", extra={"error": str(e)})

    finally:
        if connection_id is not None:
            await manager.disconnect(connection_id)


async def _handle_messages(
    websocket: WebSocket,
    connection_id: str,
    manager: ConnectionManager,
) -> None:
    async for raw_message in websocket.iter_text():
        manager.touch(connection_id)
        try:
            message = json.loads(raw_message)
        except json.JSONDecodeError:
            await websocket.send_json({"type": "error", "code": "invalid_json", "message": "Invalid JSON"})
            continue

        msg_type = message.get("type") if isinstance(message, dict) else None
        if msg_type == "ping":
            await websocket.send_json({"type": "pong"})
        elif msg_type == "pong":
            continue
        else:
            await websocket.send_json(
                {"type": "error", "code": "unknown_type", "message": f"Unknown message type: {msg_type}"}
            )


@router.get("/stats", response_model=ConnectionStats, summary="WebSocket connection statistics")
async def connection_stats(
    user: Annotated[CurrentUser, Depends(require_roles("admin"))],
) -> ConnectionStats:
    manager = get_connection_manager()
    return ConnectionStats(connections=manager.connection_count, users=manager.user_count)
