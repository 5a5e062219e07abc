from __future__ import annotations

import json
from typing import Any, Dict, Set

import structlog
from fastapi import WebSocket

logger = structlog.get_logger()


class ConnectionManager:
    """Live subscriptions: every open websocket of a user gets their change events."""

    def __init__(self) -> None:
        self.user_id_to_connections: Dict[str, Set[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        connections = self.user_id_to_connections.setdefault(user_id, set())
        connections.add(websocket)
        logger.info("subscription_opened", user_id=user_id, connections=len(connections))

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        connections = self.user_id_to_connections.get(user_id)
        if not connections:
            return
        connections.discard(websocket)
        if not connections:
            self.user_id_to_connections.pop(user_id, None)
        logger.info("subscription_closed", user_id=user_id)

    def subscriber_count(self, user_id: str) -> int:
        return len(self.user_id_to_connections.get(user_id, ()))

    async def send_json(self, user_id: str, payload: Dict[str, Any]) -> None:
        connections = self.user_id_to_connections.get(user_id)
        if not connections:
            return
        message = json.dumps(payload, default=str)
        to_remove: Set[WebSocket] = set()
        for ws in list(connections):
            try:
                await ws.send_text(message)
            except Exception as e:
                logger.warning("subscription_send_failed", user_id=user_id, error=str(e))
                to_remove.add(ws)
        for ws in to_remove:
            self.disconnect(user_id, ws)


manager = ConnectionManager()


async def notify_user(user_id: int | str, payload: Dict[str, Any]) -> None:
    await manager.send_json(str(user_id), payload)
