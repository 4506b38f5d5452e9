"""Websocket fan-out of appointment and availability events."""

from __future__ import annotations

import asyncio
import logging
import uuid

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from schoolbook.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


class WebSocketHub:
    """Connected browsers, keyed by a per-connection id."""

    def __init__(self) -> None:
        self._clients: dict[str, WebSocket] = {}
        self._lock = asyncio.Lock()

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> str:
        await websocket.accept()
        client_id = uuid.uuid4().hex
        async with self._lock:
            self._clients[client_id] = websocket
        logger.info("WebSocket client connected: %s", client_id)
        return client_id

    async def disconnect(self, client_id: str) -> None:
        async with self._lock:
            self._clients.pop(client_id, None)
        logger.info("WebSocket client disconnected: %s", client_id)

    async def broadcast(self, event: SystemEvent) -> None:
        """Event subscriber: push the event to every open connection.

        Connections that fail or are no longer open are dropped.
        """
        if event.broadcast_type is None:
            return
        message = event.to_broadcast()

        async with self._lock:
            clients = list(self._clients.items())

        logger.debug("Broadcasting %s to %d clients", message["type"], len(clients))
        dead: list[str] = []
        for client_id, websocket in clients:
            if websocket.application_state != WebSocketState.CONNECTED:
                dead.append(client_id)
                continue
            try:
                await websocket.send_json(message)
            except Exception as exc:
                logger.warning("Dropping websocket client %s: %s", client_id, exc)
                dead.append(client_id)

        if dead:
            async with self._lock:
                for client_id in dead:
                    self._clients.pop(client_id, None)

    async def close_all(self) -> None:
        async with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for websocket in clients:
            try:
                await websocket.close()
            except RuntimeError:
                # already closed by the peer
                continue
