"""Notification tickets and the live-update websocket."""

# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from schoolbook.api.deps import get_dispatcher
from schoolbook.auth.dependencies import require_staff
from schoolbook.notifications.dispatcher import NotificationDispatcher
from schoolbook.schemas.appointments import NotificationTicketOut

router = APIRouter(tags=["live"])


@router.get("/api/notifications/{ticket_id}", response_model=NotificationTicketOut)
async def get_notification(
    ticket_id: str,
    wait: float = Query(default=0.0, ge=0.0, le=30.0, description="Seconds to wait for a pending ticket"),
    dispatcher: NotificationDispatcher | None = Depends(get_dispatcher),
    user: Any = Depends(require_staff),
) -> NotificationTicketOut:
    ticket = None
    if dispatcher is not None:
        ticket = await dispatcher.wait(ticket_id, timeout=wait) if wait else dispatcher.get(ticket_id)
    if ticket is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return NotificationTicketOut.from_ticket(ticket)


@router.websocket("/ws")
async def live_updates(websocket: WebSocket) -> None:
    """Push appointment and availability changes. Incoming messages are ignored."""
    hub = websocket.app.state.hub
    client_id = await hub.connect(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(client_id)
