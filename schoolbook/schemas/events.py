"""SystemEvent schema — the event type that flows through the scheduling app.

Every appointment or availability change emits a SystemEvent. Subscribers
(the activity logger and the websocket hub) consume them asynchronously.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the system."""

    # Appointments
    APPOINTMENT_CREATED = "appointment.created"
    APPOINTMENT_UPDATED = "appointment.updated"
    APPOINTMENT_TEACHER_ASSIGNED = "appointment.teacher_assigned"
    APPOINTMENT_COMPLETED = "appointment.completed"

    # Availabilities
    AVAILABILITY_CREATED = "availability.created"
    AVAILABILITY_DELETED = "availability.deleted"

    # Notifications
    NOTIFICATION_DELIVERED = "notification.delivered"
    NOTIFICATION_FAILED = "notification.failed"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"


# Websocket message type per event family, as the web client expects it
_BROADCAST_TYPES: dict[str, str] = {
    "appointment": "appointmentUpdate",
    "availability": "availabilityUpdate",
}


class SystemEvent(BaseModel):
    """Immutable record of something that happened.

    Consumed by:
    - log_event → structured activity log
    - WebSocketHub → pushes JSON updates to connected browsers
    """

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context
    actor_id: int | None = None
    actor_role: str | None = None

    # Flexible payload
    data: dict[str, Any] = Field(default_factory=dict)

    source_module: str | None = Field(default=None, description="Module that emitted this event")

    @property
    def broadcast_type(self) -> str | None:
        """Websocket message type, or None for events browsers never see."""
        family = self.event_type.value.split(".", 1)[0]
        return _BROADCAST_TYPES.get(family)

    def to_broadcast(self) -> dict[str, Any]:
        """Payload pushed to websocket clients."""
        return {
            "type": self.broadcast_type,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
