"""Request-scoped dependencies.

Everything long-lived (settings, database, dispatcher, websocket hub) is
created in the application lifespan and read from ``app.state``; stores and
services are built per request on top of it.
"""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from schoolbook.config import Settings
from schoolbook.db.engine import get_session
from schoolbook.notifications.dispatcher import NotificationDispatcher
from schoolbook.scheduling.availability import AvailabilityService
from schoolbook.scheduling.service import AppointmentService
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.scheduling.transitions import TransitionPolicy


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> NotificationDispatcher | None:
    return getattr(request.app.state, "dispatcher", None)


async def get_store(db: AsyncSession = Depends(get_session)) -> SqlSchedulingStore:  # noqa: B008
    return SqlSchedulingStore(db)


def get_appointment_service(
    store: SqlSchedulingStore = Depends(get_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
    dispatcher: NotificationDispatcher | None = Depends(get_dispatcher),  # noqa: B008
) -> AppointmentService:
    return AppointmentService(
        store,
        dispatcher,
        policy=TransitionPolicy(rejected_is_terminal=settings.scheduling.rejected_is_terminal),
        school_tz=settings.scheduling.school_tz,
        frontend_url=settings.scheduling.frontend_url,
    )


def get_availability_service(
    store: SqlSchedulingStore = Depends(get_store),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> AvailabilityService:
    return AvailabilityService(store, school_tz=settings.scheduling.school_tz)
