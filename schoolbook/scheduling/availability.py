"""Teacher availability slots."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from schoolbook.realtime.events import emit
from schoolbook.scheduling.errors import NotFoundError, SchedulingError, ValidationError
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.scheduling.timewindow import to_school_time, today_window
from schoolbook.schemas.availability import AvailabilityCreate, AvailabilityOut
from schoolbook.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Create, list and delete a teacher's free slots. Slots are never merged."""

    def __init__(
        self,
        store: SqlSchedulingStore,
        *,
        school_tz: timezone = timezone.utc,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.store = store
        self.school_tz = school_tz
        self.clock = clock

    async def create(self, teacher: Any, request: AvailabilityCreate) -> Any:
        start = to_school_time(request.start_time, self.school_tz)
        end = to_school_time(request.end_time, self.school_tz)
        if end <= start:
            raise ValidationError("endTime must be after startTime")

        try:
            availability = await self.store.insert_availability(
                {"teacher_id": teacher.id, "start_time": start, "end_time": end}
            )
            await self.store.commit()
        except SchedulingError:
            await self.store.rollback()
            raise

        logger.info("Availability %s created for teacher %s", availability.id, teacher.id)
        await emit(SystemEvent(
            event_type=EventType.AVAILABILITY_CREATED,
            actor_id=teacher.id,
            actor_role=teacher.role,
            data={
                "action": "create",
                "availability": AvailabilityOut.model_validate(availability).model_dump(mode="json", by_alias=True),
            },
            source_module="scheduling.availability",
        ))
        return availability

    async def list_today(self, teacher_id: int | None = None) -> list[Any]:
        """Slots falling entirely inside today, school time."""
        window = today_window(self.school_tz, self.clock())
        return await self.store.list_availabilities(teacher_id=teacher_id, window=window)

    async def delete_own(self, teacher: Any, availability_id: int) -> None:
        """Delete a slot. Slots of other teachers are reported as missing."""
        try:
            availability = await self.store.get_availability(availability_id)
            if availability is None or availability.teacher_id != teacher.id:
                raise NotFoundError("availability", availability_id)
            await self.store.delete_availability(availability)
            await self.store.commit()
        except SchedulingError:
            await self.store.rollback()
            raise

        logger.info("Availability %s deleted by teacher %s", availability_id, teacher.id)
        await emit(SystemEvent(
            event_type=EventType.AVAILABILITY_DELETED,
            actor_id=teacher.id,
            actor_role=teacher.role,
            data={"action": "delete", "availabilityId": availability_id},
            source_module="scheduling.availability",
        ))
