"""Persistence for the scheduling core.

``SchedulingStore`` is the contract the services depend on;
``SqlSchedulingStore`` implements it over one SQLAlchemy ``AsyncSession``.
Every SQLAlchemy failure leaves this module as a ``StorageError`` (or a
``DuplicateBookingError`` when the student/start_time constraint fires).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import distinct, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from schoolbook.models.appointment import Appointment
from schoolbook.models.availability import Availability
from schoolbook.models.independent_assignment import IndependentAssignment
from schoolbook.models.questionnaire import QuestionnaireResponse
from schoolbook.models.user import User
from schoolbook.scheduling.errors import DuplicateBookingError, StorageError
from schoolbook.scheduling.timewindow import TimeWindow

logger = logging.getLogger(__name__)

_BOOKING_CONSTRAINT = "uq_appointments_student_start"


class SchedulingStore(Protocol):
    """What the scheduling services need from persistence."""

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    async def get_user(self, user_id: int) -> Any | None: ...

    async def list_users_by_role(self, role: str) -> Sequence[Any]: ...

    async def get_appointment(self, appointment_id: int) -> Any | None: ...

    async def appointment_exists(
        self, student_id: int, start_time: datetime, *, exclude_id: int | None = None
    ) -> bool: ...

    async def insert_appointment(self, values: dict[str, Any]) -> Any: ...

    async def update_appointment(self, appointment_id: int, changes: dict[str, Any]) -> Any | None: ...

    async def list_appointments(
        self,
        *,
        student_id: int | None = None,
        teacher_id: int | None = None,
        created_by_teacher_id: int | None = None,
        window: TimeWindow | None = None,
    ) -> Sequence[Any]: ...

    async def insert_questionnaire_response(self, values: dict[str, Any]) -> Any: ...

    async def get_questionnaire_response(self, appointment_id: int) -> Any | None: ...


def _is_booking_conflict(exc: IntegrityError) -> bool:
    """Recognize the student/start_time unique violation across drivers."""
    text = str(exc.orig) if exc.orig is not None else str(exc)
    if _BOOKING_CONSTRAINT in text:
        return True
    # SQLite reports column names instead of the constraint name
    return "appointments.student_id" in text and "appointments.start_time" in text


class SqlSchedulingStore:
    """SchedulingStore backed by an AsyncSession. One instance per request."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Transaction control ──────────────────────────────────────────

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_booking_conflict(exc):
                raise DuplicateBookingError() from exc
            logger.exception("Integrity error on commit")
            raise StorageError("integrity error on commit") from exc
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Commit failed")
            raise StorageError("commit failed") from exc

    async def rollback(self) -> None:
        try:
            await self.db.rollback()
        except SQLAlchemyError:
            logger.exception("Rollback failed")

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            if _is_booking_conflict(exc):
                raise DuplicateBookingError() from exc
            raise StorageError("integrity error on flush") from exc
        except SQLAlchemyError as exc:
            raise StorageError("flush failed") from exc

    async def _scalars(self, stmt: Any) -> list[Any]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Query failed")
            raise StorageError("query failed") from exc
        return list(result.scalars().all())

    async def _scalar_one_or_none(self, stmt: Any) -> Any | None:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as exc:
            logger.exception("Query failed")
            raise StorageError("query failed") from exc
        return result.scalar_one_or_none()

    # ── Users ────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> User | None:
        return await self._scalar_one_or_none(select(User).where(User.id == user_id))

    async def get_user_by_username_and_section(self, username: str, section: str) -> User | None:
        return await self._scalar_one_or_none(
            select(User).where(User.username == username, User.section == section)
        )

    async def insert_user(self, values: dict[str, Any]) -> User:
        user = User(**values)
        self.db.add(user)
        await self._flush()
        return user

    async def update_user(self, user_id: int, changes: dict[str, Any]) -> User | None:
        user = await self.get_user(user_id)
        if user is None:
            return None
        for key, value in changes.items():
            setattr(user, key, value)
        await self._flush()
        return user

    async def list_users_by_role(self, role: str) -> list[User]:
        return await self._scalars(select(User).where(User.role == role).order_by(User.id))

    async def list_users_by_section(self, section: str) -> list[User]:
        return await self._scalars(select(User).where(User.section == section).order_by(User.id))

    async def list_sections_in_use(self, role: str) -> list[str]:
        rows = await self._scalars(
            select(distinct(User.section)).where(User.role == role, User.section.is_not(None))
        )
        return [row for row in rows if row]

    # ── Availabilities ───────────────────────────────────────────────

    async def insert_availability(self, values: dict[str, Any]) -> Availability:
        availability = Availability(**values)
        self.db.add(availability)
        await self._flush()
        return availability

    async def get_availability(self, availability_id: int) -> Availability | None:
        return await self._scalar_one_or_none(
            select(Availability).where(Availability.id == availability_id)
        )

    async def delete_availability(self, availability: Availability) -> None:
        try:
            await self.db.delete(availability)
        except SQLAlchemyError as exc:
            raise StorageError("delete failed") from exc
        await self._flush()

    async def list_availabilities(
        self,
        *,
        teacher_id: int | None = None,
        window: TimeWindow | None = None,
    ) -> list[Availability]:
        stmt = select(Availability)
        if teacher_id is not None:
            stmt = stmt.where(Availability.teacher_id == teacher_id)
        if window is not None:
            stmt = stmt.where(
                Availability.start_time >= window.start,
                Availability.end_time <= window.end,
            )
        return await self._scalars(stmt.order_by(Availability.start_time.asc(), Availability.id.asc()))

    # ── Appointments ─────────────────────────────────────────────────

    def _appointment_query(self) -> Any:
        return select(Appointment).options(
            selectinload(Appointment.student),
            selectinload(Appointment.teacher),
        )

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        return await self._scalar_one_or_none(
            self._appointment_query()
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        )

    async def appointment_exists(
        self, student_id: int, start_time: datetime, *, exclude_id: int | None = None
    ) -> bool:
        stmt = select(Appointment.id).where(
            Appointment.student_id == student_id,
            Appointment.start_time == start_time,
        )
        if exclude_id is not None:
            stmt = stmt.where(Appointment.id != exclude_id)
        return await self._scalar_one_or_none(stmt.limit(1)) is not None

    async def insert_appointment(self, values: dict[str, Any]) -> Appointment:
        appointment = Appointment(**values)
        self.db.add(appointment)
        await self._flush()
        reloaded = await self.get_appointment(appointment.id)
        return reloaded if reloaded is not None else appointment

    async def update_appointment(self, appointment_id: int, changes: dict[str, Any]) -> Appointment | None:
        appointment = await self.get_appointment(appointment_id)
        if appointment is None:
            return None
        for key, value in changes.items():
            setattr(appointment, key, value)
        await self._flush()
        # Reload so student/teacher reflect a changed teacher_id
        return await self.get_appointment(appointment_id)

    async def list_appointments(
        self,
        *,
        student_id: int | None = None,
        teacher_id: int | None = None,
        created_by_teacher_id: int | None = None,
        window: TimeWindow | None = None,
    ) -> list[Appointment]:
        stmt = self._appointment_query()
        if student_id is not None:
            stmt = stmt.where(Appointment.student_id == student_id)
        if teacher_id is not None:
            stmt = stmt.where(Appointment.teacher_id == teacher_id)
        if created_by_teacher_id is not None:
            stmt = stmt.where(Appointment.created_by_teacher_id == created_by_teacher_id)
        if window is not None:
            stmt = stmt.where(
                Appointment.start_time >= window.start,
                Appointment.start_time <= window.end,
            )
        return await self._scalars(stmt.order_by(Appointment.start_time.desc(), Appointment.id.asc()))

    # ── Questionnaires ───────────────────────────────────────────────

    async def insert_questionnaire_response(self, values: dict[str, Any]) -> QuestionnaireResponse:
        response = QuestionnaireResponse(**values)
        self.db.add(response)
        await self._flush()
        return response

    async def get_questionnaire_response(self, appointment_id: int) -> QuestionnaireResponse | None:
        rows = await self._scalars(
            select(QuestionnaireResponse)
            .where(QuestionnaireResponse.appointment_id == appointment_id)
            .order_by(QuestionnaireResponse.id.asc())
            .limit(1)
        )
        return rows[0] if rows else None

    async def list_questionnaire_responses(self) -> list[QuestionnaireResponse]:
        return await self._scalars(
            select(QuestionnaireResponse)
            .options(
                selectinload(QuestionnaireResponse.appointment).selectinload(Appointment.student),
                selectinload(QuestionnaireResponse.appointment).selectinload(Appointment.teacher),
            )
            .order_by(QuestionnaireResponse.id.asc())
        )

    # ── Independent assignments ──────────────────────────────────────

    async def insert_independent_assignment(self, values: dict[str, Any]) -> IndependentAssignment:
        assignment = IndependentAssignment(**values)
        self.db.add(assignment)
        await self._flush()
        return assignment

    async def list_independent_assignments(self) -> list[IndependentAssignment]:
        return await self._scalars(
            select(IndependentAssignment)
            .options(selectinload(IndependentAssignment.student))
            .order_by(IndependentAssignment.submitted_at.desc(), IndependentAssignment.id.desc())
        )
