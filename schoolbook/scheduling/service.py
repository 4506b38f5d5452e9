"""Appointment service — booking, transitions, questionnaires and listings.

Every write follows the same shape: load, plan, persist, commit once, then
(only after the commit) emit events and dispatch notifications. Any error
before the commit rolls the whole unit back, so a failed transition never
partially applies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from schoolbook.models.enums import AppointmentStatus, UserRole
from schoolbook.notifications import formatters
from schoolbook.notifications.dispatcher import NotificationDispatcher, NotificationTicket
from schoolbook.realtime.events import emit
from schoolbook.scheduling.errors import (
    DuplicateBookingError,
    NotFoundError,
    PermissionDeniedError,
    QuestionnaireCompletionError,
    SchedulingError,
    ValidationError,
)
from schoolbook.scheduling.storage import SchedulingStore
from schoolbook.scheduling.timewindow import to_school_time, today_window
from schoolbook.scheduling.transitions import Transition, TransitionPolicy, plan_transition
from schoolbook.schemas.appointments import (
    AppointmentIntent,
    AppointmentOut,
    AssignTeacherIntent,
    CreateAppointmentRequest,
    PlainStatusIntent,
    RespondedIntent,
)
from schoolbook.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

_STAFF = (UserRole.TEACHER.value, UserRole.MANAGER.value)


@dataclass
class AppointmentResult:
    """A persisted appointment plus the notifications its change triggered."""

    appointment: Any
    notifications: list[NotificationTicket] = field(default_factory=list)


@dataclass
class QuestionnaireResult:
    response: Any
    appointment: Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _event_payload(appointment: Any) -> dict[str, Any]:
    return AppointmentOut.model_validate(appointment).model_dump(mode="json", by_alias=True)


class AppointmentService:
    """Owns the appointment workflow for one unit of work (one store)."""

    def __init__(
        self,
        store: SchedulingStore,
        dispatcher: NotificationDispatcher | None = None,
        *,
        policy: TransitionPolicy | None = None,
        school_tz: timezone = timezone.utc,
        frontend_url: str = "http://localhost:5173",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.policy = policy or TransitionPolicy()
        self.school_tz = school_tz
        self.frontend_url = frontend_url
        self.clock = clock

    # ── Booking ──────────────────────────────────────────────────────

    async def create(self, actor: Any, request: CreateAppointmentRequest) -> AppointmentResult:
        """Book an appointment for ``request.student_id`` (defaults to the actor).

        Raises:
            PermissionDeniedError: a student books for someone else.
            NotFoundError: the student does not exist.
            DuplicateBookingError: the student already has this start time.
        """
        student_id = request.student_id or actor.id
        if actor.role == UserRole.STUDENT.value and student_id != actor.id:
            raise PermissionDeniedError("students can only book for themselves")

        start_time = to_school_time(request.start_time, self.school_tz)

        try:
            student = await self.store.get_user(student_id)
            if student is None:
                raise NotFoundError("user", student_id)
            if student.role != UserRole.STUDENT.value:
                raise ValidationError(f"user {student_id} is not a student")

            await self._guard_booking(student_id, start_time)

            values: dict[str, Any] = {
                "student_id": student_id,
                "start_time": start_time,
                "status": AppointmentStatus.PENDING.value,
                "teacher_assignment": request.teacher_assignment,
            }
            if actor.role == UserRole.TEACHER.value:
                values["created_by_teacher_id"] = actor.id

            appointment = await self.store.insert_appointment(values)
            managers = await self.store.list_users_by_role(UserRole.MANAGER.value)
            await self.store.commit()
        except SchedulingError:
            await self.store.rollback()
            raise

        logger.info(
            "Appointment created: id=%s student=%s at=%s by=%s",
            appointment.id,
            student_id,
            start_time,
            actor.id,
        )
        await emit(SystemEvent(
            event_type=EventType.APPOINTMENT_CREATED,
            actor_id=actor.id,
            actor_role=actor.role,
            data={"action": "create", "appointment": _event_payload(appointment)},
            source_module="scheduling.service",
        ))

        message = formatters.appointment_booked_message(student.username, start_time, student.section)
        tickets = [
            ticket
            for manager in managers
            if (ticket := self._notify(manager.contact_handle, message, purpose="manager_booking"))
        ]
        return AppointmentResult(appointment=appointment, notifications=tickets)

    async def _guard_booking(
        self, student_id: int, start_time: datetime, *, exclude_id: int | None = None
    ) -> None:
        if await self.store.appointment_exists(student_id, start_time, exclude_id=exclude_id):
            raise DuplicateBookingError()

    # ── Transitions ──────────────────────────────────────────────────

    async def apply_intent(self, appointment_id: int, intent: AppointmentIntent, actor: Any) -> AppointmentResult:
        """Apply one update intent on behalf of ``actor``."""
        try:
            appointment = await self._load(appointment_id)
            self._authorize(actor, appointment, intent)
            result = await self._apply(appointment, intent, actor)
        except SchedulingError:
            await self.store.rollback()
            raise
        return result

    def _authorize(self, actor: Any, appointment: Any, intent: AppointmentIntent) -> None:
        if actor.role == UserRole.MANAGER.value:
            if isinstance(intent, RespondedIntent):
                raise PermissionDeniedError("only teachers record follow-up responses")
            return
        if actor.role != UserRole.TEACHER.value:
            raise PermissionDeniedError("only teachers and managers can update appointments")
        if isinstance(intent, AssignTeacherIntent):
            raise PermissionDeniedError("only managers can assign teachers")
        if actor.id not in (appointment.teacher_id, appointment.created_by_teacher_id):
            raise PermissionDeniedError("appointment belongs to another teacher")

    async def _apply(self, appointment: Any, intent: AppointmentIntent, actor: Any | None) -> AppointmentResult:
        transition = plan_transition(appointment.status, intent, self.policy)
        changes = dict(transition.changes)

        teacher = None
        if transition.assigns_teacher:
            teacher = await self.store.get_user(changes["teacher_id"])
            if teacher is None or teacher.role != UserRole.TEACHER.value:
                raise NotFoundError("teacher", changes["teacher_id"])

        if changes.get("start_time") is not None:
            changes["start_time"] = to_school_time(changes["start_time"], self.school_tz)
            if changes["start_time"] != appointment.start_time:
                await self._guard_booking(
                    appointment.student_id, changes["start_time"], exclude_id=appointment.id
                )

        if changes:
            updated = await self.store.update_appointment(appointment.id, changes)
            if updated is None:
                raise NotFoundError("appointment", appointment.id)
            await self.store.commit()
        else:
            updated = appointment

        logger.info(
            "Appointment %s: %s %s -> %s",
            updated.id,
            transition.intent,
            transition.from_status,
            transition.to_status,
        )
        await self._emit_transition(updated, transition, actor)

        tickets: list[NotificationTicket] = []
        if teacher is not None:
            ticket = self._notify_teacher(teacher, updated)
            if ticket is not None:
                tickets.append(ticket)
        return AppointmentResult(appointment=updated, notifications=tickets)

    async def _emit_transition(self, appointment: Any, transition: Transition, actor: Any | None) -> None:
        if transition.assigns_teacher:
            event_type = EventType.APPOINTMENT_TEACHER_ASSIGNED
        elif transition.to_status == AppointmentStatus.DONE.value and transition.status_changed:
            event_type = EventType.APPOINTMENT_COMPLETED
        else:
            event_type = EventType.APPOINTMENT_UPDATED
        await emit(SystemEvent(
            event_type=event_type,
            actor_id=getattr(actor, "id", None),
            actor_role=getattr(actor, "role", None),
            data={
                "action": "update",
                "intent": transition.intent,
                "from_status": transition.from_status,
                "appointment": _event_payload(appointment),
            },
            source_module="scheduling.service",
        ))

    # ── Questionnaire ────────────────────────────────────────────────

    async def submit_questionnaire(
        self, actor: Any, appointment_id: int, answers: dict[str, str]
    ) -> QuestionnaireResult:
        """Store the teacher's report, then close the appointment as done.

        The two writes commit separately. If closing fails after the report
        was saved, ``QuestionnaireCompletionError`` carries the saved id.
        """
        done = PlainStatusIntent(status=AppointmentStatus.DONE.value)
        try:
            appointment = await self._load(appointment_id)
            if actor.role == UserRole.TEACHER.value:
                self._authorize(actor, appointment, done)
            # Refuse up front when the policy would block closing
            plan_transition(appointment.status, done, self.policy)

            response = await self.store.insert_questionnaire_response(
                {"appointment_id": appointment_id, **answers}
            )
            await self.store.commit()
        except SchedulingError:
            await self.store.rollback()
            raise
        logger.info("Questionnaire %s saved for appointment %s", response.id, appointment_id)

        try:
            result = await self._apply(appointment, done, actor)
        except SchedulingError as exc:
            await self.store.rollback()
            logger.error(
                "Questionnaire %s saved but appointment %s not closed: %s",
                response.id,
                appointment_id,
                exc,
            )
            raise QuestionnaireCompletionError(response.id, appointment_id) from exc
        return QuestionnaireResult(response=response, appointment=result.appointment)

    # ── Reads ────────────────────────────────────────────────────────

    async def get(self, appointment_id: int, actor: Any | None = None) -> Any:
        appointment = await self._load(appointment_id)
        if (
            actor is not None
            and actor.role == UserRole.STUDENT.value
            and appointment.student_id != actor.id
        ):
            raise PermissionDeniedError("appointment belongs to another student")
        return appointment

    async def list_for_student(self, student_id: int, actor: Any | None = None) -> list[Any]:
        """Every appointment of one student, most recent first."""
        if actor is not None and actor.role not in _STAFF and actor.id != student_id:
            raise PermissionDeniedError("students can only list their own appointments")
        return list(await self.store.list_appointments(student_id=student_id))

    async def list_for_teacher(
        self, teacher_id: int, actor: Any | None = None, *, today: bool = False
    ) -> list[Any]:
        """A teacher's appointments, optionally only those starting today."""
        self._check_teacher_scope(teacher_id, actor)
        window = today_window(self.school_tz, self.clock()) if today else None
        return list(await self.store.list_appointments(teacher_id=teacher_id, window=window))

    async def list_created_by_teacher(self, teacher_id: int, actor: Any | None = None) -> list[Any]:
        self._check_teacher_scope(teacher_id, actor)
        return list(await self.store.list_appointments(created_by_teacher_id=teacher_id))

    async def list_all_today(self) -> list[Any]:
        """Manager view: everything starting today, school time."""
        window = today_window(self.school_tz, self.clock())
        return list(await self.store.list_appointments(window=window))

    @staticmethod
    def _check_teacher_scope(teacher_id: int, actor: Any | None) -> None:
        if actor is None or actor.role == UserRole.MANAGER.value:
            return
        if actor.role != UserRole.TEACHER.value or actor.id != teacher_id:
            raise PermissionDeniedError("teachers can only list their own appointments")

    # ── Helpers ──────────────────────────────────────────────────────

    async def _load(self, appointment_id: int) -> Any:
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError("appointment", appointment_id)
        return appointment

    def _notify(
        self, contact_handle: str | None, message: str, *, action_url: str | None = None, purpose: str
    ) -> NotificationTicket | None:
        if self.dispatcher is None or not contact_handle:
            return None
        return self.dispatcher.dispatch(contact_handle, message, action_url, purpose=purpose)

    def _notify_teacher(self, teacher: Any, appointment: Any) -> NotificationTicket | None:
        student = appointment.student
        student_name = student.username if student is not None else f"#{appointment.student_id}"
        message = formatters.teacher_assigned_message(
            student_name, appointment.start_time, appointment.teacher_assignment
        )
        ticket = self._notify(
            teacher.contact_handle,
            message,
            action_url=formatters.accept_url(self.frontend_url, appointment.id),
            purpose="teacher_assignment",
        )
        if ticket is None:
            logger.warning("Teacher %s has no telegram contact; appointment %s not announced", teacher.id, appointment.id)
        return ticket
