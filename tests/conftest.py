"""Shared fixtures: an in-memory scheduling store, a recording notifier, actors.

``FakeStore`` mirrors ``SqlSchedulingStore`` method for method. Writes are
staged until ``commit`` and discarded by ``rollback``, so tests can check
that a failed unit of work leaves nothing behind.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from schoolbook.models import (
    Appointment,
    Availability,
    IndependentAssignment,
    QuestionnaireResponse,
    User,
)
from schoolbook.notifications.dispatcher import NotificationDispatcher
from schoolbook.notifications.telegram import NotificationResult
from schoolbook.scheduling.errors import DuplicateBookingError, StorageError
from schoolbook.scheduling.service import AppointmentService
from schoolbook.scheduling.timewindow import TimeWindow

SCHOOL_TZ = timezone(timedelta(hours=3))

# 2026-03-10 09:00 UTC is 12:00 school time
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


# ── In-memory store ──────────────────────────────────────────────────


def _columns(obj: Any) -> dict[str, Any]:
    return {column.key: getattr(obj, column.key) for column in obj.__table__.columns}


class _Table:
    def __init__(self) -> None:
        self.rows: dict[int, Any] = {}
        self.staged: dict[int, Any | None] = {}
        self.ids = itertools.count(1)

    def view(self) -> dict[int, Any]:
        merged = dict(self.rows)
        for key, value in self.staged.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        return merged


class FakeStore:
    """Transactional in-memory stand-in for SqlSchedulingStore."""

    def __init__(self) -> None:
        self.users = _Table()
        self.appointments = _Table()
        self.availabilities = _Table()
        self.responses = _Table()
        self.assignments = _Table()
        self.commits = 0
        self.rollbacks = 0
        self.commit_failures: list[Exception | None] = []
        self.now = NOW.astimezone(SCHOOL_TZ).replace(tzinfo=None)

    @property
    def _tables(self) -> list[_Table]:
        return [self.users, self.appointments, self.availabilities, self.responses, self.assignments]

    # ── Seeding (committed immediately) ──────────────────────────────

    def seed_user(self, username: str, role: str, **fields: Any) -> User:
        user = User(
            id=next(self.users.ids),
            username=username,
            role=role,
            password=fields.pop("password", "x.y"),
            section=fields.pop("section", "aasem"),
            **fields,
        )
        self.users.rows[user.id] = user
        return user

    def seed_appointment(self, student: User, start_time: datetime, **fields: Any) -> Appointment:
        values = {"status": "pending", **fields}
        appointment = Appointment(
            id=next(self.appointments.ids),
            student_id=student.id,
            start_time=start_time,
            **values,
        )
        self._link(appointment)
        self.appointments.rows[appointment.id] = appointment
        return appointment

    def seed_availability(self, teacher: User, start: datetime, end: datetime) -> Availability:
        availability = Availability(
            id=next(self.availabilities.ids), teacher_id=teacher.id, start_time=start, end_time=end
        )
        self.availabilities.rows[availability.id] = availability
        return availability

    def committed_appointment(self, appointment_id: int) -> Appointment | None:
        return self.appointments.rows.get(appointment_id)

    def _link(self, appointment: Appointment) -> None:
        users = self.users.view()
        appointment.student = users.get(appointment.student_id)
        appointment.teacher = users.get(appointment.teacher_id) if appointment.teacher_id else None

    # ── Transaction control ──────────────────────────────────────────

    async def commit(self) -> None:
        # None entries let that many commits through before the next failure
        if self.commit_failures:
            failure = self.commit_failures.pop(0)
            if failure is not None:
                self._discard()
                raise failure
        seen: set[tuple[int, datetime]] = set()
        for appointment in self.appointments.view().values():
            key = (appointment.student_id, appointment.start_time)
            if key in seen:
                self._discard()
                raise DuplicateBookingError()
            seen.add(key)
        for table in self._tables:
            for key, value in table.staged.items():
                if value is None:
                    table.rows.pop(key, None)
                else:
                    table.rows[key] = value
            table.staged.clear()
        self.commits += 1

    async def rollback(self) -> None:
        self._discard()
        self.rollbacks += 1

    def _discard(self) -> None:
        for table in self._tables:
            table.staged.clear()

    # ── Users ────────────────────────────────────────────────────────

    async def get_user(self, user_id: int) -> User | None:
        return self.users.view().get(user_id)

    async def get_user_by_username_and_section(self, username: str, section: str) -> User | None:
        for user in self.users.view().values():
            if user.username == username and user.section == section:
                return user
        return None

    async def insert_user(self, values: dict[str, Any]) -> User:
        user = User(id=next(self.users.ids), **values)
        self.users.staged[user.id] = user
        return user

    async def update_user(self, user_id: int, changes: dict[str, Any]) -> User | None:
        current = self.users.view().get(user_id)
        if current is None:
            return None
        user = User(**{**_columns(current), **changes})
        self.users.staged[user_id] = user
        return user

    async def list_users_by_role(self, role: str) -> list[User]:
        return [u for _, u in sorted(self.users.view().items()) if u.role == role]

    async def list_users_by_section(self, section: str) -> list[User]:
        return [u for _, u in sorted(self.users.view().items()) if u.section == section]

    async def list_sections_in_use(self, role: str) -> list[str]:
        sections: list[str] = []
        for user in self.users.view().values():
            if user.role == role and user.section and user.section not in sections:
                sections.append(user.section)
        return sections

    # ── Availabilities ───────────────────────────────────────────────

    async def insert_availability(self, values: dict[str, Any]) -> Availability:
        availability = Availability(id=next(self.availabilities.ids), **values)
        self.availabilities.staged[availability.id] = availability
        return availability

    async def get_availability(self, availability_id: int) -> Availability | None:
        return self.availabilities.view().get(availability_id)

    async def delete_availability(self, availability: Availability) -> None:
        self.availabilities.staged[availability.id] = None

    async def list_availabilities(
        self, *, teacher_id: int | None = None, window: TimeWindow | None = None
    ) -> list[Availability]:
        rows = list(self.availabilities.view().values())
        if teacher_id is not None:
            rows = [a for a in rows if a.teacher_id == teacher_id]
        if window is not None:
            rows = [a for a in rows if a.start_time >= window.start and a.end_time <= window.end]
        return sorted(rows, key=lambda a: (a.start_time, a.id))

    # ── Appointments ─────────────────────────────────────────────────

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self.appointments.view().get(appointment_id)

    async def appointment_exists(
        self, student_id: int, start_time: datetime, *, exclude_id: int | None = None
    ) -> bool:
        return any(
            a.student_id == student_id and a.start_time == start_time and a.id != exclude_id
            for a in self.appointments.view().values()
        )

    async def insert_appointment(self, values: dict[str, Any]) -> Appointment:
        appointment = Appointment(id=next(self.appointments.ids), **values)
        self._link(appointment)
        self.appointments.staged[appointment.id] = appointment
        return appointment

    async def update_appointment(self, appointment_id: int, changes: dict[str, Any]) -> Appointment | None:
        current = self.appointments.view().get(appointment_id)
        if current is None:
            return None
        appointment = Appointment(**{**_columns(current), **changes})
        self._link(appointment)
        self.appointments.staged[appointment_id] = appointment
        return appointment

    async def list_appointments(
        self,
        *,
        student_id: int | None = None,
        teacher_id: int | None = None,
        created_by_teacher_id: int | None = None,
        window: TimeWindow | None = None,
    ) -> list[Appointment]:
        rows = list(self.appointments.view().values())
        if student_id is not None:
            rows = [a for a in rows if a.student_id == student_id]
        if teacher_id is not None:
            rows = [a for a in rows if a.teacher_id == teacher_id]
        if created_by_teacher_id is not None:
            rows = [a for a in rows if a.created_by_teacher_id == created_by_teacher_id]
        if window is not None:
            rows = [a for a in rows if a.start_time in window]
        rows.sort(key=lambda a: a.id)
        rows.sort(key=lambda a: a.start_time, reverse=True)
        return rows

    # ── Questionnaires ───────────────────────────────────────────────

    async def insert_questionnaire_response(self, values: dict[str, Any]) -> QuestionnaireResponse:
        response = QuestionnaireResponse(id=next(self.responses.ids), submitted_at=self.now, **values)
        self.responses.staged[response.id] = response
        return response

    async def get_questionnaire_response(self, appointment_id: int) -> QuestionnaireResponse | None:
        for _, response in sorted(self.responses.view().items()):
            if response.appointment_id == appointment_id:
                return response
        return None

    async def list_questionnaire_responses(self) -> list[QuestionnaireResponse]:
        appointments = self.appointments.view()
        rows = []
        for _, response in sorted(self.responses.view().items()):
            response.appointment = appointments.get(response.appointment_id)
            rows.append(response)
        return rows

    # ── Independent assignments ──────────────────────────────────────

    async def insert_independent_assignment(self, values: dict[str, Any]) -> IndependentAssignment:
        assignment = IndependentAssignment(id=next(self.assignments.ids), submitted_at=self.now, **values)
        self.assignments.staged[assignment.id] = assignment
        return assignment

    async def list_independent_assignments(self) -> list[IndependentAssignment]:
        users = self.users.view()
        rows = []
        for assignment in self.assignments.view().values():
            assignment.student = users.get(assignment.student_id)
            rows.append(assignment)
        return sorted(rows, key=lambda a: (a.submitted_at, a.id), reverse=True)


class FailingStore(FakeStore):
    """Every read raises StorageError."""

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        raise StorageError("query failed")

    async def list_appointments(self, **kwargs: Any) -> list[Appointment]:
        raise StorageError("query failed")


# ── Notifier ─────────────────────────────────────────────────────────


class RecordingNotifier:
    """Notifier that records calls and returns a configurable result."""

    def __init__(self, result: NotificationResult | None = None) -> None:
        self.calls: list[tuple[str | None, str, str | None]] = []
        self.result = result or NotificationResult(delivered=True)

    async def notify(
        self, contact_handle: str | None, message: str, action_url: str | None = None
    ) -> NotificationResult:
        self.calls.append((contact_handle, message, action_url))
        return self.result


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def mock_emit() -> Iterator[AsyncMock]:
    """Keep the global event bus out of unit tests."""
    emit = AsyncMock()
    with (
        patch("schoolbook.scheduling.service.emit", emit),
        patch("schoolbook.scheduling.availability.emit", emit),
    ):
        yield emit


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def student(store: FakeStore) -> User:
    return store.seed_user("amal", "student", section="aasem")


@pytest.fixture
def other_student(store: FakeStore) -> User:
    return store.seed_user("badr", "student", section="khaled")


@pytest.fixture
def teacher(store: FakeStore) -> User:
    return store.seed_user("tariq", "teacher", telegram_id="1001", telegram_username="tariq_t")


@pytest.fixture
def manager(store: FakeStore) -> User:
    return store.seed_user("mona", "manager", telegram_username="mona_m")


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_service(store: FakeStore, notifier: RecordingNotifier):
    """Build an AppointmentService bound to the fake store; call inside a test's loop."""

    def _make(**kwargs: Any) -> AppointmentService:
        dispatcher = kwargs.pop("dispatcher", None) or NotificationDispatcher(notifier, timeout=1.0)
        return AppointmentService(
            kwargs.pop("store", store),
            dispatcher,
            school_tz=SCHOOL_TZ,
            frontend_url="https://school.example",
            clock=lambda: NOW,
            **kwargs,
        )

    return _make
