"""Tests for availability slots, questionnaire reports and independent assignments.

Covers:
- AvailabilityService: create validation, today filter, owner-only delete, events
- records: questionnaire lookup, report rows, independent assignments
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from schoolbook.models import QuestionnaireResponse
from schoolbook.scheduling import records
from schoolbook.scheduling.availability import AvailabilityService
from schoolbook.scheduling.errors import NotFoundError, ValidationError
from schoolbook.schemas.availability import AvailabilityCreate
from schoolbook.schemas.events import EventType
from schoolbook.schemas.independent_assignment import IndependentAssignmentCreate

UTC3 = timezone(timedelta(hours=3))
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def availability_service(store) -> AvailabilityService:
    return AvailabilityService(store, school_tz=UTC3, clock=lambda: NOW)


def _slot(start: datetime, end: datetime) -> AvailabilityCreate:
    return AvailabilityCreate.model_validate({"startTime": start.isoformat(), "endTime": end.isoformat()})


# ── Availability ─────────────────────────────────────────────────────


class TestAvailability:
    @pytest.mark.asyncio()
    async def test_create_normalizes_to_school_time(self, availability_service, store, teacher, mock_emit):
        request = _slot(
            datetime(2026, 3, 10, 11, 0, tzinfo=timezone.utc),
            datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc),
        )

        slot = await availability_service.create(teacher, request)

        assert slot.start_time == datetime(2026, 3, 10, 14, 0)
        assert slot.end_time == datetime(2026, 3, 10, 15, 0)
        assert store.availabilities.rows[slot.id].teacher_id == teacher.id
        event = mock_emit.await_args.args[0]
        assert event.event_type is EventType.AVAILABILITY_CREATED
        assert event.data["availability"]["teacherId"] == teacher.id

    @pytest.mark.asyncio()
    async def test_end_before_start_rejected(self, availability_service, store, teacher, mock_emit):
        request = _slot(datetime(2026, 3, 10, 15, 0), datetime(2026, 3, 10, 14, 0))

        with pytest.raises(ValidationError):
            await availability_service.create(teacher, request)
        assert store.availabilities.rows == {}
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_today_only_whole_slots(self, availability_service, store, teacher):
        inside = store.seed_availability(teacher, datetime(2026, 3, 10, 9, 0), datetime(2026, 3, 10, 10, 0))
        store.seed_availability(teacher, datetime(2026, 3, 10, 23, 0), datetime(2026, 3, 11, 1, 0))
        store.seed_availability(teacher, datetime(2026, 3, 9, 9, 0), datetime(2026, 3, 9, 10, 0))

        slots = await availability_service.list_today()

        assert [s.id for s in slots] == [inside.id]

    @pytest.mark.asyncio()
    async def test_today_for_one_teacher(self, availability_service, store, teacher, manager):
        store.seed_availability(manager, datetime(2026, 3, 10, 9, 0), datetime(2026, 3, 10, 10, 0))
        own = store.seed_availability(teacher, datetime(2026, 3, 10, 11, 0), datetime(2026, 3, 10, 12, 0))

        slots = await availability_service.list_today(teacher.id)

        assert [s.id for s in slots] == [own.id]

    @pytest.mark.asyncio()
    async def test_delete_own(self, availability_service, store, teacher, mock_emit):
        slot = store.seed_availability(teacher, datetime(2026, 3, 10, 9, 0), datetime(2026, 3, 10, 10, 0))

        await availability_service.delete_own(teacher, slot.id)

        assert slot.id not in store.availabilities.rows
        assert mock_emit.await_args.args[0].event_type is EventType.AVAILABILITY_DELETED

    @pytest.mark.asyncio()
    async def test_cannot_delete_other_teachers_slot(self, availability_service, store, teacher):
        other = store.seed_user("huda", "teacher")
        slot = store.seed_availability(other, datetime(2026, 3, 10, 9, 0), datetime(2026, 3, 10, 10, 0))

        with pytest.raises(NotFoundError):
            await availability_service.delete_own(teacher, slot.id)
        assert slot.id in store.availabilities.rows
        assert store.rollbacks == 1


# ── Questionnaire reports ────────────────────────────────────────────


class TestQuestionnaireReports:
    @pytest.mark.asyncio()
    async def test_missing_questionnaire(self, store):
        with pytest.raises(NotFoundError):
            await records.get_questionnaire(store, 5)

    @pytest.mark.asyncio()
    async def test_report_rows(self, store, student, teacher):
        appointment = store.seed_appointment(
            student, datetime(2026, 3, 10, 9, 0), status="done", teacher_id=teacher.id
        )
        store.responses.rows[1] = QuestionnaireResponse(
            id=1,
            appointment_id=appointment.id,
            question1="yes",
            question2="yes",
            question3="ok",
            question4="-",
            submitted_at=datetime(2026, 3, 10, 10, 0),
        )

        [report] = await records.list_questionnaire_reports(store)

        assert report.student_name == "amal"
        assert report.teacher_name == "tariq"
        assert report.appointment_time == datetime(2026, 3, 10, 9, 0)
        assert (await records.get_questionnaire(store, appointment.id)).id == 1

    @pytest.mark.asyncio()
    async def test_report_without_teacher(self, store, student):
        appointment = store.seed_appointment(student, datetime(2026, 3, 10, 9, 0), status="done")
        store.responses.rows[1] = QuestionnaireResponse(
            id=1, appointment_id=appointment.id, question1="a", question2="b", question3="c", question4="d"
        )

        [report] = await records.list_questionnaire_reports(store)

        assert report.teacher_name == records.UNASSIGNED


# ── Independent assignments ──────────────────────────────────────────


class TestIndependentAssignments:
    @pytest.mark.asyncio()
    async def test_create_and_list(self, store, student):
        request = IndependentAssignmentCreate.model_validate({
            "studentId": student.id,
            "completionTime": "2026-03-10T15:00:00+00:00",
            "assignment": "memorize page 4",
        })

        created = await records.create_independent_assignment(store, request, school_tz=UTC3)

        assert created.student_name == "amal"
        assert created.completion_time == datetime(2026, 3, 10, 18, 0)
        [listed] = await records.list_independent_assignments(store)
        assert listed.id == created.id
        assert listed.student_name == "amal"

    @pytest.mark.asyncio()
    async def test_unknown_student(self, store):
        request = IndependentAssignmentCreate(student_id=42, completion_time=NOW, assignment="x")
        with pytest.raises(NotFoundError):
            await records.create_independent_assignment(store, request)
        assert store.assignments.rows == {}

    @pytest.mark.asyncio()
    async def test_non_student_refused(self, store, teacher):
        request = IndependentAssignmentCreate(student_id=teacher.id, completion_time=NOW, assignment="x")
        with pytest.raises(ValidationError):
            await records.create_independent_assignment(store, request)
        assert store.rollbacks == 1
