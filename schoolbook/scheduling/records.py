"""Questionnaire reports and independent assignments — read models for managers."""

from __future__ import annotations

import logging
from datetime import timezone
from typing import Any

from schoolbook.models.enums import UserRole
from schoolbook.scheduling.errors import NotFoundError, SchedulingError, ValidationError
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.scheduling.timewindow import to_school_time
from schoolbook.schemas.independent_assignment import (
    IndependentAssignmentCreate,
    IndependentAssignmentOut,
)
from schoolbook.schemas.questionnaire import QuestionnaireReportOut

logger = logging.getLogger(__name__)

UNASSIGNED = "unassigned"


def student_label(student: Any, student_id: int | None) -> str:
    return student.username if student is not None else f"student #{student_id}"


def teacher_label(teacher: Any, teacher_id: int | None) -> str:
    if teacher is not None:
        return teacher.username
    return f"teacher #{teacher_id}" if teacher_id else UNASSIGNED


async def get_questionnaire(store: SqlSchedulingStore, appointment_id: int) -> Any:
    response = await store.get_questionnaire_response(appointment_id)
    if response is None:
        raise NotFoundError("questionnaire for appointment", appointment_id)
    return response


def to_report(response: Any) -> QuestionnaireReportOut:
    """Flatten a response and its appointment into one listing row."""
    appointment = response.appointment
    if appointment is None:
        return QuestionnaireReportOut(
            id=response.id,
            appointment_id=response.appointment_id,
            question1=response.question1,
            question2=response.question2,
            question3=response.question3,
            question4=response.question4,
            submitted_at=response.submitted_at,
            student_name=student_label(None, None),
            teacher_name=UNASSIGNED,
        )
    return QuestionnaireReportOut(
        id=response.id,
        appointment_id=response.appointment_id,
        question1=response.question1,
        question2=response.question2,
        question3=response.question3,
        question4=response.question4,
        submitted_at=response.submitted_at,
        student_id=appointment.student_id,
        teacher_id=appointment.teacher_id,
        student_name=student_label(appointment.student, appointment.student_id),
        teacher_name=teacher_label(appointment.teacher, appointment.teacher_id),
        appointment_time=appointment.start_time,
    )


async def list_questionnaire_reports(store: SqlSchedulingStore) -> list[QuestionnaireReportOut]:
    return [to_report(response) for response in await store.list_questionnaire_responses()]


def to_assignment_out(assignment: Any) -> IndependentAssignmentOut:
    out = IndependentAssignmentOut.model_validate(assignment)
    return out.model_copy(update={"student_name": student_label(assignment.student, assignment.student_id)})


async def create_independent_assignment(
    store: SqlSchedulingStore,
    request: IndependentAssignmentCreate,
    *,
    school_tz: timezone = timezone.utc,
) -> IndependentAssignmentOut:
    try:
        student = await store.get_user(request.student_id)
        if student is None:
            raise NotFoundError("user", request.student_id)
        if student.role != UserRole.STUDENT.value:
            raise ValidationError(f"user {request.student_id} is not a student")

        assignment = await store.insert_independent_assignment({
            "student_id": request.student_id,
            "completion_time": to_school_time(request.completion_time, school_tz),
            "assignment": request.assignment,
            "notes": request.notes,
        })
        await store.commit()
    except SchedulingError:
        await store.rollback()
        raise

    logger.info("Independent assignment %s recorded for student %s", assignment.id, student.id)
    out = IndependentAssignmentOut.model_validate(assignment)
    return out.model_copy(update={"student_name": student.username})


async def list_independent_assignments(store: SqlSchedulingStore) -> list[IndependentAssignmentOut]:
    return [to_assignment_out(a) for a in await store.list_independent_assignments()]
