"""Questionnaire and independent assignment endpoints."""

# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from schoolbook.api.deps import get_appointment_service, get_settings, get_store
from schoolbook.auth.dependencies import get_current_user, require_manager, require_teacher
from schoolbook.config import Settings
from schoolbook.scheduling import records
from schoolbook.scheduling.service import AppointmentService
from schoolbook.scheduling.statistics import collect_statistics
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.schemas.appointments import AppointmentOut
from schoolbook.schemas.independent_assignment import (
    IndependentAssignmentCreate,
    IndependentAssignmentOut,
)
from schoolbook.schemas.questionnaire import (
    QuestionnaireOut,
    QuestionnaireReportOut,
    QuestionnaireSubmit,
    QuestionnaireSubmitOut,
)
from schoolbook.schemas.statistics import StudentStatistics

router = APIRouter(prefix="/api", tags=["questionnaires"])


@router.post(
    "/questionnaire-responses",
    response_model=QuestionnaireSubmitOut,
    status_code=status.HTTP_201_CREATED,
)
async def submit_questionnaire(
    body: QuestionnaireSubmit,
    service: AppointmentService = Depends(get_appointment_service),
    teacher: Any = Depends(require_teacher),
) -> QuestionnaireSubmitOut:
    result = await service.submit_questionnaire(teacher, body.appointment_id, body.answers())
    return QuestionnaireSubmitOut(
        response=QuestionnaireOut.model_validate(result.response),
        appointment=AppointmentOut.model_validate(result.appointment),
    )


@router.get("/appointments/{appointment_id}/questionnaire", response_model=QuestionnaireOut)
async def get_questionnaire(
    appointment_id: int,
    store: SqlSchedulingStore = Depends(get_store),
    user: Any = Depends(get_current_user),
) -> Any:
    return await records.get_questionnaire(store, appointment_id)


@router.get("/questionnaire-responses", response_model=list[QuestionnaireReportOut])
async def list_questionnaires(
    store: SqlSchedulingStore = Depends(get_store),
    manager: Any = Depends(require_manager),
) -> list[QuestionnaireReportOut]:
    return await records.list_questionnaire_reports(store)


@router.post(
    "/independent-assignments",
    response_model=IndependentAssignmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_independent_assignment(
    body: IndependentAssignmentCreate,
    store: SqlSchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    manager: Any = Depends(require_manager),
) -> IndependentAssignmentOut:
    return await records.create_independent_assignment(
        store, body, school_tz=settings.scheduling.school_tz
    )


@router.get("/independent-assignments", response_model=list[IndependentAssignmentOut])
async def list_independent_assignments(
    store: SqlSchedulingStore = Depends(get_store),
    manager: Any = Depends(require_manager),
) -> list[IndependentAssignmentOut]:
    return await records.list_independent_assignments(store)


@router.get("/statistics", response_model=list[StudentStatistics])
async def statistics(
    store: SqlSchedulingStore = Depends(get_store),
    manager: Any = Depends(require_manager),
) -> list[StudentStatistics]:
    return await collect_statistics(store)
