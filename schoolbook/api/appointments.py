"""Appointment endpoints: booking, transitions and per-role listings."""

# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from schoolbook.api.deps import get_appointment_service
from schoolbook.auth.dependencies import get_current_user, require_manager, require_staff, require_teacher
from schoolbook.scheduling.service import AppointmentResult, AppointmentService
from schoolbook.schemas.appointments import (
    AppointmentIntentBody,
    AppointmentMutationOut,
    AppointmentOut,
    AppointmentUpdate,
    CreateAppointmentRequest,
    NotificationTicketOut,
    RespondedIntent,
    RespondedRequest,
    classify_update,
)

router = APIRouter(prefix="/api", tags=["appointments"])


def _mutation_out(result: AppointmentResult) -> AppointmentMutationOut:
    out = AppointmentOut.model_validate(result.appointment)
    return AppointmentMutationOut(
        **out.model_dump(),
        notifications=[NotificationTicketOut.from_ticket(t) for t in result.notifications],
    )


# ── Booking ──────────────────────────────────────────────────────────


@router.post("/appointments", response_model=AppointmentMutationOut, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    body: CreateAppointmentRequest,
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(get_current_user),
) -> AppointmentMutationOut:
    return _mutation_out(await service.create(user, body))


# ── Reads ────────────────────────────────────────────────────────────


@router.get("/appointments", response_model=list[AppointmentOut])
async def list_today(
    service: AppointmentService = Depends(get_appointment_service),
    manager: Any = Depends(require_manager),
) -> list[Any]:
    return await service.list_all_today()


@router.get("/appointments/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(get_current_user),
) -> Any:
    return await service.get(appointment_id, user)


@router.get("/students/{student_id}/appointments", response_model=list[AppointmentOut])
async def list_for_student(
    student_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(get_current_user),
) -> list[Any]:
    return await service.list_for_student(student_id, user)


@router.get("/teachers/{teacher_id}/appointments", response_model=list[AppointmentOut])
async def list_for_teacher(
    teacher_id: int,
    today: bool = Query(default=False, description="Only appointments starting today, school time"),
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(require_staff),
) -> list[Any]:
    return await service.list_for_teacher(teacher_id, user, today=today)


@router.get("/teachers/{teacher_id}/created-appointments", response_model=list[AppointmentOut])
async def list_created_by_teacher(
    teacher_id: int,
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(require_staff),
) -> list[Any]:
    return await service.list_created_by_teacher(teacher_id, user)


# ── Transitions ──────────────────────────────────────────────────────


@router.patch("/appointments/{appointment_id}", response_model=AppointmentMutationOut)
async def update_appointment(
    appointment_id: int,
    body: AppointmentUpdate,
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(require_staff),
) -> AppointmentMutationOut:
    """Legacy loose body; classified into exactly one intent."""
    result = await service.apply_intent(appointment_id, classify_update(body), user)
    return _mutation_out(result)


@router.post("/appointments/{appointment_id}/transitions", response_model=AppointmentMutationOut)
async def apply_transition(
    appointment_id: int,
    body: AppointmentIntentBody,
    service: AppointmentService = Depends(get_appointment_service),
    user: Any = Depends(require_staff),
) -> AppointmentMutationOut:
    """Typed intent body, discriminated by ``intent``."""
    result = await service.apply_intent(appointment_id, body.root, user)
    return _mutation_out(result)


@router.patch("/appointments/{appointment_id}/response", response_model=AppointmentMutationOut)
async def record_response(
    appointment_id: int,
    body: RespondedRequest,
    service: AppointmentService = Depends(get_appointment_service),
    teacher: Any = Depends(require_teacher),
) -> AppointmentMutationOut:
    result = await service.apply_intent(appointment_id, RespondedIntent(responded=body.responded), teacher)
    return _mutation_out(result)
