"""Teacher availability endpoints. Listings cover today only."""

# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response, status

from schoolbook.api.deps import get_availability_service
from schoolbook.auth.dependencies import get_current_user, require_teacher
from schoolbook.scheduling.availability import AvailabilityService
from schoolbook.schemas.availability import AvailabilityCreate, AvailabilityOut

router = APIRouter(prefix="/api", tags=["availabilities"])


@router.get("/availabilities", response_model=list[AvailabilityOut])
async def list_today(
    service: AvailabilityService = Depends(get_availability_service),
    user: Any = Depends(get_current_user),
) -> list[Any]:
    return await service.list_today()


@router.get("/teachers/{teacher_id}/availabilities", response_model=list[AvailabilityOut])
async def list_teacher_today(
    teacher_id: int,
    service: AvailabilityService = Depends(get_availability_service),
    user: Any = Depends(get_current_user),
) -> list[Any]:
    return await service.list_today(teacher_id)


@router.post("/availabilities", response_model=AvailabilityOut, status_code=status.HTTP_201_CREATED)
async def create(
    body: AvailabilityCreate,
    service: AvailabilityService = Depends(get_availability_service),
    teacher: Any = Depends(require_teacher),
) -> Any:
    return await service.create(teacher, body)


@router.delete("/availabilities/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete(
    availability_id: int,
    service: AvailabilityService = Depends(get_availability_service),
    teacher: Any = Depends(require_teacher),
) -> Response:
    await service.delete_own(teacher, availability_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
