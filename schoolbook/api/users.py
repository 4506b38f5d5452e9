"""User directory and section endpoints."""

# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from schoolbook.api.deps import get_store
from schoolbook.auth import service as accounts
from schoolbook.auth.dependencies import get_current_user
from schoolbook.models.enums import UserRole
from schoolbook.scheduling.errors import PermissionDeniedError
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.schemas.users import TelegramContactUpdate, UserOut

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users/students", response_model=list[UserOut])
async def list_students(
    store: SqlSchedulingStore = Depends(get_store),
    user: Any = Depends(get_current_user),
) -> list[Any]:
    return await store.list_users_by_role(UserRole.STUDENT.value)


@router.get("/users/teachers", response_model=list[UserOut])
async def list_teachers(
    store: SqlSchedulingStore = Depends(get_store),
    user: Any = Depends(get_current_user),
) -> list[Any]:
    return await store.list_users_by_role(UserRole.TEACHER.value)


@router.patch("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: int,
    body: TelegramContactUpdate,
    store: SqlSchedulingStore = Depends(get_store),
    user: Any = Depends(get_current_user),
) -> Any:
    if user.id != user_id:
        raise PermissionDeniedError("you can only update your own profile")
    return await accounts.update_contact(store, user_id, body)


@router.get("/sections", response_model=list[str])
async def list_sections(store: SqlSchedulingStore = Depends(get_store)) -> list[str]:
    return await accounts.list_sections(store)


@router.get("/section/{section}/students", response_model=list[UserOut])
async def students_in_section(
    section: str,
    store: SqlSchedulingStore = Depends(get_store),
) -> list[Any]:
    return await accounts.list_students_in_section(store, section)
