"""Registration, login and the current-user endpoint."""

# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from schoolbook.api.deps import get_settings, get_store
from schoolbook.auth import service as accounts
from schoolbook.auth.dependencies import get_current_user
from schoolbook.auth.tokens import create_access_token
from schoolbook.config import Settings
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.schemas.users import LoginRequest, RegisterRequest, TokenOut, UserOut

router = APIRouter(prefix="/api", tags=["auth"])


def _token_for(user: Any, settings: Settings) -> TokenOut:
    return TokenOut(
        access_token=create_access_token(user.id, user.role, settings.security),
        user=UserOut.model_validate(user),
    )


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    store: SqlSchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TokenOut:
    user = await accounts.register(store, body)
    return _token_for(user, settings)


@router.post("/login", response_model=TokenOut)
async def login(
    body: LoginRequest,
    store: SqlSchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TokenOut:
    user = await accounts.authenticate(store, body.username, body.section, body.password)
    return _token_for(user, settings)


@router.get("/user", response_model=UserOut)
async def current_user(user: Any = Depends(get_current_user)) -> Any:
    return user
