"""Account operations: register, log in, edit contact details, directory lookups."""

from __future__ import annotations

import logging
from typing import Any

from schoolbook.auth.passwords import hash_password, verify_password
from schoolbook.models.enums import Section, UserRole
from schoolbook.scheduling.errors import NotFoundError, SchedulingError, ValidationError
from schoolbook.scheduling.storage import SqlSchedulingStore
from schoolbook.schemas.users import RegisterRequest, TelegramContactUpdate

logger = logging.getLogger(__name__)


class InvalidCredentialsError(SchedulingError):
    """Username, section and password do not match a user."""

    status_code = 401

    def __init__(self) -> None:
        super().__init__("invalid username, section or password")


async def register(store: SqlSchedulingStore, request: RegisterRequest) -> Any:
    """Create a user. Usernames only need to be unique within a section."""
    try:
        existing = await store.get_user_by_username_and_section(request.username, request.section)
        if existing is not None:
            raise ValidationError("a user with this username already exists in the selected section")
        user = await store.insert_user({
            "username": request.username,
            "password": hash_password(request.password),
            "role": request.role.value,
            "section": request.section,
            "telegram_username": request.telegram_username,
            "telegram_id": request.telegram_id,
        })
        await store.commit()
    except SchedulingError:
        await store.rollback()
        raise
    logger.info("Registered %s %s in section %s", user.role, user.id, user.section)
    return user


async def authenticate(store: SqlSchedulingStore, username: str, section: str, password: str) -> Any:
    user = await store.get_user_by_username_and_section(username.strip(), section.strip())
    if user is None or not verify_password(password, user.password):
        logger.info("Failed login for %s in section %s", username, section)
        raise InvalidCredentialsError()
    return user


async def update_contact(store: SqlSchedulingStore, user_id: int, update: TelegramContactUpdate) -> Any:
    changes = update.model_dump(exclude_unset=True)
    try:
        user = await store.update_user(user_id, changes)
        if user is None:
            raise NotFoundError("user", user_id)
        await store.commit()
    except SchedulingError:
        await store.rollback()
        raise
    return user


async def list_sections(store: SqlSchedulingStore) -> list[str]:
    """Predefined sections first, then any others students are registered in."""
    sections = [section.value for section in Section]
    for section in await store.list_sections_in_use(UserRole.STUDENT.value):
        if section not in sections:
            sections.append(section)
    return sections


async def list_students_in_section(store: SqlSchedulingStore, section: str) -> list[Any]:
    users = await store.list_users_by_section(section)
    return [user for user in users if user.role == UserRole.STUDENT.value]
