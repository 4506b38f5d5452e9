"""User model — students, teachers and managers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolbook.models.base import Base, SerialIdMixin

if TYPE_CHECKING:
    from schoolbook.models.availability import Availability


class User(SerialIdMixin, Base):
    """A person who logs in to the scheduling app.

    Usernames are only unique within a section, so login needs both.
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("username", "section", name="uq_users_username_section"),)

    username: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False, comment="scrypt hash.salt")
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    section: Mapped[str | None] = mapped_column(String(50), index=True)

    # Telegram contact: numeric chat id is preferred over the mutable @username
    telegram_username: Mapped[str | None] = mapped_column(String(100))
    telegram_id: Mapped[str | None] = mapped_column(String(50))

    # Relationships
    availabilities: Mapped[list[Availability]] = relationship(
        "Availability", back_populates="teacher", cascade="all, delete-orphan"
    )

    @property
    def contact_handle(self) -> str | None:
        """Where to deliver Telegram notifications, if anywhere."""
        if self.telegram_id:
            return self.telegram_id
        if self.telegram_username:
            return "@" + self.telegram_username.lstrip("@")
        return None

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username} role={self.role}>"
