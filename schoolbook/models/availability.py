"""Availability model — time ranges a teacher is free to take sessions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolbook.models.base import Base, SerialIdMixin

if TYPE_CHECKING:
    from schoolbook.models.user import User


class Availability(SerialIdMixin, Base):
    """A teacher-owned free slot. Slots are never merged."""

    __tablename__ = "availabilities"

    teacher_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    teacher: Mapped[User] = relationship("User", back_populates="availabilities")

    def __repr__(self) -> str:
        return f"<Availability id={self.id} teacher={self.teacher_id} {self.start_time}-{self.end_time}>"
