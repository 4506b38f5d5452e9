"""Independent assignment model — work logged for a student without an appointment."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolbook.models.base import Base, SerialIdMixin

if TYPE_CHECKING:
    from schoolbook.models.user import User


class IndependentAssignment(SerialIdMixin, Base):
    """A completed task recorded by a manager for one student."""

    __tablename__ = "independent_assignments"

    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    completion_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    assignment: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    student: Mapped[User] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return f"<IndependentAssignment id={self.id} student={self.student_id}>"
