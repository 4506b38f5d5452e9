"""Appointment model — a tutoring session booked by (or for) a student."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolbook.models.base import Base, SerialIdMixin
from schoolbook.models.enums import AppointmentStatus

if TYPE_CHECKING:
    from schoolbook.models.questionnaire import QuestionnaireResponse
    from schoolbook.models.user import User


class Appointment(SerialIdMixin, Base):
    """A session between a student and (eventually) a teacher.

    start_time is naive school-local wall-clock time.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("student_id", "start_time", name="uq_appointments_student_start"),
    )

    # Foreign keys
    student_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), index=True)
    created_by_teacher_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    # Scheduling
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AppointmentStatus.PENDING.value, nullable=False
    )

    # Free-text task the teacher is asked to carry out
    teacher_assignment: Mapped[str | None] = mapped_column(Text)

    # Relationships
    student: Mapped[User] = relationship("User", foreign_keys=[student_id], lazy="selectin")
    teacher: Mapped[User | None] = relationship("User", foreign_keys=[teacher_id], lazy="selectin")
    questionnaire_responses: Mapped[list[QuestionnaireResponse]] = relationship(
        "QuestionnaireResponse", back_populates="appointment"
    )

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status} at={self.start_time}>"
