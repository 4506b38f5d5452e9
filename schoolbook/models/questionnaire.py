"""Questionnaire response model — the teacher's report after a session."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolbook.models.base import Base, SerialIdMixin

if TYPE_CHECKING:
    from schoolbook.models.appointment import Appointment


class QuestionnaireResponse(SerialIdMixin, Base):
    """Four free-text answers about one appointment."""

    __tablename__ = "questionnaire_responses"

    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id"), nullable=False, index=True
    )
    question1: Mapped[str] = mapped_column(Text, nullable=False)
    question2: Mapped[str] = mapped_column(Text, nullable=False)
    question3: Mapped[str] = mapped_column(Text, nullable=False)
    question4: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    appointment: Mapped[Appointment] = relationship(
        "Appointment", back_populates="questionnaire_responses", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<QuestionnaireResponse id={self.id} appointment={self.appointment_id}>"
