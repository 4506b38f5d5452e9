"""Questionnaire schemas — the teacher's four-question report on a session."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from schoolbook.schemas.appointments import AppointmentOut


class QuestionnaireSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    appointment_id: int = Field(alias="appointmentId")
    question1: str = Field(min_length=1)
    question2: str = Field(min_length=1)
    question3: str = Field(min_length=1)
    question4: str = Field(min_length=1)

    def answers(self) -> dict[str, str]:
        return self.model_dump(include={"question1", "question2", "question3", "question4"})


class QuestionnaireOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    appointment_id: int = Field(alias="appointmentId")
    question1: str
    question2: str
    question3: str
    question4: str
    submitted_at: datetime | None = Field(default=None, alias="submittedAt")


class QuestionnaireSubmitOut(BaseModel):
    """Saved report plus the appointment it closed."""

    model_config = ConfigDict(populate_by_name=True)

    response: QuestionnaireOut
    appointment: AppointmentOut


class QuestionnaireReportOut(QuestionnaireOut):
    """Manager listing row: the report with who took part and when."""

    student_id: int | None = Field(default=None, alias="studentId")
    teacher_id: int | None = Field(default=None, alias="teacherId")
    student_name: str = Field(alias="studentName")
    teacher_name: str = Field(alias="teacherName")
    appointment_time: datetime | None = Field(default=None, alias="appointmentTime")
