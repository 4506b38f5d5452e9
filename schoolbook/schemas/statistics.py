"""Per-student statistics returned to managers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StudentStatistics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: int = Field(alias="studentId")
    student_name: str = Field(alias="studentName")
    section: str
    question1_yes_count: int = Field(default=0, alias="question1YesCount")
    question2_yes_count: int = Field(default=0, alias="question2YesCount")
    question3_responses: list[str] = Field(default_factory=list, alias="question3Responses")
    assignment_responses: list[str] = Field(default_factory=list, alias="assignmentResponses")
    all_responses: str = Field(default="", alias="allResponses")
    last_activity: datetime | None = Field(default=None, alias="lastActivity")
