"""Independent assignment schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class IndependentAssignmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    student_id: int = Field(alias="studentId")
    completion_time: datetime = Field(alias="completionTime")
    assignment: str = Field(min_length=1)
    notes: str | None = None


class IndependentAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    student_id: int = Field(alias="studentId")
    student_name: str | None = Field(default=None, alias="studentName")
    completion_time: datetime = Field(alias="completionTime")
    assignment: str
    notes: str | None = None
    submitted_at: datetime | None = Field(default=None, alias="submittedAt")
