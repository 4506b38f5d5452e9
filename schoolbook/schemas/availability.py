"""Availability schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AvailabilityCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")


class AvailabilityOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    teacher_id: int = Field(alias="teacherId")
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
