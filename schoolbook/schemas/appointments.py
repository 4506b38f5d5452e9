"""Appointment request/response schemas and the closed set of update intents.

Every appointment update is exactly one intent. Callers that still send the
loose ``{status, teacherId, teacherAssignment, responded}`` body go through
``classify_update``, which picks the intent by a fixed precedence.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel

from schoolbook.models.enums import AppointmentStatus

_camel = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


# ── Intents ──────────────────────────────────────────────────────────


class RejectIntent(BaseModel):
    """Teacher (or manager) rejects the appointment. Allowed from any state."""

    model_config = _camel

    intent: Literal["reject"] = "reject"
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")


class AssignStatusIntent(BaseModel):
    """Move to ``assigned`` — manager confirmation or teacher self-acceptance."""

    model_config = _camel

    intent: Literal["assign_status"] = "assign_status"
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")


class PlainStatusIntent(BaseModel):
    """Set the status directly. The value is checked against the enum when applied."""

    model_config = _camel

    intent: Literal["set_status"] = "set_status"
    status: str
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")


class AssignTeacherIntent(BaseModel):
    """Manager assigns a teacher; status defaults to ``requested``."""

    model_config = _camel

    intent: Literal["assign_teacher"] = "assign_teacher"
    teacher_id: int = Field(alias="teacherId")
    status: str | None = None
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")


class RespondedIntent(BaseModel):
    """Teacher toggles whether the student answered the follow-up call."""

    model_config = _camel

    intent: Literal["responded"] = "responded"
    responded: bool


class FieldPatchIntent(BaseModel):
    """Edit fields without touching the status."""

    model_config = _camel

    intent: Literal["patch"] = "patch"
    start_time: datetime | None = Field(default=None, alias="startTime")
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")


AppointmentIntent = Annotated[
    Union[
        RejectIntent,
        AssignStatusIntent,
        PlainStatusIntent,
        AssignTeacherIntent,
        RespondedIntent,
        FieldPatchIntent,
    ],
    Field(discriminator="intent"),
]


class AppointmentIntentBody(RootModel[AppointmentIntent]):
    """Request body wrapper so one endpoint can accept any intent."""


class AppointmentUpdate(BaseModel):
    """Loose update body as sent by the web client."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status: str | None = None
    teacher_id: int | None = Field(default=None, alias="teacherId")
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")
    responded: bool | None = None
    start_time: datetime | None = Field(default=None, alias="startTime")


def _assignment_kwargs(update: AppointmentUpdate) -> dict[str, str | None]:
    # Only forward teacher_assignment when the caller actually sent it
    if "teacher_assignment" in update.model_fields_set:
        return {"teacher_assignment": update.teacher_assignment}
    return {}


def classify_update(update: AppointmentUpdate) -> AppointmentIntent:
    """Turn a loose update body into exactly one intent.

    Precedence: rejected > assigned > plain status > teacherId > responded > field patch.
    """
    sent = update.model_fields_set
    responded_sent = "responded" in sent and update.responded is not None

    if update.status == AppointmentStatus.REJECTED.value:
        return RejectIntent(**_assignment_kwargs(update))
    if update.status == AppointmentStatus.ASSIGNED.value:
        return AssignStatusIntent(**_assignment_kwargs(update))
    if update.status and update.teacher_id is None and not update.responded:
        return PlainStatusIntent(status=update.status, **_assignment_kwargs(update))
    if update.teacher_id is not None:
        return AssignTeacherIntent(
            teacher_id=update.teacher_id,
            status=update.status or None,
            **_assignment_kwargs(update),
        )
    if responded_sent:
        return RespondedIntent(responded=bool(update.responded))

    patch: dict[str, object] = _assignment_kwargs(update)
    if "start_time" in sent and update.start_time is not None:
        patch["start_time"] = update.start_time
    return FieldPatchIntent(**patch)


# ── Requests ─────────────────────────────────────────────────────────


class CreateAppointmentRequest(BaseModel):
    """Book a session. Staff may book on behalf of a student via ``studentId``."""

    model_config = ConfigDict(populate_by_name=True)

    start_time: datetime = Field(alias="startTime")
    student_id: int | None = Field(default=None, alias="studentId")
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")


class RespondedRequest(BaseModel):
    """Body of the follow-up toggle endpoint."""

    responded: bool


# ── Responses ────────────────────────────────────────────────────────


class UserRef(BaseModel):
    """Minimal user reference embedded in appointment payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str


class AppointmentOut(BaseModel):
    """Appointment as returned to clients."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    student_id: int = Field(alias="studentId")
    teacher_id: int | None = Field(default=None, alias="teacherId")
    created_by_teacher_id: int | None = Field(default=None, alias="createdByTeacherId")
    start_time: datetime = Field(alias="startTime")
    status: str
    teacher_assignment: str | None = Field(default=None, alias="teacherAssignment")
    student: UserRef | None = None
    teacher: UserRef | None = None


class NotificationTicketOut(BaseModel):
    """State of a background notification."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    state: Literal["pending", "delivered", "failed", "cancelled"]
    failure_reason: str | None = Field(default=None, alias="failureReason")

    @classmethod
    def from_ticket(cls, ticket: Any) -> NotificationTicketOut:
        return cls(id=ticket.id, state=ticket.state.value, failure_reason=ticket.failure_reason)


class AppointmentMutationOut(AppointmentOut):
    """Appointment plus the notifications it triggered."""

    notifications: list[NotificationTicketOut] = Field(default_factory=list)
