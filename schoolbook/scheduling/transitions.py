"""Appointment state machine.

Given the current status of an appointment and one update intent, compute
the column values to persist. Pure: no I/O, no clock, no database.

    pending → requested → assigned → responded → done
                  └──────────┴──→ rejected

Rejection is accepted from any state. Whether a rejected appointment may
leave that state is a policy switch (``TransitionPolicy.rejected_is_terminal``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from schoolbook.models.enums import AppointmentStatus
from schoolbook.scheduling.errors import InvalidStatusError, InvalidTransitionError
from schoolbook.schemas.appointments import (
    AppointmentIntent,
    AssignStatusIntent,
    AssignTeacherIntent,
    FieldPatchIntent,
    PlainStatusIntent,
    RejectIntent,
    RespondedIntent,
)

logger = logging.getLogger(__name__)

_VALID_STATUSES = frozenset(AppointmentStatus.values())


@dataclass(frozen=True)
class TransitionPolicy:
    """Workflow rules that are deployment decisions rather than fixed logic."""

    rejected_is_terminal: bool = False


@dataclass(frozen=True)
class Transition:
    """The outcome of applying one intent to one appointment."""

    intent: str
    from_status: str
    to_status: str
    changes: dict[str, Any] = field(default_factory=dict)

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status

    @property
    def assigns_teacher(self) -> bool:
        """True when this transition hands the appointment to a teacher."""
        return self.intent == "assign_teacher"


def validate_status(status: str) -> AppointmentStatus:
    """Return the enum member for ``status`` or raise InvalidStatusError."""
    if status not in _VALID_STATUSES:
        raise InvalidStatusError(status)
    return AppointmentStatus(status)


def _carry_assignment(intent: Any, changes: dict[str, Any]) -> None:
    # teacher_assignment survives unless the intent explicitly carries a value
    if "teacher_assignment" in intent.model_fields_set:
        changes["teacher_assignment"] = intent.teacher_assignment


def plan_transition(
    current_status: str,
    intent: AppointmentIntent,
    policy: TransitionPolicy | None = None,
) -> Transition:
    """Compute the persisted changes for ``intent`` applied at ``current_status``.

    Raises:
        InvalidStatusError: the intent names a status outside the enum.
        InvalidTransitionError: the policy forbids leaving ``current_status``.
    """
    policy = policy or TransitionPolicy()
    changes: dict[str, Any] = {}

    if (
        policy.rejected_is_terminal
        and current_status == AppointmentStatus.REJECTED.value
        and not isinstance(intent, RejectIntent)
    ):
        raise InvalidTransitionError(current_status, intent.intent)

    if isinstance(intent, RejectIntent):
        changes["status"] = AppointmentStatus.REJECTED.value
        _carry_assignment(intent, changes)

    elif isinstance(intent, AssignStatusIntent):
        changes["status"] = AppointmentStatus.ASSIGNED.value
        _carry_assignment(intent, changes)

    elif isinstance(intent, PlainStatusIntent):
        changes["status"] = validate_status(intent.status).value
        _carry_assignment(intent, changes)

    elif isinstance(intent, AssignTeacherIntent):
        target = intent.status or AppointmentStatus.REQUESTED.value
        changes["teacher_id"] = intent.teacher_id
        changes["status"] = validate_status(target).value
        _carry_assignment(intent, changes)

    elif isinstance(intent, RespondedIntent):
        changes["status"] = (
            AppointmentStatus.RESPONDED.value if intent.responded else AppointmentStatus.ASSIGNED.value
        )

    elif isinstance(intent, FieldPatchIntent):
        if intent.start_time is not None:
            changes["start_time"] = intent.start_time
        _carry_assignment(intent, changes)

    else:  # pragma: no cover - the intent union is closed
        raise TypeError(f"Unsupported intent: {type(intent).__name__}")

    to_status = changes.get("status", current_status)
    logger.debug("Planned %s: %s -> %s (%s)", intent.intent, current_status, to_status, sorted(changes))
    return Transition(
        intent=intent.intent,
        from_status=current_status,
        to_status=to_status,
        changes=changes,
    )
