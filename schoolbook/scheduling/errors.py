"""Error taxonomy for the scheduling core.

Route handlers never catch these individually; the exception handlers
registered in ``schoolbook.main`` translate them into HTTP responses.
"""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling core."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Input has the wrong shape or violates a field rule."""

    status_code = 400


class InvalidStatusError(ValidationError):
    """A status string outside the appointment status enum."""

    def __init__(self, status: str) -> None:
        super().__init__(f"status '{status}' is not defined")
        self.status = status


class NotFoundError(SchedulingError):
    """A referenced appointment, user or record does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(SchedulingError):
    """The principal may not act on this record."""

    status_code = 403


class DuplicateBookingError(SchedulingError):
    """The student already holds an appointment at this start time."""

    status_code = 409

    def __init__(self, message: str = "you already have a booking at this time") -> None:
        super().__init__(message)


class InvalidTransitionError(SchedulingError):
    """The current status refuses the requested transition."""

    status_code = 409

    def __init__(self, current: str, intent: str) -> None:
        super().__init__(f"appointment in status '{current}' cannot accept '{intent}'")
        self.current = current
        self.intent = intent


class StorageError(SchedulingError):
    """The persistence layer failed. The message shown to clients is generic."""

    status_code = 503
    public_message = "Storage unavailable, please retry later."


class QuestionnaireCompletionError(StorageError):
    """The questionnaire was saved but the appointment could not be closed."""

    def __init__(self, response_id: int, appointment_id: int) -> None:
        super().__init__(
            f"questionnaire {response_id} saved but appointment {appointment_id} was not marked done"
        )
        self.response_id = response_id
        self.appointment_id = appointment_id
        self.public_message = (
            f"Questionnaire {response_id} was saved but the appointment could not be marked done."
        )


class NotificationError(SchedulingError):
    """Notification delivery failed. Never reverses a committed transition."""

    status_code = 502
