"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Who the user is — fixed at registration."""

    STUDENT = "student"
    TEACHER = "teacher"
    MANAGER = "manager"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states.

    pending → requested → assigned → responded → done, with rejected as a side exit.
    """

    PENDING = "pending"
    REQUESTED = "requested"
    ASSIGNED = "assigned"
    RESPONDED = "responded"
    DONE = "done"
    REJECTED = "rejected"

    @classmethod
    def values(cls) -> list[str]:
        """All defined status strings, in lifecycle order."""
        return [member.value for member in cls]


class Section(str, Enum):
    """Predefined student cohorts. Users may also carry sections outside this list."""

    AASEM = "aasem"
    KHALED = "khaled"
    MMDOH = "mmdoh"
    OBADA = "obada"
    AWAB = "awab"
    ZUHAIR = "zuhair"
    YAHIA = "yahia"
    OMAR = "omar"
    MOTAA = "motaa"
    MAHMOUD = "mahmoud"
    KIBAR = "kibar"
