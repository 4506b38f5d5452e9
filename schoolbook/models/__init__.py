"""SQLAlchemy ORM models for Schoolbook.

Import all models here so Base.metadata.create_all() discovers them.
"""

from __future__ import annotations

from schoolbook.models.appointment import Appointment
from schoolbook.models.availability import Availability
from schoolbook.models.base import Base
from schoolbook.models.enums import AppointmentStatus, Section, UserRole
from schoolbook.models.independent_assignment import IndependentAssignment
from schoolbook.models.questionnaire import QuestionnaireResponse
from schoolbook.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "Availability",
    "Appointment",
    "QuestionnaireResponse",
    "IndependentAssignment",
    # Enums
    "UserRole",
    "AppointmentStatus",
    "Section",
]
