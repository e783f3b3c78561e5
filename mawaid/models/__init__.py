"""Database models."""

from mawaid.models.appointments import appointment_suggestions, appointments
from mawaid.models.base import metadata
from mawaid.models.notifications import notifications
from mawaid.models.profiles import profiles

__all__ = [
    "appointment_suggestions",
    "appointments",
    "metadata",
    "notifications",
    "profiles",
]
