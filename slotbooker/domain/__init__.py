"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import ApiError, BookingError, NetworkError, ServerError, ValidationError
from .models import (
    Appointment,
    AvailabilitySlot,
    DayPartition,
    DisplaySlot,
    Provider,
    Selection,
    UserSession,
)
from .partitioner import format_hour_label, partition_availability
from .state import LoadStatus, SchedulingState, SchedulingStore, SubmissionStatus

__all__ = [
    "ApiError",
    "BookingError",
    "NetworkError",
    "ServerError",
    "ValidationError",
    "Appointment",
    "AvailabilitySlot",
    "DayPartition",
    "DisplaySlot",
    "Provider",
    "Selection",
    "UserSession",
    "format_hour_label",
    "partition_availability",
    "LoadStatus",
    "SchedulingState",
    "SchedulingStore",
    "SubmissionStatus",
]
