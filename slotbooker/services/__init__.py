"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .scheduler import (
    AppointmentClientProtocol,
    FeedClientProtocol,
    NavigatorProtocol,
    NotifierProtocol,
    SchedulingOrchestrator,
)

__all__ = [
    "AppointmentClientProtocol",
    "FeedClientProtocol",
    "NavigatorProtocol",
    "NotifierProtocol",
    "SchedulingOrchestrator",
]
