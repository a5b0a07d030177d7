"""
Adapters layer - External integrations (booking backend HTTP API).
"""

from .api_client import ApiClient, AppointmentClient, AvailabilityFeedClient
from .mock_api_client import MockBookingClient

__all__ = ["ApiClient", "AppointmentClient", "AvailabilityFeedClient", "MockBookingClient"]
