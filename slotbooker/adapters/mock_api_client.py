"""
Mock booking backend for running without a server.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Set, Tuple

import pendulum
from pendulum import DateTime

from ..domain.exceptions import ServerError, ValidationError
from ..domain.models import Appointment, AvailabilitySlot, Provider

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_booking_data.json"


class MockBookingClient:
    """
    In-process stand-in for both the availability feed and the appointment endpoint.

    Providers and existing appointments are loaded from mock_booking_data.json.
    Every provider works from 08:00 to 17:00 (one slot per hour), and an hour
    is available unless an appointment already occupies it. Appointments
    created through this client are remembered for the client's lifetime.
    """

    FIRST_HOUR = 8
    LAST_HOUR = 17

    def __init__(self, data_file: Path | None = None, timezone: str = "UTC"):
        """
        Initialize the mock client.

        Args:
            data_file: Optional JSON fixture, defaults to the bundled one
            timezone: IANA timezone the fixture's naive dates are read in
        """
        self.timezone = timezone
        self.providers: List[Provider] = []
        self._booked: Set[Tuple[str, str, int]] = set()
        self._load_data(data_file or DEFAULT_DATA_FILE)

    def _load_data(self, data_file: Path) -> None:
        """Load providers and appointments from the JSON fixture."""
        if data_file.exists():
            with open(data_file, "r", encoding="utf-8") as f:
                data: Dict[str, Any] = json.load(f)
        else:
            # Fallback to empty if file doesn't exist
            data = {}

        self.providers = [
            Provider(id=item["id"], name=item["name"], avatar_url=item.get("avatar_url"))
            for item in data.get("providers", [])
        ]

        for item in data.get("appointments", []):
            try:
                booked_at = pendulum.parse(item["date"], tz=self.timezone)
                self._booked.add(self._key(item["provider_id"], booked_at))
            except (KeyError, ValueError) as e:
                # Skip invalid appointments
                logger.debug("Ignoring mock appointment %r: %s", item, e)
                continue

    @staticmethod
    def _key(provider_id: str, date: DateTime) -> Tuple[str, str, int]:
        return provider_id, date.to_date_string(), date.hour

    def _require_provider(self, provider_id: str) -> None:
        if not any(provider.id == provider_id for provider in self.providers):
            raise ServerError(f"Provider not found: {provider_id}", status_code=404)

    async def list_providers(self) -> List[Provider]:
        return list(self.providers)

    async def get_day_availability(
        self,
        provider_id: str,
        year: int,
        month: int,
        day: int
    ) -> List[AvailabilitySlot]:
        self._require_provider(provider_id)
        try:
            day_string = pendulum.date(year, month, day).to_date_string()
        except ValueError as e:
            raise ValidationError(f"Invalid date: {e}", status_code=400) from e

        return [
            AvailabilitySlot(
                hour=hour,
                available=(provider_id, day_string, hour) not in self._booked
            )
            for hour in range(self.FIRST_HOUR, self.LAST_HOUR + 1)
        ]

    async def create_appointment(self, provider_id: str, date: DateTime) -> Appointment:
        self._require_provider(provider_id)
        local = date.in_timezone(self.timezone)

        if not self.FIRST_HOUR <= local.hour <= self.LAST_HOUR:
            raise ValidationError(
                "Appointments can only be booked between "
                f"{self.FIRST_HOUR:02d}:00 and {self.LAST_HOUR:02d}:00",
                status_code=400
            )

        key = self._key(provider_id, local)
        if key in self._booked:
            raise ValidationError("This appointment is already booked", status_code=400)

        self._booked.add(key)
        return Appointment(provider_id=provider_id, date=local, id=str(uuid.uuid4()))
