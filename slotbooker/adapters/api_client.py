"""
HTTP clients for the booking backend.

Only three logical endpoints are used:

    GET  /providers
    GET  /providers/{id}/day-availability?year&month&day
    POST /appointments {provider_id, date}
"""

import asyncio
import logging
from typing import Any, Dict, List

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import NetworkError, ServerError, ValidationError
from ..domain.models import Appointment, AvailabilitySlot, Provider

logger = logging.getLogger(__name__)

# Statuses the backend uses to reject a request it understood
VALIDATION_STATUSES = (400, 409, 422)


class ApiClient:
    """
    Thin wrapper around ``requests`` with the base URL and auth header applied.

    Requests are blocking, so the async methods of the concrete clients run
    them in a worker thread. No caching and no retries: every call is a fresh
    request.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 30
    ):
        """
        Initialize the API client.

        Args:
            base_url: Backend base URL, e.g. http://localhost:3333
            access_token: Optional bearer token
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Accept": "application/json",
            "Content-Type": "application/json"
        }
        if access_token:
            self.headers["Authorization"] = f"Bearer {access_token}"

    def _request(
        self,
        method: str,
        path: str,
        params: Dict[str, Any] | None = None,
        payload: Dict[str, Any] | None = None
    ) -> Any:
        """
        Perform a request and decode the JSON body.

        Raises:
            NetworkError: If the backend cannot be reached
            ValidationError: If the backend rejects the request
            ServerError: On any other non-2xx status or an undecodable body
        """
        url = f"{self.base_url}{path}"
        logger.debug("%s %s params=%s", method, url, params)

        try:
            response = requests.request(
                method,
                url,
                headers=self.headers,
                params=params,
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Could not reach {url}: {e}") from e

        if not 200 <= response.status_code < 300:
            message = self._error_message(response)
            if response.status_code in VALIDATION_STATUSES:
                raise ValidationError(message, status_code=response.status_code)
            raise ServerError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ServerError(
                f"Invalid JSON from {url}", status_code=response.status_code
            ) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Prefer the backend's own ``message`` field over the status line."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"{response.status_code} {response.reason or ''}".strip()


class AvailabilityFeedClient(ApiClient):
    """Read side: the provider list and a provider's hours for one day."""

    async def list_providers(self) -> List[Provider]:
        data = await asyncio.to_thread(self._request, "GET", "/providers")
        return self._parse_providers(data)

    async def get_day_availability(
        self,
        provider_id: str,
        year: int,
        month: int,
        day: int
    ) -> List[AvailabilitySlot]:
        """
        Fetch hourly availability of a provider.

        Neither the provider id nor the date is validated here; the backend
        is authoritative for both.
        """
        data = await asyncio.to_thread(
            self._request,
            "GET",
            f"/providers/{provider_id}/day-availability",
            {"year": year, "month": month, "day": day}
        )
        return self._parse_availability(data)

    def _parse_providers(self, data: Any) -> List[Provider]:
        if not isinstance(data, list):
            raise ServerError("Expected a list of providers")

        providers: List[Provider] = []
        for item in data:
            try:
                providers.append(
                    Provider(
                        id=str(item["id"]),
                        name=str(item["name"]),
                        avatar_url=item.get("avatar_url") or None
                    )
                )
            except (KeyError, TypeError, AttributeError) as e:
                logger.warning("Skipping malformed provider %r: %s", item, e)
                continue

        return providers

    def _parse_availability(self, data: Any) -> List[AvailabilitySlot]:
        """
        Parse the day-availability response.

        Response format:
        [
            {"hour": 8, "available": true},
            {"hour": 9, "available": false}
        ]
        """
        if not isinstance(data, list):
            raise ServerError("Expected a list of availability slots")

        slots: List[AvailabilitySlot] = []
        for item in data:
            try:
                slots.append(
                    AvailabilitySlot(hour=int(item["hour"]), available=bool(item["available"]))
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed availability slot %r: %s", item, e)
                continue

        return slots


class AppointmentClient(ApiClient):
    """
    Write side: appointment creation.

    No idempotency key is sent, so retrying after a timeout may book twice.
    """

    async def create_appointment(self, provider_id: str, date: DateTime) -> Appointment:
        payload = {
            "provider_id": provider_id,
            "date": date.in_timezone("UTC").to_iso8601_string()
        }
        data = await asyncio.to_thread(self._request, "POST", "/appointments", None, payload)
        return self._parse_appointment(data, provider_id, date)

    def _parse_appointment(self, data: Any, provider_id: str, date: DateTime) -> Appointment:
        """Build the appointment from the response, defaulting to what was sent."""
        if not isinstance(data, dict):
            return Appointment(provider_id=provider_id, date=date)

        booked = date
        if data.get("date"):
            try:
                parsed = pendulum.parse(str(data["date"]))
            except ValueError as e:
                logger.warning("Could not parse appointment date %r: %s", data["date"], e)
            else:
                if isinstance(parsed, DateTime):
                    booked = parsed.in_timezone(date.timezone_name or "UTC")

        return Appointment(
            provider_id=str(data.get("provider_id") or provider_id),
            date=booked,
            id=str(data["id"]) if data.get("id") is not None else None
        )
