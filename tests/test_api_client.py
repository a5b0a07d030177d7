"""
Tests for the HTTP booking clients.
"""

import asyncio
import json

import pendulum
import pytest
import requests

from slotbooker.adapters import api_client
from slotbooker.adapters.api_client import AppointmentClient, AvailabilityFeedClient
from slotbooker.domain.exceptions import NetworkError, ServerError, ValidationError
from slotbooker.domain.models import AvailabilitySlot, Provider

BASE_URL = "http://booking.test"


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._text = text if text is not None else json.dumps(body)

    def json(self):
        return json.loads(self._text)


@pytest.fixture
def fake_http(monkeypatch):
    """Replace requests.request and record every call."""
    calls = []
    responses = []

    def fake_request(method, url, **kwargs):
        calls.append({"method": method, "url": url, **kwargs})
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(api_client.requests, "request", fake_request)
    return calls, responses


class TestAvailabilityFeedClient:

    def test_list_providers(self, fake_http):
        calls, responses = fake_http
        responses.append(FakeResponse(body=[
            {"id": "p1", "name": "Ana", "avatar_url": None},
            {"id": "p2", "name": "Leo", "avatar_url": "https://example.com/leo.png"},
        ]))
        client = AvailabilityFeedClient(BASE_URL + "/", access_token="secret")

        providers = asyncio.run(client.list_providers())

        assert providers == [
            Provider(id="p1", name="Ana"),
            Provider(id="p2", name="Leo", avatar_url="https://example.com/leo.png"),
        ]
        assert calls[0]["method"] == "GET"
        assert calls[0]["url"] == f"{BASE_URL}/providers"
        assert calls[0]["headers"]["Authorization"] == "Bearer secret"

    def test_no_auth_header_without_token(self):
        client = AvailabilityFeedClient(BASE_URL)

        assert "Authorization" not in client.headers

    def test_day_availability_request_and_parsing(self, fake_http):
        calls, responses = fake_http
        responses.append(FakeResponse(body=[
            {"hour": 14, "available": True},
            {"hour": 9, "available": False},
        ]))
        client = AvailabilityFeedClient(BASE_URL, timeout=5)

        slots = asyncio.run(client.get_day_availability("p1", 2024, 5, 10))

        # Feed order is preserved
        assert slots == [AvailabilitySlot(hour=14, available=True), AvailabilitySlot(hour=9, available=False)]
        assert calls[0]["url"] == f"{BASE_URL}/providers/p1/day-availability"
        assert calls[0]["params"] == {"year": 2024, "month": 5, "day": 10}
        assert calls[0]["timeout"] == 5

    def test_malformed_slots_are_skipped(self, fake_http):
        _, responses = fake_http
        responses.append(FakeResponse(body=[
            {"hour": 8, "available": True},
            {"hour": 24, "available": True},
            {"available": True},
            {"hour": "ten", "available": False},
        ]))
        client = AvailabilityFeedClient(BASE_URL)

        slots = asyncio.run(client.get_day_availability("p1", 2024, 5, 10))

        assert slots == [AvailabilitySlot(hour=8, available=True)]

    def test_unexpected_body_is_server_error(self, fake_http):
        _, responses = fake_http
        responses.append(FakeResponse(body={"hours": []}))
        client = AvailabilityFeedClient(BASE_URL)

        with pytest.raises(ServerError):
            asyncio.run(client.get_day_availability("p1", 2024, 5, 10))


class TestErrorMapping:

    def test_connection_error_is_network_error(self, fake_http):
        _, responses = fake_http
        responses.append(requests.exceptions.ConnectionError("refused"))
        client = AvailabilityFeedClient(BASE_URL)

        with pytest.raises(NetworkError, match="Could not reach"):
            asyncio.run(client.list_providers())

    def test_timeout_is_network_error(self, fake_http):
        _, responses = fake_http
        responses.append(requests.exceptions.Timeout("slow"))
        client = AvailabilityFeedClient(BASE_URL)

        with pytest.raises(NetworkError):
            asyncio.run(client.list_providers())

    def test_server_status_is_server_error(self, fake_http):
        _, responses = fake_http
        responses.append(FakeResponse(status_code=500, text="oops", reason="Internal Server Error"))
        client = AvailabilityFeedClient(BASE_URL)

        with pytest.raises(ServerError) as exc_info:
            asyncio.run(client.list_providers())

        assert exc_info.value.status_code == 500
        assert "500 Internal Server Error" in str(exc_info.value)

    def test_invalid_json_is_server_error(self, fake_http):
        _, responses = fake_http
        responses.append(FakeResponse(text="<html>"))
        client = AvailabilityFeedClient(BASE_URL)

        with pytest.raises(ServerError, match="Invalid JSON"):
            asyncio.run(client.list_providers())


class TestAppointmentClient:

    def test_create_appointment(self, fake_http):
        calls, responses = fake_http
        responses.append(FakeResponse(body={
            "id": "a1",
            "provider_id": "p1",
            "date": "2024-05-10T17:00:00.000Z",
        }))
        client = AppointmentClient(BASE_URL)
        when = pendulum.datetime(2024, 5, 10, 14, tz="America/Sao_Paulo")

        appointment = asyncio.run(client.create_appointment("p1", when))

        assert calls[0]["method"] == "POST"
        assert calls[0]["url"] == f"{BASE_URL}/appointments"
        assert calls[0]["json"] == {"provider_id": "p1", "date": "2024-05-10T17:00:00Z"}
        assert appointment.id == "a1"
        assert appointment.date == when

    def test_rejected_booking_is_validation_error(self, fake_http):
        _, responses = fake_http
        responses.append(FakeResponse(
            status_code=400,
            body={"status": "error", "message": "This appointment is already booked"},
            reason="Bad Request"
        ))
        client = AppointmentClient(BASE_URL)
        when = pendulum.datetime(2024, 5, 10, 14, tz="UTC")

        with pytest.raises(ValidationError, match="already booked") as exc_info:
            asyncio.run(client.create_appointment("p1", when))

        assert exc_info.value.status_code == 400

    def test_missing_fields_fall_back_to_request(self, fake_http):
        _, responses = fake_http
        responses.append(FakeResponse(body={}))
        client = AppointmentClient(BASE_URL)
        when = pendulum.datetime(2024, 5, 10, 14, tz="UTC")

        appointment = asyncio.run(client.create_appointment("p1", when))

        assert appointment.provider_id == "p1"
        assert appointment.date == when
        assert appointment.id is None
