"""
Tests for the mock booking backend.
"""

import asyncio
import json

import pendulum
import pytest

from slotbooker.adapters.mock_api_client import MockBookingClient
from slotbooker.domain.exceptions import ServerError, ValidationError


def test_bundled_fixture_loads():
    client = MockBookingClient()

    providers = asyncio.run(client.list_providers())

    assert [p.id for p in providers] == ["p1", "p2", "p3"]


def test_working_hours_with_booked_slots():
    client = MockBookingClient()

    slots = asyncio.run(client.get_day_availability("p1", 2024, 5, 10))

    assert [s.hour for s in slots] == list(range(8, 18))
    unavailable = [s.hour for s in slots if not s.available]
    assert unavailable == [10, 15]


def test_booking_marks_slot_taken():
    client = MockBookingClient()
    when = pendulum.datetime(2024, 5, 10, 14, tz="UTC")

    async def scenario():
        appointment = await client.create_appointment("p1", when)
        slots = await client.get_day_availability("p1", 2024, 5, 10)
        return appointment, slots

    appointment, slots = asyncio.run(scenario())

    assert appointment.id
    assert appointment.date == when
    assert not next(s for s in slots if s.hour == 14).available


def test_booking_taken_slot_is_rejected():
    client = MockBookingClient()

    with pytest.raises(ValidationError, match="already booked"):
        asyncio.run(client.create_appointment("p1", pendulum.datetime(2024, 5, 10, 10, tz="UTC")))


def test_booking_outside_working_hours_is_rejected():
    client = MockBookingClient()

    with pytest.raises(ValidationError):
        asyncio.run(client.create_appointment("p1", pendulum.datetime(2024, 5, 10, 0, tz="UTC")))


def test_unknown_provider():
    client = MockBookingClient()

    with pytest.raises(ServerError) as exc_info:
        asyncio.run(client.get_day_availability("nope", 2024, 5, 10))

    assert exc_info.value.status_code == 404


def test_invalid_date_is_rejected():
    client = MockBookingClient()

    with pytest.raises(ValidationError, match="Invalid date"):
        asyncio.run(client.get_day_availability("p1", 2024, 2, 30))


def test_custom_fixture(tmp_path):
    data_file = tmp_path / "data.json"
    data_file.write_text(json.dumps({
        "providers": [{"id": "x", "name": "Xavier"}],
        "appointments": [{"provider_id": "x", "date": "2024-01-02T09:00:00"}],
    }))
    client = MockBookingClient(data_file=data_file, timezone="Europe/Berlin")

    slots = asyncio.run(client.get_day_availability("x", 2024, 1, 2))

    assert [s.hour for s in slots if not s.available] == [9]


def test_missing_fixture_means_no_providers(tmp_path):
    client = MockBookingClient(data_file=tmp_path / "missing.json")

    assert asyncio.run(client.list_providers()) == []
