"""
Tests for the availability partitioner.
"""

import pytest

from slotbooker.domain.models import AvailabilitySlot, DisplaySlot
from slotbooker.domain.partitioner import format_hour_label, partition_availability


@pytest.mark.parametrize("hour", range(24))
def test_label_is_two_digit_hour(hour):
    assert format_hour_label(hour) == f"{hour:02d}:00"


def test_label_examples():
    assert format_hour_label(9) == "09:00"
    assert format_hour_label(14) == "14:00"
    assert format_hour_label(0) == "00:00"


def test_split_by_noon():
    """Scenario from the booking screen: 9 and 10 in the morning, 14 in the afternoon."""
    slots = [
        AvailabilitySlot(hour=9, available=True),
        AvailabilitySlot(hour=10, available=False),
        AvailabilitySlot(hour=14, available=True),
    ]

    buckets = partition_availability(slots)

    assert buckets.morning == (
        DisplaySlot(hour=9, available=True, label="09:00"),
        DisplaySlot(hour=10, available=False, label="10:00"),
    )
    assert buckets.afternoon == (DisplaySlot(hour=14, available=True, label="14:00"),)


def test_noon_belongs_to_afternoon():
    buckets = partition_availability([
        AvailabilitySlot(hour=11, available=True),
        AvailabilitySlot(hour=12, available=True),
    ])

    assert [slot.hour for slot in buckets.morning] == [11]
    assert [slot.hour for slot in buckets.afternoon] == [12]


def test_feed_order_is_kept():
    """No sorting: an unordered feed is displayed in feed order."""
    slots = [
        AvailabilitySlot(hour=16, available=True),
        AvailabilitySlot(hour=8, available=True),
        AvailabilitySlot(hour=13, available=False),
        AvailabilitySlot(hour=7, available=False),
    ]

    buckets = partition_availability(slots)

    assert [slot.hour for slot in buckets.morning] == [8, 7]
    assert [slot.hour for slot in buckets.afternoon] == [16, 13]


def test_every_slot_appears_exactly_once():
    slots = [AvailabilitySlot(hour=h, available=h % 3 == 0) for h in (23, 0, 5, 12, 11, 18, 6)]

    buckets = partition_availability(slots)

    assert len(buckets.morning) + len(buckets.afternoon) == len(slots) == len(buckets)
    assert sorted(slot.hour for slot in buckets.morning + buckets.afternoon) == sorted(s.hour for s in slots)
    assert all(slot.hour < 12 for slot in buckets.morning)
    assert all(slot.hour >= 12 for slot in buckets.afternoon)


def test_empty_availability():
    buckets = partition_availability([])

    assert buckets.morning == ()
    assert buckets.afternoon == ()
