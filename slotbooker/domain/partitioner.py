"""
Splits a day's availability into the morning and afternoon display buckets.

Pure functions only: the buckets are recomputed from the raw availability
every time it changes and never stored on their own.
"""

from typing import Iterable, List

from .models import AvailabilitySlot, DayPartition, DisplaySlot

NOON = 12


def format_hour_label(hour: int) -> str:
    """
    Format an hour as a 24-hour clock label.

    Example: 9 -> "09:00", 14 -> "14:00"
    """
    return f"{hour:02d}:00"


def to_display_slot(slot: AvailabilitySlot) -> DisplaySlot:
    return DisplaySlot(
        hour=slot.hour,
        available=slot.available,
        label=format_hour_label(slot.hour)
    )


def partition_availability(slots: Iterable[AvailabilitySlot]) -> DayPartition:
    """
    Partition slots by the ``hour < 12`` predicate.

    No sorting is applied: within each bucket slots keep the order in which
    the feed returned them.
    """
    morning: List[DisplaySlot] = []
    afternoon: List[DisplaySlot] = []

    for slot in slots:
        bucket = morning if slot.hour < NOON else afternoon
        bucket.append(to_display_slot(slot))

    return DayPartition(morning=tuple(morning), afternoon=tuple(afternoon))
