"""
Domain models for providers, hourly availability and appointments.
"""

from dataclasses import dataclass
from typing import Tuple

import pendulum
from pendulum import DateTime


def resolve_avatar(avatar_url: str | None, placeholder: str) -> str:
    """Return the avatar reference to display, falling back to the placeholder."""
    return avatar_url or placeholder


@dataclass(frozen=True)
class Provider:
    """
    Someone offering the bookable service.

    The provider list is always replaced as a whole on every fetch.
    """
    id: str
    name: str
    avatar_url: str | None = None

    def display_avatar(self, placeholder: str) -> str:
        return resolve_avatar(self.avatar_url, placeholder)


@dataclass(frozen=True)
class AvailabilitySlot:
    """
    One hour of a given day for a given provider.

    Invariant: hour is between 0 and 23.
    """
    hour: int
    available: bool

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {self.hour}")


@dataclass(frozen=True)
class DisplaySlot:
    """An availability slot annotated with its display label (derived, never stored)."""
    hour: int
    available: bool
    label: str


@dataclass(frozen=True)
class DayPartition:
    """Availability split into morning and afternoon buckets."""
    morning: Tuple[DisplaySlot, ...] = ()
    afternoon: Tuple[DisplaySlot, ...] = ()

    def __len__(self) -> int:
        return len(self.morning) + len(self.afternoon)


@dataclass(frozen=True)
class Appointment:
    """An appointment as confirmed by the backend."""
    provider_id: str
    date: DateTime
    id: str | None = None

    def timestamp_ms(self) -> int:
        """Epoch timestamp in milliseconds."""
        return to_epoch_ms(self.date)


@dataclass(frozen=True)
class Selection:
    """
    The user's in-progress choice of provider, date and hour.

    ``hour`` always holds a concrete value (0 by default), so ``hour_chosen``
    tells an explicit pick of midnight apart from no pick at all.
    """
    provider_id: str
    date: DateTime
    hour: int = 0
    hour_chosen: bool = False

    def appointment_time(self, timezone: str) -> DateTime:
        """Combine the selected day with the selected hour, minutes and seconds zeroed."""
        return pendulum.datetime(
            self.date.year,
            self.date.month,
            self.date.day,
            self.hour,
            0,
            0,
            tz=timezone
        )


@dataclass(frozen=True)
class UserSession:
    """The authenticated user, as far as this screen is concerned."""
    name: str = ""
    avatar_url: str | None = None

    def display_avatar(self, placeholder: str) -> str:
        return resolve_avatar(self.avatar_url, placeholder)


def to_epoch_ms(dt: DateTime) -> int:
    return round(dt.timestamp() * 1000)
