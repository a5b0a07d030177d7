"""
Scheduling state store.

The whole screen state lives in one immutable ``SchedulingState``. Every user
action and every fetch result is an event; ``reduce`` turns the current state
and an event into the next state without side effects, and
``SchedulingStore`` holds the current state and notifies subscribers.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

from pendulum import DateTime

from .models import Appointment, AvailabilitySlot, Provider, Selection


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    FAILED = "failed"


@dataclass(frozen=True)
class ProvidersState:
    status: LoadStatus = LoadStatus.IDLE
    items: Tuple[Provider, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class AvailabilityState:
    """
    Availability of the most recently requested (provider, day) pair.

    ``token`` identifies the latest request. Slots from an earlier request
    stay visible while a newer one is loading.
    """
    status: LoadStatus = LoadStatus.IDLE
    slots: Tuple[AvailabilitySlot, ...] = ()
    error: str | None = None
    token: int = 0
    provider_id: str | None = None
    day: str | None = None


@dataclass(frozen=True)
class SubmissionState:
    status: SubmissionStatus = SubmissionStatus.IDLE
    requested_date: DateTime | None = None
    appointment: Appointment | None = None
    error: str | None = None


@dataclass(frozen=True)
class SchedulingState:
    selection: Selection
    providers: ProvidersState = field(default_factory=ProvidersState)
    availability: AvailabilityState = field(default_factory=AvailabilityState)
    submission: SubmissionState = field(default_factory=SubmissionState)
    date_picker_open: bool = False

    def find_slot(self, hour: int) -> AvailabilitySlot | None:
        for slot in self.availability.slots:
            if slot.hour == hour:
                return slot
        return None

    @property
    def can_submit(self) -> bool:
        return self.submission.status is not SubmissionStatus.SUBMITTING


def initial_state(provider_id: str, date: DateTime) -> SchedulingState:
    """Seed the state from the provider the screen was opened with."""
    return SchedulingState(selection=Selection(provider_id=provider_id, date=date))


# Events


@dataclass(frozen=True)
class ProviderSelected:
    provider_id: str


@dataclass(frozen=True)
class DateSelected:
    date: DateTime


@dataclass(frozen=True)
class HourSelected:
    hour: int


@dataclass(frozen=True)
class DatePickerToggled:
    pass


@dataclass(frozen=True)
class DatePickerClosed:
    pass


@dataclass(frozen=True)
class ProvidersRequested:
    pass


@dataclass(frozen=True)
class ProvidersLoaded:
    providers: Sequence[Provider]


@dataclass(frozen=True)
class ProvidersFailed:
    error: str


@dataclass(frozen=True)
class AvailabilityRequested:
    token: int
    provider_id: str
    day: str


@dataclass(frozen=True)
class AvailabilityLoaded:
    token: int
    slots: Sequence[AvailabilitySlot]


@dataclass(frozen=True)
class AvailabilityFailed:
    token: int
    error: str


@dataclass(frozen=True)
class SubmissionStarted:
    date: DateTime


@dataclass(frozen=True)
class SubmissionSucceeded:
    appointment: Appointment


@dataclass(frozen=True)
class SubmissionFailed:
    error: str


# Reducers


def _provider_selected(state: SchedulingState, event: ProviderSelected) -> SchedulingState:
    if event.provider_id == state.selection.provider_id:
        return state
    return replace(state, selection=replace(state.selection, provider_id=event.provider_id))


def _date_selected(state: SchedulingState, event: DateSelected) -> SchedulingState:
    if event.date == state.selection.date:
        return state
    return replace(state, selection=replace(state.selection, date=event.date))


def _hour_selected(state: SchedulingState, event: HourSelected) -> SchedulingState:
    slot = state.find_slot(event.hour)
    # Unavailable or unknown hours cannot be picked
    if slot is None or not slot.available:
        return state
    selection = replace(state.selection, hour=event.hour, hour_chosen=True)
    if selection == state.selection:
        return state
    return replace(state, selection=selection)


def _date_picker_toggled(state: SchedulingState, event: DatePickerToggled) -> SchedulingState:
    return replace(state, date_picker_open=not state.date_picker_open)


def _date_picker_closed(state: SchedulingState, event: DatePickerClosed) -> SchedulingState:
    if not state.date_picker_open:
        return state
    return replace(state, date_picker_open=False)


def _providers_requested(state: SchedulingState, event: ProvidersRequested) -> SchedulingState:
    return replace(state, providers=replace(state.providers, status=LoadStatus.LOADING, error=None))


def _providers_loaded(state: SchedulingState, event: ProvidersLoaded) -> SchedulingState:
    return replace(
        state,
        providers=ProvidersState(status=LoadStatus.LOADED, items=tuple(event.providers))
    )


def _providers_failed(state: SchedulingState, event: ProvidersFailed) -> SchedulingState:
    return replace(
        state,
        providers=replace(state.providers, status=LoadStatus.FAILED, error=event.error)
    )


def _availability_requested(state: SchedulingState, event: AvailabilityRequested) -> SchedulingState:
    availability = replace(
        state.availability,
        status=LoadStatus.LOADING,
        error=None,
        token=event.token,
        provider_id=event.provider_id,
        day=event.day
    )
    return replace(state, availability=availability)


def _availability_loaded(state: SchedulingState, event: AvailabilityLoaded) -> SchedulingState:
    availability = replace(state.availability, slots=tuple(event.slots))
    # A response for an older request replaces the slots but the newest
    # request is still pending
    if event.token == state.availability.token:
        availability = replace(availability, status=LoadStatus.LOADED, error=None)
    return replace(state, availability=availability)


def _availability_failed(state: SchedulingState, event: AvailabilityFailed) -> SchedulingState:
    if event.token != state.availability.token:
        return state
    return replace(
        state,
        availability=replace(state.availability, status=LoadStatus.FAILED, error=event.error)
    )


def _submission_started(state: SchedulingState, event: SubmissionStarted) -> SchedulingState:
    return replace(
        state,
        submission=SubmissionState(status=SubmissionStatus.SUBMITTING, requested_date=event.date)
    )


def _submission_succeeded(state: SchedulingState, event: SubmissionSucceeded) -> SchedulingState:
    submission = replace(
        state.submission,
        status=SubmissionStatus.SUBMITTED,
        appointment=event.appointment,
        error=None
    )
    return replace(state, submission=submission)


def _submission_failed(state: SchedulingState, event: SubmissionFailed) -> SchedulingState:
    submission = replace(state.submission, status=SubmissionStatus.FAILED, error=event.error)
    return replace(state, submission=submission)


_REDUCERS: Dict[type, Callable] = {
    ProviderSelected: _provider_selected,
    DateSelected: _date_selected,
    HourSelected: _hour_selected,
    DatePickerToggled: _date_picker_toggled,
    DatePickerClosed: _date_picker_closed,
    ProvidersRequested: _providers_requested,
    ProvidersLoaded: _providers_loaded,
    ProvidersFailed: _providers_failed,
    AvailabilityRequested: _availability_requested,
    AvailabilityLoaded: _availability_loaded,
    AvailabilityFailed: _availability_failed,
    SubmissionStarted: _submission_started,
    SubmissionSucceeded: _submission_succeeded,
    SubmissionFailed: _submission_failed,
}


def reduce(state: SchedulingState, event: object) -> SchedulingState:
    """
    Compute the next state for an event.

    Returns the very same object when the event changes nothing.

    Raises:
        TypeError: If the event type is unknown
    """
    try:
        reducer = _REDUCERS[type(event)]
    except KeyError:
        raise TypeError(f"Unknown scheduling event: {event!r}") from None
    return reducer(state, event)


Listener = Callable[[SchedulingState, SchedulingState], None]


class SchedulingStore:
    """
    Holds the current ``SchedulingState``, the single source of truth for the screen.

    Subscribers are called with ``(previous, current)`` after every change.
    """

    def __init__(self, state: SchedulingState):
        self._state = state
        self._listeners: List[Listener] = []

    @property
    def state(self) -> SchedulingState:
        return self._state

    def dispatch(self, event: object) -> SchedulingState:
        previous = self._state
        current = reduce(previous, event)
        if current is previous:
            return current

        self._state = current
        for listener in list(self._listeners):
            listener(previous, current)
        return current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
