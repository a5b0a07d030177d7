"""
Scheduling orchestrator for the appointment booking screen.

The orchestrator owns the ``SchedulingStore`` for one screen instance. It
turns user actions into store events, re-fetches availability whenever the
selected provider or day changes, and submits the final choice. Fetches run
as asyncio tasks so further actions can be handled while they are in flight.
Collaborators are plain protocols so tests can hand in simple stubs.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Coroutine, Dict, List, Protocol, Set

import pendulum
from pendulum import DateTime

from ..domain.exceptions import BookingError
from ..domain.models import Appointment, AvailabilitySlot, DayPartition, Provider, to_epoch_ms
from ..domain.partitioner import partition_availability
from ..domain.state import (
    AvailabilityFailed,
    AvailabilityLoaded,
    AvailabilityRequested,
    DatePickerClosed,
    DatePickerToggled,
    DateSelected,
    HourSelected,
    ProviderSelected,
    ProvidersFailed,
    ProvidersLoaded,
    ProvidersRequested,
    SchedulingState,
    SchedulingStore,
    SubmissionFailed,
    SubmissionStarted,
    SubmissionSucceeded,
    initial_state,
)

logger = logging.getLogger(__name__)

CONFIRMATION_SCREEN = "AppointmentCreated"
DEFAULT_ERROR_TITLE = "Error creating appointment"
DEFAULT_ERROR_MESSAGE = "An error occurred while trying to create the appointment, please try again."


class FeedClientProtocol(Protocol):
    """Read endpoints the orchestrator depends on."""

    async def list_providers(self) -> List[Provider]:
        """Return all providers."""

    async def get_day_availability(
        self,
        provider_id: str,
        year: int,
        month: int,
        day: int,
    ) -> List[AvailabilitySlot]:
        """Return the hourly availability of a provider for one day."""


class AppointmentClientProtocol(Protocol):
    """Write endpoint used on submission."""

    async def create_appointment(self, provider_id: str, date: DateTime) -> Appointment:
        """Create the appointment or raise a ``BookingError``."""


class NavigatorProtocol(Protocol):
    def go_back(self) -> None:
        ...

    def navigate_to(self, screen_id: str, payload: Dict[str, Any]) -> None:
        ...


class NotifierProtocol(Protocol):
    def alert(self, title: str, message: str) -> None:
        """Show a user-facing error the user has to acknowledge."""


class SchedulingOrchestrator:
    """
    Control logic for the booking screen.

    Lifecycle: ``mount`` loads the providers once and the availability of the
    initial selection; ``unmount`` cancels whatever is still in flight and
    makes sure late responses never touch the state again.

    Availability requests carry a monotonic token. With fencing enabled only
    the response to the latest request is applied; with fencing disabled the
    last response to arrive wins, whichever pair it was requested for.
    """

    def __init__(
        self,
        feed_client: FeedClientProtocol,
        appointment_client: AppointmentClientProtocol,
        navigator: NavigatorProtocol,
        notifier: NotifierProtocol,
        *,
        provider_id: str,
        date: DateTime | None = None,
        timezone: str = "UTC",
        confirmation_screen: str = CONFIRMATION_SCREEN,
        modal_date_picker: bool = False,
        fence_availability: bool = True,
        error_title: str = DEFAULT_ERROR_TITLE,
        error_message: str = DEFAULT_ERROR_MESSAGE,
    ) -> None:
        self._feed = feed_client
        self._appointments = appointment_client
        self._navigator = navigator
        self._notifier = notifier

        self.timezone = timezone
        self.confirmation_screen = confirmation_screen
        self.modal_date_picker = modal_date_picker
        self.fence_availability = fence_availability
        self.error_title = error_title
        self.error_message = error_message

        self.store = SchedulingStore(
            initial_state(provider_id, date or pendulum.now(timezone))
        )
        self._tokens = itertools.count(1)
        self._tasks: Set[asyncio.Task] = set()
        self._mounted = False
        self._unsubscribe = None

    @property
    def state(self) -> SchedulingState:
        return self.store.state

    @property
    def mounted(self) -> bool:
        return self._mounted

    def display_buckets(self) -> DayPartition:
        """Morning/afternoon buckets of the current availability."""
        return partition_availability(self.state.availability.slots)

    # Lifecycle

    def mount(self) -> None:
        """Start the initial fetches. Must be called from a running event loop."""
        if self._mounted:
            return

        self._mounted = True
        self._unsubscribe = self.store.subscribe(self._on_state_change)
        self.store.dispatch(ProvidersRequested())
        self._spawn(self._load_providers())
        self._request_availability()

    def unmount(self) -> None:
        if not self._mounted:
            return

        self._mounted = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        for task in list(self._tasks):
            task.cancel()

    async def settle(self) -> None:
        """Wait until every fetch started so far has finished."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # User actions

    def select_provider(self, provider_id: str) -> None:
        self.store.dispatch(ProviderSelected(provider_id))

    def toggle_date_picker(self) -> None:
        self.store.dispatch(DatePickerToggled())

    def on_date_picked(self, date: DateTime | None) -> None:
        """
        Date picker callback.

        ``date`` is None when the picker was dismissed. Modal pickers are
        closed here; inline ones stay open until toggled.
        """
        if self.modal_date_picker:
            self.store.dispatch(DatePickerClosed())

        if date is not None:
            self.store.dispatch(DateSelected(date))

    def select_hour(self, hour: int) -> bool:
        """
        Pick an hour of the current availability.

        Returns False, leaving the selection untouched, when the hour is not
        offered or not available.
        """
        slot = self.state.find_slot(hour)
        if slot is None or not slot.available:
            logger.debug("Ignoring selection of unavailable hour %s", hour)
            return False

        self.store.dispatch(HourSelected(hour))
        return True

    def go_back(self) -> None:
        self._navigator.go_back()

    def refresh_availability(self) -> None:
        """Fetch the availability of the current provider and date again."""
        if self._mounted:
            self._request_availability()

    async def submit(self) -> Appointment | None:
        """
        Book the selected provider at the selected day and hour.

        On success hands over to the confirmation screen with the booked
        timestamp; on failure alerts the user and keeps the selection so the
        user can retry. Calls made while a submission is in flight are ignored.
        """
        if not self._mounted:
            logger.debug("Ignoring submit on an unmounted screen")
            return None

        if not self.state.can_submit:
            logger.info("Submission already in progress, ignoring")
            return None

        selection = self.state.selection
        when = selection.appointment_time(self.timezone)
        self.store.dispatch(SubmissionStarted(when))

        try:
            appointment = await self._appointments.create_appointment(selection.provider_id, when)
        except BookingError as e:
            if not self._mounted:
                return None
            logger.warning(
                "Could not book %s at %s: %s",
                selection.provider_id,
                when.to_datetime_string(),
                e
            )
            self.store.dispatch(SubmissionFailed(str(e)))
            self._notifier.alert(self.error_title, self.error_message)
            return None
        except Exception as e:
            if self._mounted:
                self.store.dispatch(SubmissionFailed(str(e)))
            raise

        if not self._mounted:
            logger.debug("Screen unmounted before the booking was confirmed")
            return appointment

        logger.info("Booked %s at %s", selection.provider_id, when.to_datetime_string())
        self.store.dispatch(SubmissionSucceeded(appointment))
        self._navigator.navigate_to(self.confirmation_screen, {"date": to_epoch_ms(when)})
        return appointment

    # Fetching

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _on_state_change(self, previous: SchedulingState, current: SchedulingState) -> None:
        before, after = previous.selection, current.selection
        if before.provider_id != after.provider_id or before.date != after.date:
            self._request_availability()

    def _request_availability(self) -> None:
        selection = self.state.selection
        token = next(self._tokens)
        self.store.dispatch(
            AvailabilityRequested(
                token=token,
                provider_id=selection.provider_id,
                day=selection.date.to_date_string()
            )
        )
        self._spawn(self._load_availability(token, selection.provider_id, selection.date))

    def _accepts(self, token: int) -> bool:
        if not self._mounted:
            logger.debug("Discarding availability response %s after unmount", token)
            return False

        if self.fence_availability and token != self.state.availability.token:
            logger.debug(
                "Discarding stale availability response %s (latest is %s)",
                token,
                self.state.availability.token
            )
            return False

        return True

    async def _load_availability(self, token: int, provider_id: str, date: DateTime) -> None:
        try:
            slots = await self._feed.get_day_availability(
                provider_id, date.year, date.month, date.day
            )
        except BookingError as e:
            if self._accepts(token):
                logger.warning(
                    "Could not load availability of %s on %s: %s",
                    provider_id,
                    date.to_date_string(),
                    e
                )
                self.store.dispatch(AvailabilityFailed(token=token, error=str(e)))
            return

        if self._accepts(token):
            self.store.dispatch(AvailabilityLoaded(token=token, slots=slots))

    async def _load_providers(self) -> None:
        try:
            providers = await self._feed.list_providers()
        except BookingError as e:
            if self._mounted:
                logger.warning("Could not load providers: %s", e)
                self.store.dispatch(ProvidersFailed(str(e)))
            return

        if not self._mounted:
            logger.debug("Discarding provider list after unmount")
            return

        self.store.dispatch(ProvidersLoaded(providers))
