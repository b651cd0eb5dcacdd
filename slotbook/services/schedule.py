"""
Read-side views of appointments: the owner's day and a customer's history.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Iterator, List, Optional

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import InvalidBookingRequest
from ..domain.models import Appointment, BusinessHours, IntervalSet, MyBookings, instant_key
from .availability import load_occupied
from .protocols import APPOINTMENTS_COLLECTION, DocumentStoreProtocol, Filter

logger = logging.getLogger(__name__)


class ScheduleService:
    """Queries appointments by owner and day or by customer."""

    def __init__(
        self,
        store: DocumentStoreProtocol,
        business_hours: BusinessHours,
        clock: Callable[[], DateTime] = pendulum.now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._business_hours = business_hours
        self._clock = clock
        self._sleep = sleep

    def schedule_for_date(self, owner_id: str, day: Date) -> List[Appointment]:
        """Appointments of ``owner_id`` starting on ``day``, earliest first."""
        if not owner_id.strip():
            raise InvalidBookingRequest("Owner ID cannot be blank.")

        day_start, day_end = self._business_hours.day_bounds(day)
        docs = self._store.query(
            APPOINTMENTS_COLLECTION,
            [
                Filter("ownerId", "==", owner_id),
                Filter("startInstant", ">=", instant_key(day_start)),
                Filter("startInstant", "<", instant_key(day_end)),
            ],
            order_by="startInstant",
        )
        return [self._localize(Appointment.from_document(doc)) for doc in docs]

    def my_bookings(self, customer_id: str, now: Optional[DateTime] = None) -> MyBookings:
        """
        Split a customer's appointments into upcoming and past.

        An appointment whose start has passed counts as completed; nothing
        is stored for that transition. Upcoming is soonest first, past is
        most recent first.
        """
        if not customer_id.strip():
            raise InvalidBookingRequest("Customer ID cannot be blank.")

        cutoff = instant_key(now or self._clock())
        docs = self._store.query(
            APPOINTMENTS_COLLECTION,
            [Filter("customerId", "==", customer_id)],
            order_by="startInstant",
        )

        bookings = MyBookings()
        for doc in docs:
            appointment = self._localize(Appointment.from_document(doc))
            if doc["startInstant"] >= cutoff:
                bookings.upcoming.append(appointment)
            else:
                bookings.past.append(appointment)
        bookings.past.reverse()
        return bookings

    def watch_occupied(
        self,
        owner_id: str,
        day: Date,
        poll_interval_seconds: float = 5.0,
        max_polls: Optional[int] = None,
    ) -> Iterator[IntervalSet]:
        """
        Poll the owner's occupied time and yield it whenever it changes.

        The first poll always yields. Stops after ``max_polls`` polls when
        given, otherwise runs until the consumer stops iterating.
        """
        previous: Optional[IntervalSet] = None
        polls = 0
        while max_polls is None or polls < max_polls:
            if polls:
                self._sleep(poll_interval_seconds)
            current = load_occupied(self._store, owner_id, day, self._business_hours)
            polls += 1
            if current != previous:
                logger.debug("Occupied time for owner %s on %s changed: %r", owner_id, day, current)
                previous = current
                yield current

    def _localize(self, appointment: Appointment) -> Appointment:
        # Stored instants are UTC
        return replace(appointment, start=appointment.start.in_timezone(self._business_hours.timezone))
