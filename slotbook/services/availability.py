"""
Availability queries for the customer booking flow.

The service fetches the owner's occupied time from the document store and
delegates the slot computation to the domain-level ``SlotCalculator``.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import InvalidBookingRequest, NotFound
from ..domain.models import BookedInterval, BusinessHours, IntervalSet, instant_key
from ..domain.slot_calculator import SlotCalculator
from .protocols import BOOKED_SLOTS_COLLECTION, CatalogClientProtocol, DocumentStoreProtocol, Filter

logger = logging.getLogger(__name__)

Clock = Callable[[], DateTime]


def load_occupied(
    store: DocumentStoreProtocol,
    owner_id: str,
    day: Date,
    business_hours: BusinessHours,
) -> IntervalSet:
    """
    Read every booked interval of ``owner_id`` that touches ``day``.

    Intervals starting the evening before and running past midnight are
    included, so the query filters on both ends instead of the start only.
    """
    day_start, day_end = business_hours.day_bounds(day)
    docs = store.query(
        BOOKED_SLOTS_COLLECTION,
        [
            Filter("ownerId", "==", owner_id),
            Filter("startInstant", "<", instant_key(day_end)),
            Filter("endInstant", ">", instant_key(day_start)),
        ],
        order_by="startInstant",
    )
    return IntervalSet.from_booked_intervals(BookedInterval.from_document(doc) for doc in docs)


class AvailabilityService:
    """
    Orchestrates occupied-time retrieval and slot calculation.

    Always reads the store fresh; a list computed here may be stale by the
    time the customer picks, which is why booking re-checks.
    """

    def __init__(
        self,
        store: DocumentStoreProtocol,
        slot_calculator: SlotCalculator,
        catalog: Optional[CatalogClientProtocol] = None,
        clock: Clock = pendulum.now,
    ) -> None:
        self._store = store
        self._slot_calculator = slot_calculator
        self._catalog = catalog
        self._clock = clock

    @property
    def business_hours(self) -> BusinessHours:
        return self._slot_calculator.business_hours

    def occupied(self, owner_id: str, day: Date) -> IntervalSet:
        """Current occupied intervals for the owner on ``day``."""
        return load_occupied(self._store, owner_id, day, self.business_hours)

    def available_slots(
        self,
        *,
        owner_id: str,
        day: Date,
        service_duration_minutes: int,
        now: Optional[DateTime] = None,
    ) -> List[DateTime]:
        """Start times a service of the given length can still be booked at."""
        booked = self.occupied(owner_id, day)
        logger.debug("Owner %s has %d booked interval(s) on %s", owner_id, len(booked), day)

        slots = self._slot_calculator.available_start_times(
            day=day,
            service_duration_minutes=service_duration_minutes,
            booked=booked,
            now=now or self._clock(),
        )
        if not slots:
            logger.info("No available slots for owner %s on %s", owner_id, day)
        return slots

    def available_slots_for_service(
        self,
        *,
        owner_id: str,
        service_id: str,
        day: Date,
        now: Optional[DateTime] = None,
    ) -> List[DateTime]:
        """Resolve the service duration through the catalog, then compute slots."""
        if self._catalog is None:
            raise RuntimeError("AvailabilityService was created without a catalog client")

        service = self._catalog.get_service(service_id)
        if service is None or service.owner_id != owner_id:
            raise NotFound(f"Service {service_id} not found for owner {owner_id}")
        if not service.is_active:
            raise InvalidBookingRequest(
                f"Service {service_id} is not active",
                user_message="This service is currently not available.",
            )

        return self.available_slots(
            owner_id=owner_id,
            day=day,
            service_duration_minutes=service.duration_minutes,
            now=now,
        )
