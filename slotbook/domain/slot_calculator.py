"""
Core business logic for calculating bookable start times.

This is the heart of the application - pure domain logic without any
external dependencies (no store access, no clock, no I/O).
"""

from enum import Enum
from typing import List

from pendulum import Date, DateTime

from .exceptions import InvalidServiceDuration
from .models import BusinessHours, IntervalSet


class SlotRejection(Enum):
    """Why a single start time cannot be booked."""
    OFF_GRID = "outside business hours or off the slot grid"
    TOO_SOON = "in the past or inside the minimum notice"
    OCCUPIED = "overlaps an existing booking"


class SlotCalculator:
    """
    Calculates the start times a service can be booked at on one day.

    Algorithm:
    1. Build a grid from opening time, stepping by the slot interval, keeping
       only starts whose service still ends by closing time
    2. On the current day, drop starts earlier than now + minimum notice
    3. Drop starts whose service would overlap an occupied range
    4. Return the survivors in ascending order
    """

    def __init__(self, business_hours: BusinessHours):
        self.business_hours = business_hours

    def available_start_times(
        self,
        day: Date,
        service_duration_minutes: int,
        booked: IntervalSet,
        now: DateTime,
    ) -> List[DateTime]:
        """
        Compute the ordered start times open for booking.

        Args:
            day: Calendar day in the business timezone
            service_duration_minutes: Length of the service being booked
            booked: Ranges already occupied on that day
            now: Current instant

        Returns:
            Start times in ascending order; empty when nothing fits

        Raises:
            InvalidServiceDuration: If the duration is not positive
        """
        self.check_duration(service_duration_minutes)

        earliest = self._earliest_bookable(day, now)
        if earliest is None:
            return []

        available: List[DateTime] = []
        for start in self._candidate_grid(day, service_duration_minutes):
            if start < earliest:
                continue
            end = start.add(minutes=service_duration_minutes)
            if booked.overlaps(start, end):
                continue
            available.append(start)

        return available

    def is_slot_available(
        self,
        start: DateTime,
        service_duration_minutes: int,
        booked: IntervalSet,
        now: DateTime,
    ) -> bool:
        """Check a single start time against the same rules as the grid."""
        return self.check_slot(start, service_duration_minutes, booked, now) is None

    def check_slot(
        self,
        start: DateTime,
        service_duration_minutes: int,
        booked: IntervalSet,
        now: DateTime,
    ) -> SlotRejection | None:
        """
        Say why ``start`` is not bookable, or return None.

        Occupied time is checked last so callers can tell a conflict apart
        from a start that was never on offer.
        """
        self.check_duration(service_duration_minutes)

        day = self.business_hours.local_date(start)
        local_start = start.in_timezone(self.business_hours.timezone)
        if local_start not in self._candidate_grid(day, service_duration_minutes):
            return SlotRejection.OFF_GRID

        earliest = self._earliest_bookable(day, now)
        if earliest is None or local_start < earliest:
            return SlotRejection.TOO_SOON

        if booked.overlaps(local_start, local_start.add(minutes=service_duration_minutes)):
            return SlotRejection.OCCUPIED

        return None

    @staticmethod
    def check_duration(service_duration_minutes: int) -> None:
        """Reject non-positive durations before any slot work starts."""
        if service_duration_minutes <= 0:
            raise InvalidServiceDuration(
                f"Service duration must be positive, got {service_duration_minutes}"
            )

    def _candidate_grid(self, day: Date, service_duration_minutes: int) -> List[DateTime]:
        hours = self.business_hours
        opening = hours.opening_on(day)
        closing = hours.closing_on(day)

        grid: List[DateTime] = []
        start = opening
        while start.add(minutes=service_duration_minutes) <= closing:
            grid.append(start)
            start = start.add(minutes=hours.slot_interval_minutes)
        return grid

    def _earliest_bookable(self, day: Date, now: DateTime) -> DateTime | None:
        """
        Earliest start allowed on ``day``.

        None for days already in the past. Minimum notice only applies to
        the current day.
        """
        hours = self.business_hours
        today = hours.local_date(now)
        day_start, _ = hours.day_bounds(day)

        if day < today:
            return None
        if day > today:
            return day_start
        return now.in_timezone(hours.timezone).add(minutes=hours.minimum_notice_minutes)
