"""
Tests for slot calculator.
"""

from datetime import time

import pendulum
import pytest

from conftest import DAY, NOW, TZ, at
from slotbook.domain.exceptions import InvalidServiceDuration
from slotbook.domain.models import BusinessHours, IntervalSet, TimeRange
from slotbook.domain.slot_calculator import SlotCalculator, SlotRejection


class TestSlotCalculator:
    """Tests for SlotCalculator."""

    def test_full_day_without_bookings(self, calculator):
        """09:00-18:00, 15 min grid, 30 min service: 09:00 through 17:30."""
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=NOW,
        )

        assert slots[0] == at("09:00")
        assert slots[-1] == at("17:30")
        assert len(slots) == 35
        assert all((b - a).in_minutes() == 15 for a, b in zip(slots, slots[1:]))

    def test_booked_interval_blocks_overlapping_starts(self, calculator):
        """A booking at [10:00, 10:30) removes 09:45, 10:00 and 10:15."""
        booked = IntervalSet([TimeRange(at("10:00"), at("10:30"))])

        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=booked,
            now=NOW,
        )

        assert at("09:30") in slots
        assert at("09:45") not in slots
        assert at("10:00") not in slots
        assert at("10:15") not in slots
        assert at("10:30") in slots
        assert slots[slots.index(at("09:30")) + 1] == at("10:30")

    def test_service_must_end_by_closing(self, calculator):
        """A 60 minute service can start at 17:00 at the latest."""
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=60,
            booked=IntervalSet(),
            now=NOW,
        )

        assert slots[-1] == at("17:00")

    def test_minimum_notice_applies_today(self, calculator):
        """At 11:05 with 30 minutes notice, the first slot is 11:45."""
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=at("11:05"),
        )

        assert slots[0] == at("11:45")
        assert all(slot >= at("11:35") for slot in slots)

    def test_minimum_notice_boundary_is_inclusive(self, calculator):
        """A start exactly at now + notice is still offered."""
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=at("11:00"),
        )

        assert slots[0] == at("11:30")

    def test_minimum_notice_ignored_for_future_days(self, calculator):
        """The evening before, tomorrow's first slot is still opening time."""
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=at("23:50", day="2024-11-24"),
        )

        assert slots[0] == at("09:00")

    def test_notice_past_closing_leaves_today_empty(self, calculator):
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=at("17:45"),
        )

        assert slots == []

    def test_past_day_is_empty(self, calculator):
        slots = calculator.available_start_times(
            day=pendulum.date(2024, 11, 22),
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=NOW,
        )

        assert slots == []

    def test_opening_after_closing_is_empty(self):
        calculator = SlotCalculator(
            BusinessHours(opening_time=time(18, 0), closing_time=time(9, 0), timezone=TZ)
        )

        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=30,
            booked=IntervalSet(),
            now=NOW,
        )

        assert slots == []

    def test_service_longer_than_opening_hours_is_empty(self, calculator):
        slots = calculator.available_start_times(
            day=DAY,
            service_duration_minutes=10 * 60,
            booked=IntervalSet(),
            now=NOW,
        )

        assert slots == []

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration_is_rejected(self, calculator, duration):
        with pytest.raises(InvalidServiceDuration):
            calculator.available_start_times(
                day=DAY,
                service_duration_minutes=duration,
                booked=IntervalSet(),
                now=NOW,
            )

    def test_same_inputs_give_same_output(self, calculator):
        booked = IntervalSet([
            TimeRange(at("10:00"), at("10:30")),
            TimeRange(at("13:00"), at("14:15")),
        ])

        first = calculator.available_start_times(DAY, 45, booked, at("09:10"))
        second = calculator.available_start_times(DAY, 45, booked, at("09:10"))

        assert first == second

    def test_every_slot_fits_and_avoids_bookings(self):
        """Across several configurations, slots stay inside hours and off booked time."""
        bookings = [
            [],
            [TimeRange(at("09:00"), at("09:20"))],
            [TimeRange(at("10:00"), at("10:30")), TimeRange(at("12:10"), at("13:40"))],
            [TimeRange(at("08:00"), at("11:00")), TimeRange(at("17:00"), at("19:00"))],
        ]

        for interval in (5, 10, 15, 30):
            for notice in (0, 30, 90):
                hours = BusinessHours(
                    opening_time=time(9, 0),
                    closing_time=time(18, 0),
                    slot_interval_minutes=interval,
                    minimum_notice_minutes=notice,
                    timezone=TZ,
                )
                calculator = SlotCalculator(hours)
                for ranges in bookings:
                    booked = IntervalSet(ranges)
                    for duration in (15, 30, 50, 120):
                        now = at("09:40")
                        slots = calculator.available_start_times(DAY, duration, booked, now)

                        assert slots == sorted(slots)
                        for slot in slots:
                            end = slot.add(minutes=duration)
                            assert slot >= hours.opening_on(DAY)
                            assert end <= hours.closing_on(DAY)
                            assert slot >= now.add(minutes=notice)
                            assert not any(slot < r.end and r.start < end for r in ranges)


class TestCheckSlot:
    """Tests for single-slot validation used before booking."""

    def test_free_slot(self, calculator):
        assert calculator.check_slot(at("10:00"), 30, IntervalSet(), NOW) is None
        assert calculator.is_slot_available(at("10:00"), 30, IntervalSet(), NOW)

    def test_off_grid_start(self, calculator):
        assert calculator.check_slot(at("10:05"), 30, IntervalSet(), NOW) is SlotRejection.OFF_GRID

    def test_start_running_past_closing(self, calculator):
        assert calculator.check_slot(at("17:45"), 30, IntervalSet(), NOW) is SlotRejection.OFF_GRID

    def test_start_inside_notice(self, calculator):
        assert calculator.check_slot(at("10:00"), 30, IntervalSet(), at("09:45")) is SlotRejection.TOO_SOON

    def test_occupied_start(self, calculator):
        booked = IntervalSet([TimeRange(at("10:00"), at("10:30"))])

        assert calculator.check_slot(at("09:45"), 30, booked, NOW) is SlotRejection.OCCUPIED
        assert not calculator.is_slot_available(at("09:45"), 30, booked, NOW)

    def test_start_given_in_another_timezone(self, calculator):
        """09:00 UTC is 10:00 in Berlin and on the grid."""
        start = pendulum.datetime(2024, 11, 25, 9, 0, tz="UTC")

        assert calculator.check_slot(start, 30, IntervalSet(), NOW) is None
