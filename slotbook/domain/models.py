"""
Domain models for occupied time, business hours and bookings.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import pendulum
from pendulum import Date, DateTime

from .exceptions import InvalidBookingRequest, InvalidInterval


def instant_key(value: DateTime) -> str:
    """
    Serialise an instant as a fixed-width UTC string.

    Keys sort lexicographically in chronological order, so stores can run
    range filters on them without knowing about dates.
    """
    return value.in_timezone("UTC").format("YYYY-MM-DD[T]HH:mm:ss.SSSSSS[Z]")


def _instant_from_str(value: str) -> DateTime:
    parsed = pendulum.parse(value)
    if not isinstance(parsed, DateTime):
        raise ValueError(f"Expected an instant, got {value!r}")
    return parsed


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInterval(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def of_duration(cls, start: DateTime, duration_minutes: int) -> "TimeRange":
        """Build the range covered by a service starting at ``start``."""
        return cls(start=start, end=start.add(minutes=duration_minutes))

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range shares any instant with another."""
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


class IntervalSet:
    """
    Sorted collection of occupied ranges for one owner on one day.

    Each range may be tagged with the appointment id that occupies it so a
    cancellation can free exactly that range.
    """

    def __init__(self, intervals: Iterable[TimeRange] = ()):
        self._entries: List[Tuple[TimeRange, Optional[str]]] = []
        for interval in intervals:
            self.add(interval)

    @classmethod
    def from_booked_intervals(cls, booked: Iterable["BookedInterval"]) -> "IntervalSet":
        interval_set = cls()
        for item in booked:
            interval_set.add(item.time_range, appointment_id=item.appointment_id)
        return interval_set

    def add(self, interval: TimeRange, appointment_id: Optional[str] = None) -> None:
        """Insert a range, keeping entries ordered by start time."""
        if interval.start >= interval.end:
            raise InvalidInterval(f"Start time {interval.start} must be before end time {interval.end}")
        bisect.insort(self._entries, (interval, appointment_id), key=lambda entry: entry[0].start)

    def overlaps(self, candidate_start: DateTime, candidate_end: DateTime) -> bool:
        """True if any stored range shares an instant with ``[candidate_start, candidate_end)``."""
        for interval, _ in self._entries:
            if interval.start >= candidate_end:
                # Sorted by start: nothing further can overlap
                break
            if candidate_start < interval.end:
                return True
        return False

    def remove_appointment(self, appointment_id: str) -> int:
        """Drop every range tagged with ``appointment_id``; returns how many were removed."""
        before = len(self._entries)
        self._entries = [entry for entry in self._entries if entry[1] != appointment_id]
        return before - len(self._entries)

    def merged(self) -> List[TimeRange]:
        """
        Coalesce overlapping or touching ranges.

        Example: [09:00-10:00, 10:00-11:00] -> [09:00-11:00]
        """
        merged: List[TimeRange] = []
        for interval, _ in self._entries:
            if merged and interval.start <= merged[-1].end:
                last = merged[-1]
                merged[-1] = TimeRange(start=last.start, end=max(last.end, interval.end))
            else:
                merged.append(interval)
        return merged

    def __iter__(self) -> Iterator[TimeRange]:
        return (interval for interval, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"IntervalSet({[str(interval) for interval in self]})"


@dataclass(frozen=True)
class BusinessHours:
    """
    Opening hours and booking rules for one business.

    ``closing_time`` is the latest time an appointment may END, not the
    latest time one may start.
    """
    opening_time: time = time(9, 0)
    closing_time: time = time(18, 0)
    slot_interval_minutes: int = 15
    minimum_notice_minutes: int = 0
    timezone: str = "UTC"

    def __post_init__(self):
        if self.slot_interval_minutes <= 0:
            raise ValueError(f"slot_interval_minutes must be positive, got {self.slot_interval_minutes}")
        if self.minimum_notice_minutes < 0:
            raise ValueError(f"minimum_notice_minutes cannot be negative, got {self.minimum_notice_minutes}")

    def _at(self, day: Date, clock: time) -> DateTime:
        return pendulum.datetime(
            day.year, day.month, day.day, clock.hour, clock.minute, tz=self.timezone
        )

    def opening_on(self, day: Date) -> DateTime:
        return self._at(day, self.opening_time)

    def closing_on(self, day: Date) -> DateTime:
        return self._at(day, self.closing_time)

    def day_bounds(self, day: Date) -> Tuple[DateTime, DateTime]:
        """Return ``[start of day, start of next day)`` in the business timezone."""
        start = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
        return start, start.add(days=1)

    def local_date(self, instant: DateTime) -> Date:
        """Calendar day of ``instant`` as seen by the business."""
        return instant.in_timezone(self.timezone).date()


class UserRole(str, Enum):
    """Role of an authenticated caller."""
    OWNER = "owner"
    CUSTOMER = "customer"

    @classmethod
    def parse(cls, raw: str) -> "UserRole":
        try:
            return cls(raw.strip().lower())
        except ValueError as exc:
            raise InvalidBookingRequest(f"Unknown user role: {raw!r}") from exc


@dataclass(frozen=True)
class Identity:
    """The authenticated caller as reported by the identity provider."""
    id: str
    role: UserRole

    @property
    def is_owner(self) -> bool:
        return self.role is UserRole.OWNER


@dataclass(frozen=True)
class Service:
    """A bookable service published by the owner. Prices are minor currency units."""
    id: str
    owner_id: str
    name: str
    duration_minutes: int
    price_minor_units: int
    is_active: bool = True
    description: str = ""

    def snapshot(self) -> "ServiceSnapshot":
        return ServiceSnapshot(
            service_id=self.id,
            name=self.name,
            duration_minutes=self.duration_minutes,
            price_minor_units=self.price_minor_units,
        )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "description": self.description,
            "durationMinutes": self.duration_minutes,
            "priceMinorUnits": self.price_minor_units,
            "isActive": self.is_active,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Service":
        return cls(
            id=doc["id"],
            owner_id=doc["ownerId"],
            name=doc["name"],
            duration_minutes=int(doc["durationMinutes"]),
            price_minor_units=int(doc["priceMinorUnits"]),
            is_active=bool(doc.get("isActive", True)),
            description=doc.get("description", ""),
        )


@dataclass(frozen=True)
class ServiceSnapshot:
    """Service details frozen into an appointment at booking time."""
    service_id: str
    name: str
    duration_minutes: int
    price_minor_units: int


@dataclass(frozen=True)
class CustomerContact:
    """Contact details the customer leaves with a booking."""
    name: str
    phone: str
    email: Optional[str] = None

    def normalized(self) -> "CustomerContact":
        """Trim fields and require name and phone."""
        name = self.name.strip()
        phone = self.phone.strip()
        if not name or not phone:
            raise InvalidBookingRequest(
                "Customer name and phone number are required.",
                user_message="Please enter your name and phone number.",
            )
        email = (self.email or "").strip() or None
        return CustomerContact(name=name, phone=phone, email=email)


@dataclass(frozen=True)
class Appointment:
    """A confirmed booking. Created once, never mutated, deleted on cancellation."""
    id: str
    owner_id: str
    customer_id: str
    service_id: str
    service_name: str
    price_minor_units: int
    duration_minutes: int
    start: DateTime
    customer_name: str
    customer_phone: str
    customer_email: Optional[str]
    created_at: DateTime

    @property
    def end(self) -> DateTime:
        return self.start.add(minutes=self.duration_minutes)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "customerId": self.customer_id,
            "serviceId": self.service_id,
            "serviceName": self.service_name,
            "priceMinorUnits": self.price_minor_units,
            "durationMinutes": self.duration_minutes,
            "startInstant": instant_key(self.start),
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "createdAt": instant_key(self.created_at),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Appointment":
        return cls(
            id=doc["id"],
            owner_id=doc["ownerId"],
            customer_id=doc["customerId"],
            service_id=doc["serviceId"],
            service_name=doc["serviceName"],
            price_minor_units=int(doc["priceMinorUnits"]),
            duration_minutes=int(doc["durationMinutes"]),
            start=_instant_from_str(doc["startInstant"]),
            customer_name=doc["customerName"],
            customer_phone=doc["customerPhone"],
            customer_email=doc.get("customerEmail"),
            created_at=_instant_from_str(doc["createdAt"]),
        )


@dataclass(frozen=True)
class BookedInterval:
    """
    Occupied time created alongside an appointment.

    Holds no customer data so availability can be computed without
    reading appointments.
    """
    id: str
    owner_id: str
    appointment_id: str
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInterval(f"Start time {self.start} must be before end time {self.end}")

    @classmethod
    def for_appointment(cls, interval_id: str, appointment: Appointment) -> "BookedInterval":
        return cls(
            id=interval_id,
            owner_id=appointment.owner_id,
            appointment_id=appointment.id,
            start=appointment.start,
            end=appointment.end,
        )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "appointmentId": self.appointment_id,
            "startInstant": instant_key(self.start),
            "endInstant": instant_key(self.end),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "BookedInterval":
        return cls(
            id=doc["id"],
            owner_id=doc["ownerId"],
            appointment_id=doc["appointmentId"],
            start=_instant_from_str(doc["startInstant"]),
            end=_instant_from_str(doc["endInstant"]),
        )


@dataclass
class MyBookings:
    """A customer's bookings split around the current time."""
    upcoming: List[Appointment] = field(default_factory=list)
    past: List[Appointment] = field(default_factory=list)
