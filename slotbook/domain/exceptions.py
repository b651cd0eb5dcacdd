"""
Domain-specific exception hierarchy for slotbook.

Every error carries a short ``user_message`` that is safe to show to a
customer; the exception text itself is meant for logs.
"""

from __future__ import annotations

from typing import Optional

from pendulum import DateTime


class BookingError(Exception):
    """Base class for all application-level errors."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, *, user_message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class InvalidInterval(BookingError, ValueError):
    """Raised for a time range whose end is not after its start."""

    user_message = "Invalid time range."


class InvalidServiceDuration(BookingError, ValueError):
    """Raised when a service duration is not a positive number of minutes."""

    user_message = "Service duration must be greater than zero."


class InvalidBookingRequest(BookingError, ValueError):
    """Raised when booking or catalog input fails validation."""

    user_message = "Some booking details are missing or invalid."


class SlotConflict(BookingError):
    """Raised when the chosen slot overlaps an already committed booking."""

    user_message = "This time is already booked. Please pick another time."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        owner_id: Optional[str] = None,
        start: Optional[DateTime] = None,
        end: Optional[DateTime] = None,
    ) -> None:
        super().__init__(message)
        self.owner_id = owner_id
        self.start = start
        self.end = end


class StoreUnavailable(BookingError):
    """Raised when the document store cannot be reached or read."""

    user_message = "Network problem. Please try again in a moment."


class CommitOutcomeUnknown(StoreUnavailable):
    """
    Raised when a booking commit failed in transit.

    The write may or may not have landed; callers must confirm it by
    appointment id instead of retrying the create.
    """

    user_message = "We could not confirm your booking. Please check your bookings before trying again."

    def __init__(self, message: Optional[str] = None, *, appointment_id: str) -> None:
        super().__init__(message)
        self.appointment_id = appointment_id


class NotFound(BookingError):
    """Raised when a referenced appointment or service does not exist."""

    user_message = "The requested item could not be found."


class NotAuthorized(BookingError):
    """Raised when the caller may not act on the referenced record."""

    user_message = "You are not allowed to change this booking."
