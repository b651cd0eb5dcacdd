"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    BookingError,
    CommitOutcomeUnknown,
    InvalidBookingRequest,
    InvalidInterval,
    InvalidServiceDuration,
    NotAuthorized,
    NotFound,
    SlotConflict,
    StoreUnavailable,
)
from .models import (
    Appointment,
    BookedInterval,
    BusinessHours,
    CustomerContact,
    Identity,
    IntervalSet,
    MyBookings,
    Service,
    ServiceSnapshot,
    TimeRange,
    UserRole,
)
from .slot_calculator import SlotCalculator, SlotRejection

__all__ = [
    "Appointment",
    "BookedInterval",
    "BookingError",
    "BusinessHours",
    "CommitOutcomeUnknown",
    "CustomerContact",
    "Identity",
    "IntervalSet",
    "InvalidBookingRequest",
    "InvalidInterval",
    "InvalidServiceDuration",
    "MyBookings",
    "NotAuthorized",
    "NotFound",
    "Service",
    "ServiceSnapshot",
    "SlotCalculator",
    "SlotConflict",
    "SlotRejection",
    "StoreUnavailable",
    "TimeRange",
    "UserRole",
]
