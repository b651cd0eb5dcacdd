"""
Service layer that orchestrates the document store and domain logic.
"""

from .availability import AvailabilityService, load_occupied
from .booking import BookingTransactionCoordinator
from .cancellation import CancellationCoordinator
from .protocols import (
    APPOINTMENTS_COLLECTION,
    BOOKED_SLOTS_COLLECTION,
    SERVICES_COLLECTION,
    CatalogClientProtocol,
    CommitCondition,
    Delete,
    DocumentAbsent,
    DocumentExists,
    DocumentStoreProtocol,
    Filter,
    IdentityProviderProtocol,
    NoOverlapCondition,
    Write,
)
from .schedule import ScheduleService

__all__ = [
    "APPOINTMENTS_COLLECTION",
    "BOOKED_SLOTS_COLLECTION",
    "SERVICES_COLLECTION",
    "AvailabilityService",
    "BookingTransactionCoordinator",
    "CancellationCoordinator",
    "CatalogClientProtocol",
    "CommitCondition",
    "Delete",
    "DocumentAbsent",
    "DocumentExists",
    "DocumentStoreProtocol",
    "Filter",
    "IdentityProviderProtocol",
    "NoOverlapCondition",
    "ScheduleService",
    "Write",
    "load_occupied",
]
