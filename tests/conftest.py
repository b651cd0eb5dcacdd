"""
Shared fixtures: a Monday in Berlin, 09:00-18:00 hours and one service.
"""

import itertools

import pendulum
import pytest

from slotbook.adapters.memory_store import InMemoryDocumentStore
from slotbook.domain.models import BusinessHours, CustomerContact, Service
from slotbook.domain.slot_calculator import SlotCalculator
from slotbook.services.booking import BookingTransactionCoordinator

TZ = "Europe/Berlin"
OWNER_ID = "owner-1"
DAY = pendulum.date(2024, 11, 25)
NOW = pendulum.parse("2024-11-25 08:00", tz=TZ)


def at(clock: str, day: str = "2024-11-25"):
    """Instant on ``day`` at ``clock`` in the business timezone."""
    return pendulum.parse(f"{day} {clock}", tz=TZ)


@pytest.fixture
def business_hours():
    return BusinessHours(
        slot_interval_minutes=15,
        minimum_notice_minutes=30,
        timezone=TZ,
    )


@pytest.fixture
def calculator(business_hours):
    return SlotCalculator(business_hours=business_hours)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def haircut():
    return Service(
        id="haircut",
        owner_id=OWNER_ID,
        name="Haircut",
        duration_minutes=30,
        price_minor_units=2500,
    )


@pytest.fixture
def contact():
    return CustomerContact(name="Ayse Yilmaz", phone="+90 555 000 0000", email="ayse@example.com")


@pytest.fixture
def coordinator(store, calculator):
    counter = itertools.count(1)
    return BookingTransactionCoordinator(
        store,
        calculator,
        clock=lambda: NOW,
        id_factory=lambda: f"id-{next(counter)}",
    )
