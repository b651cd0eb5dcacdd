"""
Tests for CancellationCoordinator.
"""

import logging

import pytest

from conftest import DAY, NOW, OWNER_ID, at
from slotbook.adapters.memory_store import InMemoryDocumentStore
from slotbook.domain.exceptions import InvalidBookingRequest, NotAuthorized, NotFound, StoreUnavailable
from slotbook.domain.models import Identity, UserRole
from slotbook.services.availability import AvailabilityService
from slotbook.services.booking import BookingTransactionCoordinator
from slotbook.services.cancellation import CancellationCoordinator
from slotbook.services.protocols import APPOINTMENTS_COLLECTION, BOOKED_SLOTS_COLLECTION, Delete


class BrokenDeleteStore(InMemoryDocumentStore):
    """Accepts writes but fails every commit that deletes."""

    def commit(self, writes=(), deletes=(), conditions=()):
        if deletes:
            raise StoreUnavailable("timeout")
        super().commit(writes, deletes, conditions)


class InterleavedCancelStore(InMemoryDocumentStore):
    """Lets a second caller cancel the same appointment just before the first commit lands."""

    def __init__(self, collections):
        super().__init__(collections)
        self.interleaved = False

    def commit(self, writes=(), deletes=(), conditions=()):
        if deletes and not self.interleaved:
            self.interleaved = True
            CancellationCoordinator(self).cancel(deletes[0].key)
        super().commit(writes, deletes, conditions)


@pytest.fixture
def booked(coordinator, haircut, contact):
    return coordinator.book(
        owner_id=OWNER_ID, customer_id="customer-1", service=haircut, start=at("10:00"), contact=contact
    )


class TestCancel:
    def test_cancel_removes_appointment_and_interval(self, store, booked):
        cancelled = CancellationCoordinator(store).cancel(booked.id)

        assert cancelled.id == booked.id
        assert store.get(APPOINTMENTS_COLLECTION, booked.id) is None
        assert store.query(BOOKED_SLOTS_COLLECTION) == []

    def test_cancelled_slot_is_offered_again(self, store, calculator, booked):
        availability = AvailabilityService(store, calculator, clock=lambda: NOW)
        assert at("10:00") not in availability.available_slots(
            owner_id=OWNER_ID, day=DAY, service_duration_minutes=30
        )

        CancellationCoordinator(store).cancel(booked.id)

        assert not availability.occupied(OWNER_ID, DAY).overlaps(at("10:00"), at("10:30"))
        assert at("10:00") in availability.available_slots(
            owner_id=OWNER_ID, day=DAY, service_duration_minutes=30
        )

    def test_other_bookings_are_untouched(self, store, coordinator, haircut, contact, booked):
        other = coordinator.book(
            owner_id=OWNER_ID, customer_id="customer-2", service=haircut, start=at("11:00"), contact=contact
        )

        CancellationCoordinator(store).cancel(booked.id)

        assert store.get(APPOINTMENTS_COLLECTION, other.id) is not None
        remaining = store.query(BOOKED_SLOTS_COLLECTION)
        assert [doc["appointmentId"] for doc in remaining] == [other.id]

    def test_unknown_appointment(self, store):
        with pytest.raises(NotFound):
            CancellationCoordinator(store).cancel("missing")

    def test_blank_appointment_id(self, store):
        with pytest.raises(InvalidBookingRequest):
            CancellationCoordinator(store).cancel("  ")

    def test_missing_interval_is_logged_and_appointment_still_deleted(self, store, booked, caplog):
        slot_id = store.query(BOOKED_SLOTS_COLLECTION)[0]["id"]
        store.commit(deletes=[Delete(BOOKED_SLOTS_COLLECTION, slot_id)])

        with caplog.at_level(logging.WARNING, logger="slotbook.services.cancellation"):
            CancellationCoordinator(store).cancel(booked.id)

        assert store.get(APPOINTMENTS_COLLECTION, booked.id) is None
        assert "Inconsistent data" in caplog.text

    def test_failed_commit_leaves_both_records(self, booked, store):
        broken = BrokenDeleteStore(store.snapshot())

        with pytest.raises(StoreUnavailable):
            CancellationCoordinator(broken).cancel(booked.id)

        assert broken.get(APPOINTMENTS_COLLECTION, booked.id) is not None
        assert len(broken.query(BOOKED_SLOTS_COLLECTION)) == 1

    def test_second_of_two_racing_cancels_is_not_found(self, store, booked):
        """Only one caller gets the appointment back; the other sees it is gone."""
        racing = InterleavedCancelStore(store.snapshot())

        with pytest.raises(NotFound) as excinfo:
            CancellationCoordinator(racing).cancel(booked.id)

        assert excinfo.value.user_message == "This booking no longer exists."
        assert racing.get(APPOINTMENTS_COLLECTION, booked.id) is None
        assert racing.query(BOOKED_SLOTS_COLLECTION) == []


class TestAuthorization:
    def test_customer_cancels_own_booking(self, store, booked):
        identity = Identity(id="customer-1", role=UserRole.CUSTOMER)

        CancellationCoordinator(store).cancel(booked.id, requested_by=identity)

        assert store.get(APPOINTMENTS_COLLECTION, booked.id) is None

    def test_customer_cannot_cancel_someone_elses_booking(self, store, booked):
        identity = Identity(id="customer-2", role=UserRole.CUSTOMER)

        with pytest.raises(NotAuthorized):
            CancellationCoordinator(store).cancel(booked.id, requested_by=identity)

        assert store.get(APPOINTMENTS_COLLECTION, booked.id) is not None

    def test_owner_cancels_booking_of_their_business(self, store, booked):
        identity = Identity(id=OWNER_ID, role=UserRole.OWNER)

        CancellationCoordinator(store).cancel(booked.id, requested_by=identity)

        assert store.query(BOOKED_SLOTS_COLLECTION) == []

    def test_other_owner_is_refused(self, store, booked):
        identity = Identity(id="owner-2", role=UserRole.OWNER)

        with pytest.raises(NotAuthorized):
            CancellationCoordinator(store).cancel(booked.id, requested_by=identity)


def test_cancel_then_rebook_same_slot(store, calculator, haircut, contact):
    """A freed slot can be booked again by a different customer."""
    coordinator = BookingTransactionCoordinator(store, calculator, clock=lambda: NOW)
    first = coordinator.book(
        owner_id=OWNER_ID, customer_id="c1", service=haircut, start=at("10:00"), contact=contact
    )
    CancellationCoordinator(store).cancel(first.id)

    second = coordinator.book(
        owner_id=OWNER_ID, customer_id="c2", service=haircut, start=at("10:00"), contact=contact
    )

    assert second.id != first.id
    assert [doc["id"] for doc in store.query(APPOINTMENTS_COLLECTION)] == [second.id]

