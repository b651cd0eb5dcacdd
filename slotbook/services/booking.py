"""
Conflict-safe creation of appointments.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Optional

import pendulum
from pendulum import DateTime

from ..domain.exceptions import (
    CommitOutcomeUnknown,
    InvalidBookingRequest,
    SlotConflict,
    StoreUnavailable,
)
from ..domain.models import Appointment, BookedInterval, CustomerContact, Service, ServiceSnapshot
from ..domain.slot_calculator import SlotCalculator, SlotRejection
from .availability import load_occupied
from .protocols import (
    APPOINTMENTS_COLLECTION,
    BOOKED_SLOTS_COLLECTION,
    DocumentStoreProtocol,
    NoOverlapCondition,
    Write,
)

logger = logging.getLogger(__name__)


class BookingTransactionCoordinator:
    """
    Commits an appointment together with its booked interval.

    The slot list a customer picked from may be stale, so the coordinator
    re-reads the owner's occupied time and re-checks the overlap. That only
    narrows the race; the authoritative check is the ``NoOverlapCondition``
    the store evaluates inside the commit. The coordinator takes no locks
    and never retries a commit.
    """

    def __init__(
        self,
        store: DocumentStoreProtocol,
        slot_calculator: SlotCalculator,
        clock: Callable[[], DateTime] = pendulum.now,
        id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
    ) -> None:
        self._store = store
        self._slot_calculator = slot_calculator
        self._clock = clock
        self._id_factory = id_factory

    def book(
        self,
        *,
        owner_id: str,
        customer_id: str,
        service: Service | ServiceSnapshot,
        start: DateTime,
        contact: CustomerContact,
    ) -> Appointment:
        """
        Book ``service`` at ``start`` for a customer.

        Args:
            owner_id: Business the appointment belongs to
            customer_id: Authenticated customer making the booking
            service: Catalog service or a snapshot of it
            start: Chosen start time, one of the offered slots
            contact: Contact details left by the customer

        Returns:
            The stored appointment

        Raises:
            InvalidBookingRequest: Missing ids/contact, inactive service or a start that was never on offer
            InvalidServiceDuration: Non-positive service duration
            SlotConflict: The time was taken since the slots were listed
            CommitOutcomeUnknown: The commit failed in transit; use ``confirm``
            StoreUnavailable: The pre-commit read failed
        """
        snapshot = self._snapshot_of(service, owner_id)
        if not owner_id.strip() or not customer_id.strip() or not snapshot.service_id.strip():
            raise InvalidBookingRequest(
                "Critical IDs (owner, customer or service) are missing. Cannot create appointment."
            )
        contact = contact.normalized()
        self._slot_calculator.check_duration(snapshot.duration_minutes)

        now = self._clock()
        hours = self._slot_calculator.business_hours
        booked = load_occupied(self._store, owner_id, hours.local_date(start), hours)

        rejection = self._slot_calculator.check_slot(start, snapshot.duration_minutes, booked, now)
        if rejection is SlotRejection.OCCUPIED:
            raise SlotConflict(
                f"Slot {start} for owner {owner_id} was taken before commit",
                owner_id=owner_id,
                start=start,
                end=start.add(minutes=snapshot.duration_minutes),
            )
        if rejection is not None:
            raise InvalidBookingRequest(
                f"Start {start} is not bookable: {rejection.value}",
                user_message="This time cannot be booked. Please pick one of the offered times.",
            )

        appointment = Appointment(
            id=self._id_factory(),
            owner_id=owner_id,
            customer_id=customer_id,
            service_id=snapshot.service_id,
            service_name=snapshot.name,
            price_minor_units=snapshot.price_minor_units,
            duration_minutes=snapshot.duration_minutes,
            start=start,
            customer_name=contact.name,
            customer_phone=contact.phone,
            customer_email=contact.email,
            created_at=now,
        )
        interval = BookedInterval.for_appointment(self._id_factory(), appointment)

        logger.debug("Committing appointment %s at %s for owner %s", appointment.id, start, owner_id)
        try:
            self._store.commit(
                writes=[
                    Write(APPOINTMENTS_COLLECTION, appointment.id, appointment.to_document()),
                    Write(BOOKED_SLOTS_COLLECTION, interval.id, interval.to_document()),
                ],
                conditions=[NoOverlapCondition(owner_id, interval.start, interval.end)],
            )
        except SlotConflict:
            logger.info("Commit rejected: slot %s for owner %s was booked concurrently", start, owner_id)
            raise
        except StoreUnavailable as exc:
            logger.error("Commit of appointment %s failed in transit: %s", appointment.id, exc)
            raise CommitOutcomeUnknown(
                f"Commit of appointment {appointment.id} has an unknown outcome: {exc}",
                appointment_id=appointment.id,
            ) from exc

        logger.info("Booked appointment %s for owner %s at %s", appointment.id, owner_id, start)
        return appointment

    def confirm(self, appointment_id: str) -> Optional[Appointment]:
        """
        Look up an appointment after ``CommitOutcomeUnknown``.

        Returns None when the commit did not land.
        """
        doc = self._store.get(APPOINTMENTS_COLLECTION, appointment_id)
        return Appointment.from_document(doc) if doc is not None else None

    @staticmethod
    def _snapshot_of(service: Service | ServiceSnapshot, owner_id: str) -> ServiceSnapshot:
        if isinstance(service, Service):
            if service.owner_id != owner_id:
                raise InvalidBookingRequest(f"Service {service.id} does not belong to owner {owner_id}")
            if not service.is_active:
                raise InvalidBookingRequest(
                    f"Service {service.id} is not active",
                    user_message="This service is currently not available.",
                )
            return service.snapshot()
        return service
