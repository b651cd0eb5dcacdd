"""
Atomic cancellation of appointments.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..domain.exceptions import InvalidBookingRequest, NotAuthorized, NotFound
from ..domain.models import Appointment, Identity
from .protocols import (
    APPOINTMENTS_COLLECTION,
    BOOKED_SLOTS_COLLECTION,
    Delete,
    DocumentExists,
    DocumentStoreProtocol,
    Filter,
)

logger = logging.getLogger(__name__)


class CancellationCoordinator:
    """
    Removes an appointment and the time it occupies in one commit.

    The appointment and its booked interval(s) disappear together, so a
    concurrent reader never sees a freed slot with a live appointment or
    the other way round.
    """

    def __init__(self, store: DocumentStoreProtocol) -> None:
        self._store = store

    def cancel(self, appointment_id: str, requested_by: Optional[Identity] = None) -> Appointment:
        """
        Cancel an appointment.

        Args:
            appointment_id: Id of the appointment to cancel
            requested_by: Caller to authorize; None for trusted callers

        Returns:
            The appointment as it was before deletion

        Raises:
            InvalidBookingRequest: Blank appointment id
            NotFound: No appointment with that id, or another caller cancelled it first
            NotAuthorized: The caller neither booked it nor owns the business
        """
        if not appointment_id.strip():
            raise InvalidBookingRequest("Appointment ID cannot be blank.")

        logger.debug("Attempting to cancel appointment %s", appointment_id)
        doc = self._store.get(APPOINTMENTS_COLLECTION, appointment_id)
        if doc is None:
            raise NotFound(
                f"Appointment {appointment_id} does not exist",
                user_message="This booking no longer exists.",
            )
        appointment = Appointment.from_document(doc)

        if requested_by is not None:
            self._authorize(appointment, requested_by)

        slot_docs = self._store.query(
            BOOKED_SLOTS_COLLECTION, [Filter("appointmentId", "==", appointment_id)]
        )
        if not slot_docs:
            logger.warning(
                "Inconsistent data: appointment %s has no booked interval; deleting the appointment only",
                appointment_id,
            )

        try:
            self._store.commit(
                deletes=[Delete(APPOINTMENTS_COLLECTION, appointment_id)]
                + [Delete(BOOKED_SLOTS_COLLECTION, slot["id"]) for slot in slot_docs],
                conditions=[DocumentExists(APPOINTMENTS_COLLECTION, appointment_id)],
            )
        except NotFound as exc:
            logger.info("Appointment %s was cancelled by another caller first", appointment_id)
            raise NotFound(
                f"Appointment {appointment_id} was cancelled concurrently",
                user_message="This booking no longer exists.",
            ) from exc

        logger.info(
            "Cancelled appointment %s and freed %d interval(s) for owner %s",
            appointment_id,
            len(slot_docs),
            appointment.owner_id,
        )
        return appointment

    @staticmethod
    def _authorize(appointment: Appointment, identity: Identity) -> None:
        if identity.is_owner:
            allowed = identity.id == appointment.owner_id
        else:
            allowed = identity.id == appointment.customer_id
        if not allowed:
            raise NotAuthorized(
                f"{identity.role.value} {identity.id} may not cancel appointment {appointment.id}"
            )
