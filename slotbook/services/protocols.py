"""
Contracts for the collaborators the booking core depends on.

The services only talk to these protocols, which lets tests plug in stubs
and lets the same coordinators run against any store that can honour an
all-or-nothing conditional commit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.exceptions import InvalidBookingRequest, NotFound, SlotConflict
from ..domain.models import Identity, Service, instant_key

SERVICES_COLLECTION = "services"
APPOINTMENTS_COLLECTION = "appointments"
BOOKED_SLOTS_COLLECTION = "bookedSlots"

Document = Dict[str, Any]


@dataclass(frozen=True)
class Filter:
    """Field comparison used by ``query``. Supported ops: ==, <, <=, >, >=."""
    field: str
    op: str
    value: Any

    def matches(self, doc: Document) -> bool:
        if self.field not in doc:
            return False
        actual = doc[self.field]
        if self.op == "==":
            return actual == self.value
        if actual is None:
            return False
        if self.op == "<":
            return actual < self.value
        if self.op == "<=":
            return actual <= self.value
        if self.op == ">":
            return actual > self.value
        if self.op == ">=":
            return actual >= self.value
        raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True)
class Write:
    """Create or replace ``document`` under ``collection/key``."""
    collection: str
    key: str
    document: Document


@dataclass(frozen=True)
class Delete:
    """Remove ``collection/key``; deleting a missing key is a no-op."""
    collection: str
    key: str


class StoreView(Protocol):
    """Read access a store hands to commit conditions while the commit is held."""

    def get(self, collection: str, key: str) -> Optional[Document]:
        """Return the document or None."""

    def scan(self, collection: str) -> Iterable[Document]:
        """Return every document of the collection."""


class CommitCondition(Protocol):
    """Precondition a store checks inside the atomic unit of a commit."""

    def check(self, view: StoreView) -> None:
        """Raise a ``BookingError`` to abort the commit."""


@dataclass(frozen=True)
class NoOverlapCondition:
    """
    Commit precondition: the owner has no booked interval overlapping
    ``[start, end)``.

    Stores evaluate it inside the same atomic unit that applies the writes.
    """
    owner_id: str
    start: DateTime
    end: DateTime

    def check(self, view: StoreView) -> None:
        start_key = instant_key(self.start)
        end_key = instant_key(self.end)
        for doc in view.scan(BOOKED_SLOTS_COLLECTION):
            if doc.get("ownerId") != self.owner_id:
                continue
            if doc["startInstant"] < end_key and start_key < doc["endInstant"]:
                raise SlotConflict(
                    f"Owner {self.owner_id} already has {doc['startInstant']} - "
                    f"{doc['endInstant']} booked (appointment {doc.get('appointmentId')})",
                    owner_id=self.owner_id,
                    start=self.start,
                    end=self.end,
                )


@dataclass(frozen=True)
class DocumentExists:
    """Commit precondition: ``collection/key`` is still there."""
    collection: str
    key: str

    def check(self, view: StoreView) -> None:
        if view.get(self.collection, self.key) is None:
            raise NotFound(f"{self.collection}/{self.key} no longer exists")


@dataclass(frozen=True)
class DocumentAbsent:
    """Commit precondition: nothing is stored under ``collection/key`` yet."""
    collection: str
    key: str

    def check(self, view: StoreView) -> None:
        if view.get(self.collection, self.key) is not None:
            raise InvalidBookingRequest(
                f"{self.collection}/{self.key} already exists",
                user_message="An entry with this id already exists.",
            )


class DocumentStoreProtocol(Protocol):
    """Durable storage for services, appointments and booked intervals."""

    def get(self, collection: str, key: str) -> Optional[Document]:
        """Return a copy of the document or None."""

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        """Return copies of all documents matching every filter."""

    def commit(
        self,
        writes: Sequence[Write] = (),
        deletes: Sequence[Delete] = (),
        conditions: Sequence[CommitCondition] = (),
    ) -> None:
        """
        Apply writes and deletes all-or-nothing.

        The first failing condition raises its error, in which case nothing
        is written. Must serialize against every other commit on the same
        data, including commits from other processes.
        """


class CatalogClientProtocol(Protocol):
    """Read access to the owner's published services."""

    def get_service(self, service_id: str) -> Optional[Service]:
        """Return the service or None when it does not exist."""

    def list_services(self, owner_id: str, include_inactive: bool = False) -> List[Service]:
        """Return the owner's services ordered by name."""


class IdentityProviderProtocol(Protocol):
    """Reports who is calling; authentication itself lives elsewhere."""

    def current_identity(self) -> Identity:
        """Return the authenticated caller."""
