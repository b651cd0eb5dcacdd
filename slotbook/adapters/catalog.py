"""
Service catalog kept in the document store.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from ..domain.exceptions import InvalidBookingRequest, InvalidServiceDuration
from ..domain.models import Service
from ..services.protocols import (
    SERVICES_COLLECTION,
    Delete,
    DocumentAbsent,
    DocumentExists,
    DocumentStoreProtocol,
    Filter,
    Write,
)

logger = logging.getLogger(__name__)


class StoreCatalogClient:
    """Implements ``CatalogClientProtocol`` and the owner-side service management."""

    def __init__(self, store: DocumentStoreProtocol):
        self._store = store

    def get_service(self, service_id: str) -> Optional[Service]:
        if not service_id.strip():
            raise InvalidBookingRequest("Service ID cannot be blank.")
        doc = self._store.get(SERVICES_COLLECTION, service_id)
        return Service.from_document(doc) if doc is not None else None

    def list_services(self, owner_id: str, include_inactive: bool = False) -> List[Service]:
        filters = [Filter("ownerId", "==", owner_id)]
        if not include_inactive:
            filters.append(Filter("isActive", "==", True))
        docs = self._store.query(SERVICES_COLLECTION, filters, order_by="name")
        return [Service.from_document(doc) for doc in docs]

    def add_service(
        self,
        *,
        owner_id: str,
        name: str,
        duration_minutes: int,
        price_minor_units: int,
        description: str = "",
        is_active: bool = True,
        service_id: Optional[str] = None,
    ) -> Service:
        """
        Validate and publish a new service.

        Raises InvalidBookingRequest when ``service_id`` is already taken,
        by this owner or any other.
        """
        service = Service(
            id=service_id or uuid.uuid4().hex,
            owner_id=owner_id,
            name=name.strip(),
            duration_minutes=duration_minutes,
            price_minor_units=price_minor_units,
            is_active=is_active,
            description=description.strip(),
        )
        self._validate(service)
        self._store.commit(
            writes=[Write(SERVICES_COLLECTION, service.id, service.to_document())],
            conditions=[DocumentAbsent(SERVICES_COLLECTION, service.id)],
        )
        logger.info("Added service %s (%s) for owner %s", service.id, service.name, owner_id)
        return service

    def update_service(self, service: Service) -> Service:
        """Replace an existing service. Past appointments keep their own snapshot."""
        self._validate(service)
        self._store.commit(
            writes=[Write(SERVICES_COLLECTION, service.id, service.to_document())],
            conditions=[DocumentExists(SERVICES_COLLECTION, service.id)],
        )
        logger.info("Updated service %s", service.id)
        return service

    def delete_service(self, service_id: str) -> None:
        self._store.commit(
            deletes=[Delete(SERVICES_COLLECTION, service_id)],
            conditions=[DocumentExists(SERVICES_COLLECTION, service_id)],
        )
        logger.info("Deleted service %s", service_id)

    @staticmethod
    def _validate(service: Service) -> None:
        if not service.name.strip():
            raise InvalidBookingRequest("Service name cannot be blank.", user_message="Please enter a service name.")
        if not service.owner_id.strip():
            raise InvalidBookingRequest("A service must belong to an owner.")
        if service.duration_minutes <= 0:
            raise InvalidServiceDuration(f"Service duration must be positive, got {service.duration_minutes}")
        if service.price_minor_units < 0:
            raise InvalidBookingRequest(
                f"Service price cannot be negative, got {service.price_minor_units}",
                user_message="Price cannot be negative.",
            )
