"""
In-process document store with serializable conditional commits.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence

from ..services.protocols import CommitCondition, Delete, Document, Filter, Write

logger = logging.getLogger(__name__)


class _CollectionsView:
    """``StoreView`` over the live dictionaries; only used while the lock is held."""

    def __init__(self, collections: Dict[str, Dict[str, Document]]):
        self._collections = collections

    def get(self, collection: str, key: str) -> Optional[Document]:
        return self._collections.get(collection, {}).get(key)

    def scan(self, collection: str) -> Iterable[Document]:
        return self._collections.get(collection, {}).values()


class InMemoryDocumentStore:
    """
    Dictionary-backed store implementing ``DocumentStoreProtocol``.

    A single lock guards reads and commits. Conditions are checked and
    writes applied while holding it, so two commits racing for overlapping
    time are serialized and the loser sees the winner's interval. Nothing
    is shared between processes; use ``SqliteDocumentStore`` for that.
    """

    def __init__(self, collections: Optional[Dict[str, Dict[str, Document]]] = None):
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, Document]] = copy.deepcopy(collections or {})

    def get(self, collection: str, key: str) -> Optional[Document]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        with self._lock:
            docs = [
                copy.deepcopy(doc)
                for doc in self._collections.get(collection, {}).values()
                if all(f.matches(doc) for f in filters)
            ]

        if order_by is not None:
            docs.sort(key=lambda doc: doc.get(order_by), reverse=descending)
        return docs

    def commit(
        self,
        writes: Sequence[Write] = (),
        deletes: Sequence[Delete] = (),
        conditions: Sequence[CommitCondition] = (),
    ) -> None:
        with self._lock:
            # Conditions raise before anything is touched
            view = _CollectionsView(self._collections)
            for condition in conditions:
                condition.check(view)

            for delete in deletes:
                self._collections.get(delete.collection, {}).pop(delete.key, None)
            for write in writes:
                self._collections.setdefault(write.collection, {})[write.key] = copy.deepcopy(write.document)

        logger.debug("Committed %d write(s) and %d delete(s)", len(writes), len(deletes))

    def snapshot(self) -> Dict[str, Dict[str, Document]]:
        """Deep copy of every collection."""
        with self._lock:
            return copy.deepcopy(self._collections)
