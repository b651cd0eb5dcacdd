"""
Adapters layer - Document store, catalog and identity implementations.
"""

from .catalog import StoreCatalogClient
from .identity import StaticIdentityProvider
from .memory_store import InMemoryDocumentStore
from .sqlite_store import SqliteDocumentStore

__all__ = ["InMemoryDocumentStore", "SqliteDocumentStore", "StaticIdentityProvider", "StoreCatalogClient"]
