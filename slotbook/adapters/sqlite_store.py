"""
SQLite-backed document store shared by every process that opens the same file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import JSON, Column, MetaData, String, Table, create_engine, delete, event, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..domain.exceptions import StoreUnavailable
from ..services.protocols import CommitCondition, Delete, Document, Filter, Write

logger = logging.getLogger(__name__)

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("collection", String, primary_key=True),
    Column("key", String, primary_key=True),
    Column("body", JSON, nullable=False),
)


def create_sqlite_engine(path: Path, busy_timeout_seconds: float = 30.0) -> Engine:
    """
    Engine whose transactions start with ``BEGIN IMMEDIATE``.

    pysqlite's deferred BEGIN is switched off so each transaction takes the
    database write lock before its first read. A second writer, in this or
    any other process, waits up to ``busy_timeout_seconds`` for the lock.
    """
    engine = create_engine(
        URL.create("sqlite", database=str(path)),
        connect_args={"timeout": busy_timeout_seconds},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def _fetch_one(conn: Connection, collection: str, key: str) -> Optional[Document]:
    return conn.execute(
        select(documents.c.body).where(documents.c.collection == collection, documents.c.key == key)
    ).scalar_one_or_none()


def _fetch_all(conn: Connection, collection: str) -> List[Document]:
    return list(conn.execute(select(documents.c.body).where(documents.c.collection == collection)).scalars())


class _ConnectionView:
    """``StoreView`` reading through the connection that holds the write lock."""

    def __init__(self, conn: Connection):
        self._conn = conn

    def get(self, collection: str, key: str) -> Optional[Document]:
        return _fetch_one(self._conn, collection, key)

    def scan(self, collection: str) -> Iterable[Document]:
        return _fetch_all(self._conn, collection)


class SqliteDocumentStore:
    """
    Keeps every collection in one ``documents`` table of a SQLite file.

    Every commit runs in one ``BEGIN IMMEDIATE`` transaction: conditions
    are checked and all writes and deletes applied while the database lock
    is held, so commits from separate processes are serialized and a
    failing condition rolls everything back.
    """

    def __init__(self, path: Path, busy_timeout_seconds: float = 30.0):
        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_sqlite_engine(self.path, busy_timeout_seconds)
            metadata.create_all(self._engine)
        except (OSError, SQLAlchemyError) as exc:
            raise StoreUnavailable(f"Could not open store {self.path}: {exc}") from exc
        logger.debug("Opened document store %s", self.path)

    def get(self, collection: str, key: str) -> Optional[Document]:
        try:
            with self._engine.connect() as conn:
                return _fetch_one(conn, collection, key)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Could not read {collection}/{key}: {exc}") from exc

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Document]:
        try:
            with self._engine.connect() as conn:
                docs = [doc for doc in _fetch_all(conn, collection) if all(f.matches(doc) for f in filters)]
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Could not query {collection}: {exc}") from exc

        if order_by is not None:
            docs.sort(key=lambda doc: doc.get(order_by), reverse=descending)
        return docs

    def commit(
        self,
        writes: Sequence[Write] = (),
        deletes: Sequence[Delete] = (),
        conditions: Sequence[CommitCondition] = (),
    ) -> None:
        try:
            with self._engine.begin() as conn:
                view = _ConnectionView(conn)
                for condition in conditions:
                    condition.check(view)

                for item in deletes:
                    conn.execute(
                        delete(documents).where(
                            documents.c.collection == item.collection, documents.c.key == item.key
                        )
                    )
                for item in writes:
                    stmt = sqlite_insert(documents).values(
                        collection=item.collection, key=item.key, body=item.document
                    )
                    conn.execute(
                        stmt.on_conflict_do_update(
                            index_elements=[documents.c.collection, documents.c.key],
                            set_={"body": stmt.excluded.body},
                        )
                    )
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Commit to {self.path} failed: {exc}") from exc

        logger.debug("Committed %d write(s) and %d delete(s) to %s", len(writes), len(deletes), self.path)

    def close(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()
