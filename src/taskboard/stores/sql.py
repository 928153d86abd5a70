"""SQLAlchemy record store — durable storage on any SQLAlchemy async database.

Each entity type gets its own table with an autoincrement integer ``id`` and
a JSON ``body`` column holding the remaining fields::

    store = SqlAlchemyRecordStore(url="sqlite+aiosqlite:///./taskboard.db", table="task")
    await store.initialize()
    stored = await store.insert({"action": "ship"})

``replace`` is a single upsert statement on SQLite and PostgreSQL; on
PostgreSQL it also moves the id sequence past explicitly written ids so
later inserts never collide. Other dialects fall back to update-then-insert.

Connection failures surface as ``StoreUnavailableError``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Column, Integer, MetaData, Table, delete, func, insert, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from taskboard.core.errors import StoreUnavailableError
from taskboard.models.health import BackendHealth
from taskboard.stores.base import RecordSlice, RecordStore

logger = logging.getLogger(__name__)

_UNAVAILABLE = (OperationalError, InterfaceError, OSError)

_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class SqlAlchemyRecordStore(RecordStore):
    """Record store on a relational database through SQLAlchemy Core.

    Args:
        url: SQLAlchemy async database URL.
        table: Table name for this entity type.
        echo: Log SQL statements.
        engine: Existing engine to share. When given, the store does not
            dispose it on shutdown.
    """

    def __init__(
        self,
        url: str = "sqlite+aiosqlite:///./taskboard.db",
        table: str = "records",
        echo: bool = False,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._url = url
        self._echo = echo
        self._engine = engine
        self._owns_engine = engine is None
        self._metadata = MetaData()
        self._table = Table(
            table,
            self._metadata,
            Column("id", Integer, primary_key=True, autoincrement=True),
            Column("body", JSON, nullable=False),
        )

    @property
    def name(self) -> str:
        return "sqlalchemy"

    async def initialize(self) -> None:
        """Create the engine (unless shared) and the table if it does not exist."""
        if self._engine is None:
            self._engine = create_async_engine(self._url, echo=self._echo)
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(self._metadata.create_all)
        except _UNAVAILABLE as e:
            raise StoreUnavailableError(f"Failed to initialise table '{self._table.name}': {e}") from e
        logger.info("Record store ready: table '%s' on %s", self._table.name, self._engine.url.render_as_string())

    async def shutdown(self) -> None:
        if self._engine is not None and self._owns_engine:
            await self._engine.dispose()
            self._engine = None

    # ── Writes ───────────────────────────────────────────────────────────

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        body = _body(document)
        async with self._connect() as conn:
            result = await conn.execute(insert(self._table).values(body=body))
            record_id = result.inserted_primary_key[0]
        return {**body, "id": record_id}

    async def replace(self, record_id: int, document: dict[str, Any]) -> dict[str, Any]:
        body = _body(document)
        async with self._connect() as conn:
            dialect = conn.dialect.name
            if dialect in _UPSERT_DIALECTS:
                stmt = _UPSERT_DIALECTS[dialect](self._table).values(id=record_id, body=body)
                await conn.execute(
                    stmt.on_conflict_do_update(index_elements=[self._table.c.id], set_={"body": stmt.excluded.body})
                )
            else:
                result = await conn.execute(
                    update(self._table).where(self._table.c.id == record_id).values(body=body)
                )
                if result.rowcount == 0:
                    await conn.execute(insert(self._table).values(id=record_id, body=body))
            if dialect == "postgresql":
                await self._advance_sequence(conn)
        return {**body, "id": record_id}

    async def delete(self, record_id: int) -> bool:
        async with self._connect() as conn:
            result = await conn.execute(delete(self._table).where(self._table.c.id == record_id))
        return result.rowcount > 0

    # ── Reads ────────────────────────────────────────────────────────────

    async def get(self, record_id: int) -> dict[str, Any] | None:
        async with self._connect() as conn:
            row = (
                await conn.execute(select(self._table).where(self._table.c.id == record_id))
            ).first()
        if row is None:
            return None
        return {**row.body, "id": row.id}

    async def scan(self, offset: int, limit: int) -> RecordSlice:
        async with self._connect() as conn:
            total = (await conn.execute(select(func.count()).select_from(self._table))).scalar_one()
            rows = (
                await conn.execute(
                    select(self._table).order_by(self._table.c.id).offset(offset).limit(limit)
                )
            ).all()
        return RecordSlice(total=total, documents=[{**row.body, "id": row.id} for row in rows])

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> BackendHealth:
        if self._engine is None:
            return BackendHealth(status="unhealthy", backend=self.name, message="Engine not initialized")
        try:
            start = time.monotonic()
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            latency_ms = int((time.monotonic() - start) * 1000)
            return BackendHealth(
                status="healthy",
                backend=self.name,
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Table: {self._table.name}",
            )
        except Exception as e:
            return BackendHealth(status="unhealthy", backend=self.name, message=str(e))

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _advance_sequence(self, conn: AsyncConnection) -> None:
        """Move the serial sequence to at least ``max(id)``."""
        max_id = select(func.coalesce(func.max(self._table.c.id), 1)).scalar_subquery()
        sequence = func.pg_get_serial_sequence(self._table.name, self._table.c.id.name)
        await conn.execute(select(func.setval(sequence, func.greatest(max_id, func.nextval(sequence) - 1))))

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[AsyncConnection]:
        """Open a transaction, mapping connection failures to ``StoreUnavailableError``."""
        if self._engine is None:
            raise StoreUnavailableError("Record store engine not initialized.")
        try:
            async with self._engine.begin() as conn:
                yield conn
        except _UNAVAILABLE as e:
            raise StoreUnavailableError(f"Record store unavailable ({self._table.name}): {e}") from e


def _body(document: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in document.items() if k != "id"}
