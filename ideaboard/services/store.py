# ideaboard/services/store.py

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from sqlalchemy import Table, and_, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ideaboard.database import engine as default_engine
from ideaboard.models import Base
from ideaboard.services.errors import PersistenceError

logger = logging.getLogger(__name__)


@runtime_checkable
class PersistenceStore(Protocol):
    async def get(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]: ...

    async def update(
        self,
        table: str,
        entity_id: str,
        patch: Mapping[str, Any],
        *,
        match: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]: ...

    async def clear_stale_locks(self, table: str, cutoff: datetime) -> int: ...


class SqlAlchemyStore:
    """
    Record store over the ORM tables registered on Base.metadata.

    The engine is synchronous; every call runs inside a worker thread so the
    event loop stays free while the DB round-trip is in flight.
    Rows come back as plain dicts keyed by column name.
    """

    def __init__(self, engine: Engine = default_engine) -> None:
        self._engine = engine

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(name)
        if table is None:
            raise PersistenceError(f"Unknown table {name!r}", table=name)
        return table

    async def get(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return await asyncio.to_thread(self._get_sync, table, entity_id)

    async def update(
        self,
        table: str,
        entity_id: str,
        patch: Mapping[str, Any],
        *,
        match: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Apply `patch` to the row with primary key `entity_id`.

        `match` adds equality conditions (column -> expected value) to the WHERE clause.
        Returns the updated row, or None when no row satisfied the conditions.
        """
        return await asyncio.to_thread(self._update_sync, table, entity_id, dict(patch), dict(match or {}))

    async def clear_stale_locks(self, table: str, cutoff: datetime) -> int:
        """
        Clear editing_by/editing_at on rows locked at or before `cutoff`, and on rows
        that carry an owner without a timestamp. Returns rows touched.
        """
        return await asyncio.to_thread(self._clear_stale_locks_sync, table, cutoff)

    def _get_sync(self, table: str, entity_id: str) -> Optional[Dict[str, Any]]:
        tbl = self._table(table)
        try:
            with self._engine.connect() as conn:
                row = conn.execute(select(tbl).where(tbl.c.id == entity_id)).mappings().first()
        except SQLAlchemyError as ex:
            logger.exception("store: read %s/%s failed", table, entity_id)
            raise PersistenceError(f"Error reading {table} {entity_id}", table=table, entity_id=entity_id) from ex
        return dict(row) if row is not None else None

    def _update_sync(
        self, table: str, entity_id: str, patch: Dict[str, Any], match: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        tbl = self._table(table)
        if not patch:
            raise PersistenceError(f"Empty update for {table} {entity_id}", table=table, entity_id=entity_id)
        unknown = [name for name in list(patch) + list(match) if name not in tbl.c]
        if unknown:
            raise PersistenceError(
                f"Unknown column(s) for {table}: {', '.join(sorted(unknown))}", table=table, entity_id=entity_id
            )

        conditions = [tbl.c.id == entity_id]
        conditions.extend(tbl.c[name] == value for name, value in match.items())
        try:
            with self._engine.begin() as conn:
                result = conn.execute(update(tbl).where(and_(*conditions)).values(**patch))
                if result.rowcount == 0:
                    return None
                row = conn.execute(select(tbl).where(tbl.c.id == entity_id)).mappings().first()
        except SQLAlchemyError as ex:
            logger.exception("store: update %s/%s failed", table, entity_id)
            raise PersistenceError(f"Error updating {table} {entity_id}", table=table, entity_id=entity_id) from ex
        return dict(row) if row is not None else None

    def _clear_stale_locks_sync(self, table: str, cutoff: datetime) -> int:
        tbl = self._table(table)
        stmt = (
            update(tbl)
            .where(
                and_(
                    tbl.c.editing_by.is_not(None),
                    or_(tbl.c.editing_at.is_(None), tbl.c.editing_at <= cutoff),
                )
            )
            .values(editing_by=None, editing_at=None)
        )
        try:
            with self._engine.begin() as conn:
                result = conn.execute(stmt)
        except SQLAlchemyError as ex:
            logger.exception("store: stale lock cleanup on %s failed", table)
            raise PersistenceError(f"Error clearing stale locks on {table}", table=table) from ex
        return result.rowcount or 0
