"""
Remote store client.

Thin async facade over the content tables: ordered select, insert,
update-by-id, delete-by-id (alone or together with owned child rows) and an
atomic counter increment. Every call is bounded by REQUEST_TIMEOUT_SECONDS
and driver failures are converted to FetchError / RemoteWriteError. Committed
writes are published on the store's ChangeFeed.
"""
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Tuple, Type, TypeVar
import asyncio
import logging
import uuid

from sqlalchemy import Table, delete, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from portfolio.config import settings
from portfolio.database import Base
from portfolio.errors import FetchError, PortfolioError, RemoteWriteError, NotFoundError
from portfolio.store.feed import ChangeEvent, ChangeFeed, ChangeType
import portfolio.models  # noqa: F401  (registers the tables on Base.metadata)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = Dict[str, Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _normalize(row: Mapping[str, Any]) -> Row:
    """Copy a result row into a plain dict with timezone-aware timestamps."""
    out = {}
    for key, value in row.items():
        if isinstance(value, datetime) and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        out[key] = value
    return out


class RemoteStore:
    """
    CRUD access to the content tables.

    Usage:
        store = RemoteStore(engine)
        await store.create_schema()
        row = await store.insert("photos", {"title": "Dawn", "image_url": url})
        await store.increment("photos", row["id"], "likes")
    """

    def __init__(
        self,
        engine: AsyncEngine,
        feed: Optional[ChangeFeed] = None,
        timeout: Optional[float] = None,
    ):
        self.engine = engine
        self.feed = feed or ChangeFeed()
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._sessions = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> bool:
        async def op():
            async with self._sessions() as session:
                result = await session.execute(text("SELECT 1"))
                return result.scalar() == 1
        return await self._run(op(), FetchError, "ping")

    async def close(self) -> None:
        await self.engine.dispose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def select(
        self,
        table: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = "created_at",
        ascending: bool = False,
    ) -> List[Row]:
        """
        Select rows from a table.

        Args:
            table: Table name
            where: Equality filters (column -> value)
            order_by: Column to order by (default: created_at)
            ascending: Sort order (default: newest first)

        Returns:
            List of row dicts

        Raises:
            FetchError: If the query fails or times out
        """
        t = self._table(table)
        stmt = select(t)
        for column, value in (where or {}).items():
            stmt = stmt.where(t.c[column] == value)
        if order_by:
            col = t.c[order_by]
            stmt = stmt.order_by(col.asc() if ascending else col.desc())

        async def op():
            async with self._sessions() as session:
                result = await session.execute(stmt)
                return [_normalize(r) for r in result.mappings().all()]

        return await self._run(op(), FetchError, f"select from {table}")

    async def get(self, table: str, row_id: str) -> Row:
        t = self._table(table)

        async def op():
            async with self._sessions() as session:
                row = await self._fetch_row(session, t, row_id)
                if row is None:
                    raise NotFoundError(table, row_id)
                return row

        return await self._run(op(), FetchError, f"get {table} {row_id}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        """
        Insert a row. The store assigns id, created_at and (where present) updated_at.

        Returns:
            The stored row, including server-assigned fields and column defaults
        """
        t = self._table(table)
        now = utcnow()
        record = dict(values)
        record["id"] = str(uuid.uuid4())
        record["created_at"] = now
        if "updated_at" in t.c:
            record["updated_at"] = now
        self._check_columns(t, record)

        async def op():
            async with self._sessions() as session:
                await session.execute(t.insert().values(**record))
                row = await self._fetch_row(session, t, record["id"])
                await session.commit()
                return row

        row = await self._run(op(), RemoteWriteError, f"insert into {table}")
        logger.info(f"Inserted {table} row {row['id']}")
        self.feed.publish(ChangeEvent(table, ChangeType.INSERT, new=row))
        return row

    async def update(
        self,
        table: str,
        row_id: str,
        values: Mapping[str, Any],
        *,
        where: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Row]:
        """
        Update the given columns of one row.

        Args:
            table: Table name
            row_id: Id of the row to change
            values: Columns to set; other columns are left untouched
            where: Extra equality conditions; when they do not hold the row is
                left unchanged and None is returned

        Returns:
            The updated row, or None when ``where`` did not match

        Raises:
            NotFoundError: If no row has this id
            RemoteWriteError: If the write fails or times out
        """
        t = self._table(table)
        record = dict(values)
        if "updated_at" in t.c:
            record["updated_at"] = utcnow()
        self._check_columns(t, record)

        stmt = update(t).where(t.c.id == row_id)
        for column, value in (where or {}).items():
            stmt = stmt.where(t.c[column] == value)
        stmt = stmt.values(**record)

        async def op():
            async with self._sessions() as session:
                result = await session.execute(stmt)
                row = await self._fetch_row(session, t, row_id)
                if row is None:
                    raise NotFoundError(table, row_id)
                if result.rowcount == 0:
                    return None
                await session.commit()
                return row

        row = await self._run(op(), RemoteWriteError, f"update {table} {row_id}")
        if row is not None:
            logger.info(f"Updated {table} row {row_id}: {sorted(values)}")
            self.feed.publish(ChangeEvent(table, ChangeType.UPDATE, new=row))
        return row

    async def increment(self, table: str, row_id: str, column: str, amount: int = 1) -> int:
        """
        Atomically add ``amount`` to a counter column.

        The addition happens inside a single UPDATE statement, so concurrent
        callers never lose each other's increments.

        Returns:
            The counter value after this increment
        """
        if amount < 1:
            raise ValueError("Counters only move forward")
        t = self._table(table)
        stmt = (
            update(t)
            .where(t.c.id == row_id)
            .values({column: t.c[column] + amount})
        )

        async def op():
            async with self._sessions() as session:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    raise NotFoundError(table, row_id)
                row = await self._fetch_row(session, t, row_id)
                await session.commit()
                return row

        row = await self._run(op(), RemoteWriteError, f"increment {table}.{column} {row_id}")
        logger.debug(f"Incremented {table}.{column} for {row_id} to {row[column]}")
        self.feed.publish(ChangeEvent(table, ChangeType.UPDATE, new=row))
        return row[column]

    async def delete(self, table: str, row_id: str) -> Row:
        """
        Delete one row by id.

        Returns:
            The deleted row

        Raises:
            NotFoundError: If no row has this id
        """
        t = self._table(table)

        async def op():
            async with self._sessions() as session:
                row = await self._fetch_row(session, t, row_id)
                if row is None:
                    raise NotFoundError(table, row_id)
                await session.execute(delete(t).where(t.c.id == row_id))
                await session.commit()
                return row

        row = await self._run(op(), RemoteWriteError, f"delete {table} {row_id}")
        logger.info(f"Deleted {table} row {row_id}")
        self.feed.publish(ChangeEvent(table, ChangeType.DELETE, old=row))
        return row

    async def delete_with_children(
        self, table: str, row_id: str, child_table: str, child_column: str
    ) -> Tuple[Row, List[Row]]:
        """
        Delete one row and every ``child_table`` row pointing at it, in one transaction.

        Nothing is removed unless the parent delete commits. DELETE events for
        the children, then the parent, are published after the commit.

        Returns:
            (deleted parent row, deleted child rows)

        Raises:
            NotFoundError: If no row has this id
            RemoteWriteError: If any of the deletes fails or times out
        """
        t = self._table(table)
        child = self._table(child_table)

        async def op():
            async with self._sessions() as session:
                row = await self._fetch_row(session, t, row_id)
                if row is None:
                    raise NotFoundError(table, row_id)
                result = await session.execute(select(child).where(child.c[child_column] == row_id))
                children = [_normalize(r) for r in result.mappings().all()]
                await session.execute(delete(child).where(child.c[child_column] == row_id))
                await session.execute(delete(t).where(t.c.id == row_id))
                await session.commit()
                return row, children

        row, children = await self._run(op(), RemoteWriteError, f"delete {table} {row_id} with {child_table}")
        logger.info(f"Deleted {table} row {row_id} and {len(children)} {child_table} row(s)")
        for child_row in children:
            self.feed.publish(ChangeEvent(child_table, ChangeType.DELETE, old=child_row))
        self.feed.publish(ChangeEvent(table, ChangeType.DELETE, old=row))
        return row, children

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def columns(self, table: str) -> List[str]:
        return list(self._table(table).c.keys())

    @staticmethod
    def _table(name: str) -> Table:
        try:
            return Base.metadata.tables[name]
        except KeyError:
            raise ValueError(f"Unknown table: {name}")

    @staticmethod
    def _check_columns(t: Table, record: Mapping[str, Any]) -> None:
        unknown = set(record) - set(t.c.keys())
        if unknown:
            raise RemoteWriteError(f"{t.name} has no column(s): {', '.join(sorted(unknown))}")

    @staticmethod
    async def _fetch_row(session: AsyncSession, t: Table, row_id: str) -> Optional[Row]:
        result = await session.execute(select(t).where(t.c.id == row_id))
        row = result.mappings().first()
        return _normalize(row) if row is not None else None

    async def _run(self, op: Awaitable[T], error_cls: Type[PortfolioError], description: str) -> T:
        try:
            return await asyncio.wait_for(op, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Store call timed out after {self.timeout}s: {description}")
            raise error_cls(f"{description} timed out after {self.timeout}s")
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Store call failed: {description}: {str(e)}", exc_info=True)
            raise error_cls(f"{description} failed: {str(e)}") from e
