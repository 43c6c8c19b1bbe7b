"""Persistence Gateway — pooled async connections executing named SQL templates.

Invariants:
    - The gateway is the only component that checks connections out of the pool
    - Every call is acquire → execute in a transaction → commit → release;
      release happens on success and failure alike (engine.begin() context)
    - Every call is bounded: pool checkout by pool_timeout, the whole call by
      database_query_timeout_seconds. On expiry the caller gets DatabaseError at
      once; the abandoned call is cancelled (and interrupted on SQLite) and
      finishes its rollback in the background
    - All SQLAlchemy/driver failures are logged once here and re-raised as
      DatabaseError with the original exception as __cause__
    - Callers suspend on every call; nothing blocks the event loop

Design Decisions:
    - Core connections + text() over ORM sessions: the SQL lives in the query catalog
    - max_overflow=0: database_max_pool_size is a hard ceiling, extra callers queue
    - In-memory SQLite uses StaticPool; a queue pool would hand each connection
      its own empty database
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import URL, CursorResult
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from wiki.config import Settings
from wiki.core.errors import DatabaseError
from wiki.core.query_catalog import NamedQuery, QueryCatalog, SqlQuery

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistenceGateway:
    """Executes catalog queries against a bounded connection pool."""

    def __init__(self, settings: Settings):
        self.url = settings.resolved_database_url()
        self.query_timeout = settings.database_query_timeout_seconds
        self._abandoned: set[asyncio.Task] = set()
        self.engine = create_async_engine(
            self.url, **_pool_options(self.url, settings),
        )

    @property
    def dialect(self) -> str:
        return self.url.get_backend_name()

    async def initialize(self, catalog: QueryCatalog) -> None:
        """Create the pages table (idempotent). Failure aborts startup."""
        try:
            await self.execute(catalog.get(SqlQuery.CREATE_PAGES_TABLE))
        except DatabaseError:
            logger.error("Database preparation failed")
            raise
        logger.info(f"Pages table ready ({self.dialect})")

    async def execute(self, query: NamedQuery) -> None:
        """Run a statement with no parameters and no result (schema setup)."""
        await self._run(query, (), lambda result: None)

    async def query(
        self, query: NamedQuery, params: Sequence[Any] = (),
    ) -> list[tuple]:
        """Run a read statement, returning every row as a tuple."""
        return await self._run(
            query, params, lambda result: [tuple(row) for row in result.all()],
        )

    async def update(self, query: NamedQuery, params: Sequence[Any] = ()) -> int:
        """Run a write statement, returning the affected row count."""
        return await self._run(query, params, lambda result: result.rowcount)

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        if self._abandoned:
            # Let timed-out calls finish their rollback before the pool closes
            await asyncio.gather(*self._abandoned, return_exceptions=True)
        await self.engine.dispose()

    async def _run(
        self,
        query: NamedQuery,
        params: Sequence[Any],
        consume: Callable[[CursorResult], T],
    ) -> T:
        bound = _bind(query, params)
        call = _ActiveCall()
        task = asyncio.create_task(
            self._execute(query, bound, consume, call),
            name=f"db:{query.name.value}",
        )
        try:
            done, _ = await asyncio.wait({task}, timeout=self.query_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            await self._abandon(task, call)
            logger.error(
                f"DB call '{query.name.value}' exceeded {self.query_timeout}s",
                extra={"query": query.name.value},
            )
            raise DatabaseError(
                f"no result within {self.query_timeout}s", "timeout",
            )
        try:
            return task.result()
        except IntegrityError as e:
            logger.error(f"DB integrity error: {e}", extra={"query": query.name.value})
            raise DatabaseError(
                f"Integrity constraint violated ({_reason(e)})", "commit",
            ) from e
        except OperationalError as e:
            logger.error(f"DB operational error: {e}", extra={"query": query.name.value})
            raise DatabaseError(
                f"Connection or operational error ({_reason(e)})", "execute",
            ) from e
        except DBAPIError as e:
            logger.error(f"DB driver error: {e}", extra={"query": query.name.value})
            raise DatabaseError(
                f"Database driver error ({_reason(e)})", "query",
            ) from e
        except PoolTimeoutError as e:
            logger.error(f"DB pool exhausted: {e}", extra={"query": query.name.value})
            raise DatabaseError("Connection pool exhausted", "checkout") from e
        except SQLAlchemyError as e:
            logger.error(f"SQLAlchemy error: {e}", extra={"query": query.name.value})
            raise DatabaseError("Database operation failed", "unknown") from e

    async def _execute(
        self,
        query: NamedQuery,
        bound: dict[str, Any],
        consume: Callable[[CursorResult], T],
        call: "_ActiveCall",
    ) -> T:
        async with self.engine.begin() as conn:
            raw = await conn.get_raw_connection()
            call.driver_connection = raw.driver_connection
            result = await conn.execute(text(query.sql), bound)
            return consume(result)

    async def _abandon(self, task: asyncio.Task, call: "_ActiveCall") -> None:
        """Stop a timed-out call without waiting for its cleanup.

        Cancelling alone is not enough for SQLite: the rollback queues behind
        the statement still running in the driver thread. interrupt() aborts
        that statement from outside the thread.
        """
        if self.dialect == "sqlite" and call.driver_connection is not None:
            try:
                await call.driver_connection.interrupt()
            except Exception as e:
                logger.warning(f"Could not interrupt SQLite statement: {e}")
        task.cancel()
        self._abandoned.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Task) -> None:
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Abandoned DB call ended with: {task.exception()}")


class _ActiveCall:
    """Driver connection of an in-flight call, once it has one."""

    def __init__(self):
        self.driver_connection: Any = None


def _bind(query: NamedQuery, params: Sequence[Any]) -> dict[str, Any]:
    """Map positional params onto the query's placeholders, in order."""
    if len(params) != len(query.params):
        raise ValueError(
            f"Query '{query.name.value}' takes {len(query.params)} "
            f"parameter(s), got {len(params)}",
        )
    return dict(zip(query.params, params))


def _reason(e: DBAPIError) -> str:
    return str(e.orig) if e.orig is not None else str(e)


def _pool_options(url: URL, settings: Settings) -> dict[str, Any]:
    """Engine pool arguments for the configured backend."""
    if url.get_backend_name() == "sqlite":
        if url.database in (None, "", ":memory:"):
            return {"poolclass": StaticPool}
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return {
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": settings.database_max_pool_size,
            "max_overflow": 0,
            "pool_timeout": settings.database_pool_timeout_seconds,
            "pool_pre_ping": True,
        }
    return {
        "pool_size": settings.database_max_pool_size,
        "max_overflow": 0,
        "pool_timeout": settings.database_pool_timeout_seconds,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }
