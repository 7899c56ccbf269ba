"""
QuickNotes Backend: Database Handle & Schema Bootstrap
======================================================

What:  Async SQLAlchemy engine over SQLite (aiosqlite driver), session factory,
       transaction scopes and schema creation.
How:   A Database object is constructed explicitly (main.py builds one per
       process inside the lifespan) and handed to NoteService. There is no
       module-level engine.
Who:   Used by NoteService for transaction boundaries, by the lifespan for
       schema bootstrap/shutdown, and by the health route for connectivity.

Connection setup (run on every new DBAPI connection):
    PRAGMA encoding = 'UTF-8'
    PRAGMA foreign_keys = ON
    PRAGMA busy_timeout = <db_busy_timeout_ms>
    PRAGMA temp_store = MEMORY
    PRAGMA cache_size = -<db_cache_size_kib>
    PRAGMA journal_mode = <db_journal_mode>     (WAL by default)
    PRAGMA synchronous = <db_synchronous>       (NORMAL by default)

Transaction control:
    The driver's implicit BEGIN is disabled and SQLAlchemy's "begin" event
    emits the statement instead, so the begin mode can be chosen per
    transaction through the ``sqlite_begin`` execution option:

        transaction()                → BEGIN            (deferred, readers)
        transaction(immediate=True)  → BEGIN IMMEDIATE  (write lock at start)

    Several worker processes may share one database file; cross-process
    coordination is entirely SQLite's own locking. A writer that cannot get
    the lock within busy_timeout fails with StorageBusyError.
"""

import logging
import sqlite3
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from quicknotes.exceptions import StorageBusyError, StorageError

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"

BEGIN_MODE_OPTION = "sqlite_begin"

# Interpolated into PRAGMA text, so only these values are accepted
JOURNAL_MODES = ("DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF")
SYNCHRONOUS_LEVELS = ("OFF", "NORMAL", "FULL", "EXTRA")


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models share this metadata; Database.create_schema() creates
    everything registered on it.
    """
    pass


def wrap_storage_error(err: SQLAlchemyError, message: str, context: Optional[Dict[str, Any]] = None) -> StorageError:
    """
    Converts a SQLAlchemy failure into StorageError (StorageBusyError for lock timeouts).

    The caller raises the result ``from err`` so the original stays attached.
    """
    ctx = dict(context or {})
    ctx["error_type"] = type(err).__name__
    if is_busy_error(err):
        return StorageBusyError(message=f"{message}: database is busy", context=ctx)
    return StorageError(message=message, context=ctx)


def is_busy_error(err: BaseException) -> bool:
    orig = err.orig if isinstance(err, DBAPIError) else err
    if not isinstance(orig, sqlite3.Error) and type(orig).__name__ != "OperationalError":
        return False
    # sqlite_errorname exists on Python 3.11+; fall back to the message text
    name = getattr(orig, "sqlite_errorname", "")
    if name.startswith(("SQLITE_BUSY", "SQLITE_LOCKED")):
        return True
    description = str(orig).lower()
    return "database is locked" in description or "database is busy" in description


def _require_choice(value: str, choices, name: str) -> str:
    normalized = value.upper() if isinstance(value, str) else value
    if normalized not in choices:
        raise ValueError(f"{name} must be one of {choices}, was {value!r}")
    return normalized


class Database:
    """
    Owns the async engine and session factory for one SQLite database file.

    Args:
        database_path:   File path, or ":memory:" for a private in-memory store
        busy_timeout_ms: Bound on lock waits before SQLITE_BUSY
        cache_size_kib:  Page cache size in KiB
        journal_mode:    SQLite journal mode (WAL by default)
        synchronous:     SQLite synchronous level
        echo:            Log every SQL statement (sqlalchemy.engine logger)
    """

    def __init__(
        self,
        database_path: str,
        busy_timeout_ms: int = 5000,
        cache_size_kib: int = 100_000,
        journal_mode: str = "WAL",
        synchronous: str = "NORMAL",
        echo: bool = False,
    ):
        if not isinstance(database_path, str) or not database_path:
            raise ValueError(f"database_path must be a non-empty string, was {database_path!r}")
        journal_mode = _require_choice(journal_mode, JOURNAL_MODES, "journal_mode")
        synchronous = _require_choice(synchronous, SYNCHRONOUS_LEVELS, "synchronous")

        self.database_path = database_path
        self._pragmas = (
            "PRAGMA encoding = 'UTF-8'",
            "PRAGMA foreign_keys = ON",
            f"PRAGMA busy_timeout = {int(busy_timeout_ms)}",
            "PRAGMA temp_store = MEMORY",
            f"PRAGMA cache_size = -{int(cache_size_kib)}",
            f"PRAGMA journal_mode = {journal_mode}",
            f"PRAGMA synchronous = {synchronous}",
        )

        engine_kwargs: Dict[str, Any] = {"echo": echo}
        if database_path == MEMORY_DATABASE:
            # One shared connection, otherwise each connection sees an empty database
            engine_kwargs["poolclass"] = StaticPool

        self.engine: AsyncEngine = create_async_engine(
            f"sqlite+aiosqlite:///{database_path}",
            **engine_kwargs,
        )
        event.listen(self.engine.sync_engine, "connect", self._on_connect)
        event.listen(self.engine.sync_engine, "begin", self._on_begin)

        # expire_on_commit=False: rows stay readable after the transaction ends
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            database_path=settings.database_path,
            busy_timeout_ms=settings.db_busy_timeout_ms,
            cache_size_kib=settings.db_cache_size_kib,
            journal_mode=settings.db_journal_mode,
            synchronous=settings.db_synchronous,
            echo=settings.db_echo,
        )

    # ── Engine Events ─────────────────────────────────────────────────────
    def _on_connect(self, dbapi_connection, connection_record) -> None:
        # Stop the driver from issuing its own BEGIN; _on_begin does it instead
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            for pragma in self._pragmas:
                cursor.execute(pragma)
        finally:
            cursor.close()

    @staticmethod
    def _on_begin(conn) -> None:
        mode = conn.get_execution_options().get(BEGIN_MODE_OPTION)
        if mode == "IMMEDIATE":
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")

    # ── Schema ────────────────────────────────────────────────────────────
    async def create_schema(self) -> None:
        """
        Creates the notes table, its index and its trigger if missing.

        Runs inside BEGIN IMMEDIATE so that worker processes starting at the
        same time serialize on the check-then-create.

        Raises:
            StorageError: The schema could not be applied
        """
        from quicknotes.models import record  # noqa: F401  (registers NoteRecord on Base.metadata)

        try:
            async with self.engine.connect() as conn:
                conn = await conn.execution_options(**{BEGIN_MODE_OPTION: "IMMEDIATE"})
                async with conn.begin():
                    await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                f"Failed to apply schema to SQLite database {self.database_path}",
            ) from err
        logger.debug("Schema applied to %s", self.database_path)

    # ── Transactions ──────────────────────────────────────────────────────
    @asynccontextmanager
    async def transaction(self, immediate: bool = False) -> AsyncIterator[AsyncSession]:
        """
        Yields a session inside an open transaction.

        How it works:
            1. Opens a session and begins (BEGIN or BEGIN IMMEDIATE)
            2. Yields it to the caller
            3. On success: commits
            4. On any exception: rolls back and re-raises unchanged
            5. Always: closes the session (connection back to the pool)

        Raises:
            StorageError / StorageBusyError: BEGIN, COMMIT or ROLLBACK failed
        """
        options = {BEGIN_MODE_OPTION: "IMMEDIATE"} if immediate else None
        async with self.session_factory() as session:
            try:
                await session.connection(execution_options=options)
            except SQLAlchemyError as err:
                raise wrap_storage_error(err, "Failed to begin transaction") from err

            try:
                yield session
            except Exception:
                await self._rollback(session)
                raise

            try:
                await session.commit()
            except SQLAlchemyError as err:
                await self._rollback(session)
                raise wrap_storage_error(err, "Failed to commit transaction") from err

    @staticmethod
    async def _rollback(session: AsyncSession) -> None:
        try:
            await session.rollback()
        except SQLAlchemyError as err:
            raise wrap_storage_error(err, "Failed to roll back transaction") from err

    # ── Lifecycle Helpers ─────────────────────────────────────────────────
    async def ping(self) -> None:
        """Runs SELECT 1; raises StorageError if the store is unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as err:
            raise wrap_storage_error(err, "Database ping failed") from err

    async def dispose(self) -> None:
        """Closes all pooled connections."""
        await self.engine.dispose()
