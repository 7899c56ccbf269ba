"""
QuickNotes Backend: Database Handle Tests
=========================================

What we test:
    ✅ Connection PRAGMAs are applied to every connection
    ✅ journal_mode / synchronous outside the allowed sets are rejected
    ✅ Schema creation is idempotent and installs the index and trigger
    ✅ The trigger never sets last_updated_time before creation_time
    ✅ The CHECK constraint bounds creation_time
    ✅ transaction() commits on success and rolls back on error
    ✅ A failing rollback surfaces as StorageError
    ✅ BEGIN IMMEDIATE excludes a second writer (StorageBusyError after
       busy_timeout) while WAL readers proceed
    ✅ Concurrent deletes from two handles (two "workers"): exactly one wins
    ✅ In-memory databases work through a single shared connection
    ✅ A failed schema bootstrap raises StorageError and leaves nothing behind
"""

import asyncio
import sqlite3
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import insert, select, text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quicknotes.dao.note_dao import NoteDao
from quicknotes.database import Database, is_busy_error
from quicknotes.exceptions import (
    EntityNotFoundError,
    ServiceUnavailableError,
    StorageBusyError,
    StorageError,
)
from quicknotes.models.note import NoteForCreate, NoteForUpdate
from quicknotes.models.note_id import NoteId
from quicknotes.models.record import MAX_EPOCH_MS, NoteRecord
from quicknotes.services.note_service import NoteService


async def pragma(database, name):
    async with database.engine.connect() as conn:
        result = await conn.execute(text(f"PRAGMA {name}"))
        return result.scalar()


class TestConnectionSetup:

    @pytest.mark.asyncio
    async def test_pragmas_applied(self, database):
        assert (await pragma(database, "journal_mode")).lower() == "wal"
        assert await pragma(database, "busy_timeout") == 5000
        assert await pragma(database, "foreign_keys") == 1
        assert await pragma(database, "cache_size") == -100_000
        assert await pragma(database, "synchronous") == 1  # NORMAL
        assert await pragma(database, "temp_store") == 2  # MEMORY

    @pytest.mark.asyncio
    async def test_custom_settings(self, database_path):
        db = Database(database_path, busy_timeout_ms=250, cache_size_kib=2000, journal_mode="DELETE")
        try:
            assert await pragma(db, "busy_timeout") == 250
            assert await pragma(db, "cache_size") == -2000
            assert (await pragma(db, "journal_mode")).lower() == "delete"
        finally:
            await db.dispose()

    def test_empty_path_rejected(self):
        with pytest.raises(ValueError):
            Database("")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"journal_mode": "WAL; DROP TABLE notes"},
            {"journal_mode": "fast"},
            {"synchronous": "NORMAL; PRAGMA foreign_keys = OFF"},
            {"synchronous": 1},
        ],
    )
    def test_pragma_values_outside_allowed_set_rejected(self, database_path, kwargs):
        with pytest.raises(ValueError):
            Database(database_path, **kwargs)

    @pytest.mark.asyncio
    async def test_pragma_values_case_insensitive(self, database_path):
        db = Database(database_path, journal_mode="truncate", synchronous="full")
        try:
            assert (await pragma(db, "journal_mode")).lower() == "truncate"
            assert await pragma(db, "synchronous") == 2  # FULL
        finally:
            await db.dispose()

    @pytest.mark.asyncio
    async def test_ping(self, database):
        await database.ping()


class TestSchema:

    @pytest.mark.asyncio
    async def test_create_schema_is_idempotent(self, database):
        await database.create_schema()
        await database.create_schema()

    @pytest.mark.asyncio
    async def test_index_and_trigger_exist(self, database):
        async with database.engine.connect() as conn:
            result = await conn.execute(
                text("SELECT type, name FROM sqlite_master WHERE tbl_name = 'notes'")
            )
            objects = {(row.type, row.name) for row in result}

        assert ("table", "notes") in objects
        assert ("index", "idx_notes_creation_time") in objects
        assert ("trigger", "tr_notes_touch_last_updated_time") in objects

    @pytest.mark.asyncio
    async def test_trigger_never_precedes_creation_time(self, database):
        note_id = NoteId.generate()
        future = MAX_EPOCH_MS - 1
        async with database.transaction() as db:
            await db.execute(
                insert(NoteRecord).values(
                    id=note_id.uuid, content="a", creation_time=future, last_updated_time=future
                )
            )
        async with database.transaction() as db:
            await NoteDao().update(db, NoteForUpdate(id=note_id, content="b"))
        async with database.transaction() as db:
            row = (
                await db.execute(select(NoteRecord.last_updated_time).where(NoteRecord.id == note_id.uuid))
            ).scalar_one()

        assert row == future

    @pytest.mark.asyncio
    @pytest.mark.parametrize("creation_time", [-1, MAX_EPOCH_MS + 1])
    async def test_creation_time_range_enforced(self, database, creation_time):
        with pytest.raises(IntegrityError):
            async with database.transaction() as db:
                await db.execute(
                    insert(NoteRecord).values(
                        id=NoteId.generate().uuid,
                        content="",
                        creation_time=creation_time,
                        last_updated_time=0,
                    )
                )


class TestTransactions:

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, database, note_dao):
        class Boom(Exception):
            pass

        with pytest.raises(Boom):
            async with database.transaction() as db:
                await note_dao.create(db, NoteForCreate(content="discarded"))
                raise Boom()

        async with database.transaction() as db:
            assert await note_dao.find_all(db) == []

    @pytest.mark.asyncio
    async def test_commit_visible_to_other_handle(self, database, database_path, note_dao):
        async with database.transaction() as db:
            note_id = await note_dao.create(db, NoteForCreate(content="shared"))

        other = Database(database_path)
        try:
            async with other.transaction() as db:
                assert (await note_dao.find_by_id(db, note_id)).content == "shared"
        finally:
            await other.dispose()

    @pytest.mark.asyncio
    async def test_failed_rollback_raises_storage_error(self, database, monkeypatch):
        class Boom(Exception):
            pass

        failure = OperationalError("ROLLBACK", {}, sqlite3.OperationalError("disk I/O error"))
        monkeypatch.setattr(AsyncSession, "rollback", AsyncMock(side_effect=failure))

        with pytest.raises(StorageError) as exc_info:
            async with database.transaction():
                raise Boom()

        assert not isinstance(exc_info.value, StorageBusyError)
        assert exc_info.value.message == "Failed to roll back transaction"
        assert exc_info.value.__cause__ is failure


class TestLocking:

    @pytest.mark.asyncio
    async def test_second_writer_times_out_but_reader_proceeds(self, database, database_path, note_dao):
        async with database.transaction() as db:
            note_id = await note_dao.create(db, NoteForCreate(content="x"))

        waiter = Database(database_path, busy_timeout_ms=50)
        try:
            # Open the waiter's connection before the lock is taken
            await waiter.ping()

            async with database.transaction(immediate=True):
                with pytest.raises(StorageBusyError) as exc_info:
                    async with waiter.transaction(immediate=True):
                        pass
                assert is_busy_error(exc_info.value.__cause__)

                async with waiter.transaction() as db:
                    assert (await note_dao.find_by_id(db, note_id)) is not None

                service = NoteService(waiter, note_dao)
                with pytest.raises(ServiceUnavailableError) as service_exc:
                    await service.update(NoteForUpdate(id=note_id, content="y"))
                assert isinstance(service_exc.value.__cause__, StorageBusyError)
        finally:
            await waiter.dispose()

    @pytest.mark.asyncio
    async def test_concurrent_deletes_exactly_one_wins(self, database, database_path, note_dao):
        async with database.transaction() as db:
            note_id = await note_dao.create(db, NoteForCreate(content="contested"))

        second_worker = Database(database_path)
        try:
            services = [NoteService(database, note_dao), NoteService(second_worker, note_dao)]
            results = await asyncio.gather(
                *(services[i % 2].delete_by_id(note_id) for i in range(6)),
                return_exceptions=True,
            )
        finally:
            await second_worker.dispose()

        assert results.count(None) == 1
        assert all(isinstance(r, EntityNotFoundError) for r in results if r is not None)


class TestInMemory:

    @pytest.mark.asyncio
    async def test_memory_database_round_trip(self, note_dao):
        db_handle = Database(":memory:")
        try:
            await db_handle.create_schema()
            service = NoteService(db_handle, note_dao)
            note_id = await service.create(NoteForCreate(content="ephemeral"))
            assert (await service.find_by_id(note_id)).content == "ephemeral"
        finally:
            await db_handle.dispose()

    @pytest.mark.asyncio
    async def test_failed_schema_raises_storage_error_and_rolls_back(self, database_path):
        db_handle = Database(database_path)
        try:
            # An index already holding the name the schema needs
            async with db_handle.engine.begin() as conn:
                await conn.execute(text("CREATE TABLE other (x INTEGER)"))
                await conn.execute(text("CREATE INDEX idx_notes_creation_time ON other (x)"))

            with pytest.raises(StorageError) as exc_info:
                await db_handle.create_schema()
            assert isinstance(exc_info.value.__cause__, SQLAlchemyError)

            async with db_handle.engine.connect() as conn:
                result = await conn.execute(
                    text("SELECT name FROM sqlite_master WHERE tbl_name = 'notes'")
                )
                assert result.all() == []
        finally:
            await db_handle.dispose()
