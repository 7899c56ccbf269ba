"""
QuickNotes Backend: Note Service (Domain Layer)
===============================================

What:  Validating façade over NoteDao that owns transaction boundaries and the
       existence-checked update/delete protocol.
How:   Each call opens one transaction through Database.transaction(), runs
       the DAO operation(s) inside it and commits. Storage failures are
       wrapped into ServiceError with the StorageError as __cause__.
Who:   Constructed once per process in the lifespan (main.py) and reached by
       route handlers through app.state.

Existence-checked mutation (update, delete_by_id):
    ┌──────────────────┐    ┌──────────────┐    ┌──────────────┐    ┌────────┐
    │ BEGIN IMMEDIATE  │───▶│ find_by_id() │───▶│ update() or  │───▶│ COMMIT │
    │ (write lock now) │    │              │    │ delete_by_id │    │        │
    └──────────────────┘    └──────┬───────┘    └──────────────┘    └────────┘
                                   │ absent
                                   ▼
                     EntityNotFoundError + ROLLBACK

    The write lock is held from the start of the transaction, so no other
    connection (in this or another worker process) can delete or modify the
    row between the existence check and the write.

Error Handling Strategy:
    ValidationError      → raised before any I/O, never wrapped
    EntityNotFoundError  → raised from inside update/delete, transaction rolled back
    StorageBusyError     → ServiceUnavailableError (lock wait exceeded)
    StorageError         → ServiceError
"""

import logging
from typing import List, Optional

from quicknotes.database import Database
from quicknotes.dao.note_dao import NoteDao
from quicknotes.exceptions import (
    EntityNotFoundError,
    ServiceError,
    ServiceUnavailableError,
    StorageBusyError,
    StorageError,
)
from quicknotes.models.note import Note, NoteForCreate, NoteForUpdate, NoteListPage
from quicknotes.models.note_id import NoteId
from quicknotes.validation import require_instance, require_page_size

logger = logging.getLogger(__name__)


def _wrap(err: StorageError, message: str, **context) -> ServiceError:
    ctx = {key: value for key, value in context.items() if value is not None}
    if isinstance(err, StorageBusyError):
        return ServiceUnavailableError(message=message, context=ctx)
    return ServiceError(message=message, context=ctx)


class NoteService:
    """
    Business logic layer for note operations.

    Args:
        database: Handle providing transaction scopes on the note store
        note_dao: Storage access layer used inside those transactions
    """

    def __init__(self, database: Database, note_dao: NoteDao):
        require_instance(database, Database, "database")
        require_instance(note_dao, NoteDao, "note_dao")
        self._database = database
        self._note_dao = note_dao

    async def create(self, note: NoteForCreate) -> NoteId:
        """
        Creates a note and returns its id.

        Raises:
            ValidationError: ``note`` is not a NoteForCreate
            ServiceError: The store rejected the insert
        """
        require_instance(note, NoteForCreate, "note")

        try:
            async with self._database.transaction() as db:
                note_id = await self._note_dao.create(db, note)
        except StorageError as err:
            raise _wrap(err, f"Failed to create note {note!r}", operation="create") from err

        logger.debug("Created note %s", note_id)
        return note_id

    async def find_by_id(self, note_id: NoteId) -> Optional[Note]:
        """
        Returns the note, or None if it does not exist.

        Not-found is a normal result here; only update/delete raise
        EntityNotFoundError.
        """
        require_instance(note_id, NoteId, "id")

        try:
            async with self._database.transaction() as db:
                return await self._note_dao.find_by_id(db, note_id)
        except StorageError as err:
            raise _wrap(
                err,
                f"Failed while finding note by id {note_id}",
                operation="find_by_id",
                note_id=note_id.value,
            ) from err

    async def list(
        self,
        page_size: Optional[int] = None,
        after_id: Optional[NoteId] = None,
    ) -> NoteListPage:
        """
        Returns one page of notes, newest first (see NoteDao.list).

        Raises:
            ValidationError: page_size outside [1, 100] or not an int;
                             after_id not a NoteId
            EntityNotFoundError: after_id names a note that no longer exists
            ServiceError: The query failed
        """
        page_size = require_page_size(
            page_size,
            minimum=NoteDao.MIN_PAGE_SIZE,
            maximum=NoteDao.MAX_PAGE_SIZE,
            default=NoteDao.DEFAULT_PAGE_SIZE,
        )
        if after_id is not None:
            require_instance(after_id, NoteId, "afterId")

        try:
            async with self._database.transaction() as db:
                return await self._note_dao.list(db, page_size, after_id)
        except StorageError as err:
            raise _wrap(
                err,
                "Failed while listing notes",
                operation="list",
                page_size=page_size,
                after_id=after_id.value if after_id else None,
            ) from err

    async def find_all(self) -> List[Note]:
        """Returns every note (unbounded)."""
        try:
            async with self._database.transaction() as db:
                return await self._note_dao.find_all(db)
        except StorageError as err:
            raise _wrap(err, "Failed while finding all notes", operation="find_all") from err

    async def update(self, note: NoteForUpdate) -> None:
        """
        Replaces a note's content if, and only if, the note exists.

        Raises:
            ValidationError: ``note`` is not a NoteForUpdate
            EntityNotFoundError: No note has ``note.id`` (nothing written)
            ServiceUnavailableError: The write lock was not acquired in time
            ServiceError: Any other storage failure
        """
        require_instance(note, NoteForUpdate, "note")

        try:
            async with self._database.transaction(immediate=True) as db:
                existing = await self._note_dao.find_by_id(db, note.id)
                if existing is None:
                    raise EntityNotFoundError(resource="note", resource_id=note.id.value)
                await self._note_dao.update(db, note)
        except StorageError as err:
            raise _wrap(
                err,
                f"Failed while updating note {note!r}",
                operation="update",
                note_id=note.id.value,
            ) from err

        logger.debug("Updated note %s", note.id)

    async def delete_by_id(self, note_id: NoteId) -> None:
        """
        Deletes a note if, and only if, it exists.

        A second delete of the same id raises EntityNotFoundError.

        Raises:
            ValidationError: ``note_id`` is not a NoteId
            EntityNotFoundError: No note has ``note_id``
            ServiceUnavailableError: The write lock was not acquired in time
            ServiceError: Any other storage failure
        """
        require_instance(note_id, NoteId, "id")

        try:
            async with self._database.transaction(immediate=True) as db:
                existing = await self._note_dao.find_by_id(db, note_id)
                if existing is None:
                    raise EntityNotFoundError(resource="note", resource_id=note_id.value)
                await self._note_dao.delete_by_id(db, note_id)
        except StorageError as err:
            raise _wrap(
                err,
                f"Failed while deleting note by id {note_id}",
                operation="delete_by_id",
                note_id=note_id.value,
            ) from err

        logger.debug("Deleted note %s", note_id)
