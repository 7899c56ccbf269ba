"""
QuickNotes Backend: Note Storage Access Layer
=============================================

What:  Translates typed note operations into parameterized SQL against the
       `notes` table and maps rows back to immutable Note entities.
How:   Every method receives the AsyncSession whose transaction it runs in.
       The caller (NoteService) owns transaction boundaries, so a lookup and
       a write can share one BEGIN IMMEDIATE transaction.
Who:   Called by NoteService only.

Contract for every method:
    1. Arguments are checked before any I/O → ValidationError (never wrapped)
    2. Any SQLAlchemy failure → StorageError / StorageBusyError, original kept
       as __cause__, operation and entity named in the message
    3. Only bound parameters reach SQL; no value is interpolated into text

Pagination (list):
    ORDER BY creation_time DESC, id ASC

    The cursor is the (creation_time, id) watermark of the ``after_id`` row:

        WHERE creation_time < w.creation_time
           OR (creation_time = w.creation_time AND id > w.id)

    Rows sharing a creation timestamp are therefore neither skipped nor
    repeated across a page boundary. The watermark is read first, in the same
    transaction; a cursor row that no longer exists raises EntityNotFoundError
    so that a stale cursor is never mistaken for the end of the list.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import and_, delete, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quicknotes.database import wrap_storage_error
from quicknotes.exceptions import EntityNotFoundError
from quicknotes.models.note import Note, NoteForCreate, NoteForUpdate, NoteListPage
from quicknotes.models.note_id import NoteId
from quicknotes.models.record import NoteRecord
from quicknotes.validation import require_instance, require_page_size

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def epoch_ms_to_datetime(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


class NoteDao:
    """
    Storage access for notes.

    Page size bounds:
        MIN_PAGE_SIZE = 1, MAX_PAGE_SIZE = 100, DEFAULT_PAGE_SIZE = 20
    """

    MIN_PAGE_SIZE = 1
    MAX_PAGE_SIZE = 100
    DEFAULT_PAGE_SIZE = 20

    @staticmethod
    def _to_note(row: NoteRecord) -> Note:
        return Note(
            id=NoteId.from_uuid(row.id),
            content=row.content,
            creation_time=epoch_ms_to_datetime(row.creation_time),
            last_updated_time=epoch_ms_to_datetime(row.last_updated_time),
        )

    @staticmethod
    def _require_session(db: AsyncSession) -> None:
        require_instance(db, AsyncSession, "db")

    async def create(self, db: AsyncSession, note: NoteForCreate) -> NoteId:
        """
        Inserts a new note and returns its freshly generated id.

        Both timestamps are filled in by the store defaults at insert time.

        Raises:
            ValidationError: ``note`` is not a NoteForCreate
            StorageError: The insert failed (store unavailable, constraint violation)
        """
        self._require_session(db)
        require_instance(note, NoteForCreate, "note")

        note_id = NoteId.generate()
        try:
            await db.execute(
                insert(NoteRecord).values(id=note_id.uuid, content=note.content)
            )
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                f"Failed to insert new note {note!r} due to a database error",
                context={"operation": "create"},
            ) from err

        logger.debug("Inserted note %s", note_id)
        return note_id

    async def find_by_id(self, db: AsyncSession, note_id: NoteId) -> Optional[Note]:
        """
        Returns the note with ``note_id``, or None when no row has that id.

        Raises:
            ValidationError: ``note_id`` is not a NoteId
            StorageError: The query failed
        """
        self._require_session(db)
        require_instance(note_id, NoteId, "id")

        try:
            result = await db.execute(
                select(NoteRecord)
                .where(NoteRecord.id == note_id.uuid)
                .execution_options(populate_existing=True)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                f"Failed to query for note with id {note_id} due to a database error",
                context={"operation": "find_by_id", "note_id": note_id.value},
            ) from err

        if row is None:
            return None
        return self._to_note(row)

    async def list(
        self,
        db: AsyncSession,
        page_size: Optional[int] = None,
        after_id: Optional[NoteId] = None,
    ) -> NoteListPage:
        """
        Returns one page of notes, newest first.

        Args:
            db:        Session to run in
            page_size: 1..100, defaults to 20 when None
            after_id:  Id of the last note of the previous page (None for the first page)

        Raises:
            ValidationError: Bad page_size type/range or after_id type
            EntityNotFoundError: after_id names a note that no longer exists
            StorageError: The query failed
        """
        self._require_session(db)
        page_size = require_page_size(
            page_size,
            minimum=self.MIN_PAGE_SIZE,
            maximum=self.MAX_PAGE_SIZE,
            default=self.DEFAULT_PAGE_SIZE,
        )
        if after_id is not None:
            require_instance(after_id, NoteId, "afterId")

        query = select(NoteRecord)
        context = {
            "operation": "list",
            "page_size": page_size,
            "after_id": after_id.value if after_id else None,
        }

        try:
            if after_id is not None:
                watermark = (
                    await db.execute(
                        select(NoteRecord.creation_time).where(NoteRecord.id == after_id.uuid)
                    )
                ).scalar_one_or_none()
                if watermark is None:
                    raise EntityNotFoundError(
                        resource="note",
                        resource_id=after_id.value,
                        context={"field": "afterId"},
                    )
                query = query.where(
                    or_(
                        NoteRecord.creation_time < watermark,
                        and_(
                            NoteRecord.creation_time == watermark,
                            NoteRecord.id > after_id.uuid,
                        ),
                    )
                )

            query = (
                query.order_by(NoteRecord.creation_time.desc(), NoteRecord.id.asc())
                .limit(page_size)
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            rows = result.scalars().all()
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                "Failed to query for notes list page due to a database error",
                context=context,
            ) from err

        return NoteListPage(page_size=page_size, notes=[self._to_note(row) for row in rows])

    async def find_all(self, db: AsyncSession) -> List[Note]:
        """
        Returns every note in storage order.

        Unbounded; meant for export and tests, not for request paths over
        large tables.
        """
        self._require_session(db)

        try:
            result = await db.execute(
                select(NoteRecord).execution_options(populate_existing=True)
            )
            rows = result.scalars().all()
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                "Failed to query for all notes due to a database error",
                context={"operation": "find_all"},
            ) from err

        return [self._to_note(row) for row in rows]

    async def update(self, db: AsyncSession, note: NoteForUpdate) -> None:
        """
        Overwrites the content of the note with ``note.id``.

        Unconditional: a missing row is a no-op here. Existence is enforced
        by NoteService within the same transaction. The store trigger bumps
        last_updated_time.

        Raises:
            ValidationError: ``note`` is not a NoteForUpdate
            StorageError: The update failed
        """
        self._require_session(db)
        require_instance(note, NoteForUpdate, "note")

        try:
            await db.execute(
                update(NoteRecord)
                .where(NoteRecord.id == note.id.uuid)
                .values(content=note.content)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                f"Failed to update note {note!r} due to a database error",
                context={"operation": "update", "note_id": note.id.value},
            ) from err

        logger.debug("Updated note %s", note.id)

    async def delete_by_id(self, db: AsyncSession, note_id: NoteId) -> None:
        """
        Deletes the note with ``note_id``; a missing row is a no-op.

        Raises:
            ValidationError: ``note_id`` is not a NoteId
            StorageError: The delete failed
        """
        self._require_session(db)
        require_instance(note_id, NoteId, "id")

        try:
            await db.execute(
                delete(NoteRecord)
                .where(NoteRecord.id == note_id.uuid)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as err:
            raise wrap_storage_error(
                err,
                f"Failed to delete note with id {note_id} due to a database error",
                context={"operation": "delete_by_id", "note_id": note_id.value},
            ) from err

        logger.debug("Deleted note %s", note_id)
