"""
QuickNotes Backend: Note Table Model
====================================

What:  ORM model representing the `notes` table in SQLite.
How:   Inherits from the project's DeclarativeBase; Database.create_schema()
       creates the table, its index and its trigger from this metadata.
Who:   Used only by NoteDao, which maps rows to the immutable Note entity.

Table Design:
    - id: UUID primary key (stored as 32 hex chars on SQLite; hex order equals
      byte order, so ``id > :id`` compares raw identifier bytes)
    - content: TEXT NOT NULL
    - creation_time / last_updated_time: epoch milliseconds (INTEGER), both
      defaulted by the store to the insert time from the same statement clock
    - CHECK keeps creation_time inside [1970-01-01, 9999-12-31T23:59:59.999]

    Index on (creation_time DESC, id ASC):
        Matches the listing order exactly, so a page is an index range scan.

    Trigger on UPDATE OF content:
        Stamps last_updated_time = MAX(now, creation_time); the application
        never computes this timestamp.
"""

import uuid

from sqlalchemy import DDL, CheckConstraint, Index, Integer, Text, Uuid, event, text
from sqlalchemy.orm import Mapped, mapped_column

from quicknotes.database import Base

# Current time as integer epoch milliseconds. julianday() works on every
# SQLite version; unixepoch('subsec') needs 3.42+.
NOW_EPOCH_MS_SQL = "CAST(ROUND((julianday('now') - 2440587.5) * 86400000) AS INTEGER)"

MAX_EPOCH_MS = 253_402_300_799_999


class NoteRecord(Base):
    """
    One persisted note row.

    Lifecycle:
        1. Inserted by NoteDao.create() with id and content only
        2. Content overwritten by NoteDao.update(); trigger bumps last_updated_time
        3. Removed by NoteDao.delete_by_id(); ids are never reused
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    creation_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text(f"({NOW_EPOCH_MS_SQL})"),
    )

    last_updated_time: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text(f"({NOW_EPOCH_MS_SQL})"),
    )

    __table_args__ = (
        CheckConstraint(
            f"creation_time BETWEEN 0 AND {MAX_EPOCH_MS}",
            name="ck_notes_creation_time_range",
        ),
    )

    def __repr__(self) -> str:
        return f"<NoteRecord(id={self.id}, creation_time={self.creation_time})>"


# Listing order index: (creation_time DESC, id ASC)
Index("idx_notes_creation_time", NoteRecord.creation_time.desc(), NoteRecord.id)

# Created together with the table (CREATE TABLE runs it via after_create).
event.listen(
    NoteRecord.__table__,
    "after_create",
    DDL(
        "CREATE TRIGGER IF NOT EXISTS tr_notes_touch_last_updated_time "
        "AFTER UPDATE OF content ON notes "
        "BEGIN "
        f"UPDATE notes SET last_updated_time = MAX({NOW_EPOCH_MS_SQL}, creation_time) "
        "WHERE id = NEW.id; "
        "END"
    ).execute_if(dialect="sqlite"),
)
