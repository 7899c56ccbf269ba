"""
QuickNotes Backend: Note Entity & Transfer Types
================================================

What:  Immutable value shapes passed between the HTTP layer, the service layer
       and the storage access layer.
How:   Frozen dataclasses composed field by field; each validates its fields
       on construction and raises ValidationError on a wrong type.

    NoteForCreate   {content}                                   → create()
    NoteForUpdate   {id, content}                               → update()
    Note            {id, content, creation_time, last_updated_time}
    NoteListPage    {page_size, notes}                          ← list()

Entities are copied across layer boundaries; no layer holds a reference to
another layer's mutable state. ``NoteListPage.notes`` is always a tuple.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence, Tuple

from quicknotes.exceptions import ValidationError
from quicknotes.models.note_id import NoteId
from quicknotes.validation import describe, is_integer, require_instance, require_str


@dataclass(frozen=True)
class NoteForCreate:
    """Content of a note that does not exist yet. Empty content is valid."""

    content: str

    def __post_init__(self) -> None:
        require_str(self.content, "content")


@dataclass(frozen=True)
class NoteForUpdate:
    """Replacement content for an existing note."""

    id: NoteId
    content: str

    def __post_init__(self) -> None:
        require_instance(self.id, NoteId, "id")
        require_str(self.content, "content")


@dataclass(frozen=True)
class Note:
    """
    A persisted note.

    Timestamps are timezone-aware UTC datetimes assigned by the store:
    ``creation_time`` once at insert, ``last_updated_time`` at insert and on
    every content write.
    """

    id: NoteId
    content: str
    creation_time: datetime
    last_updated_time: datetime

    def __post_init__(self) -> None:
        require_instance(self.id, NoteId, "id")
        require_str(self.content, "content")
        require_instance(self.creation_time, datetime, "creation_time")
        require_instance(self.last_updated_time, datetime, "last_updated_time")


@dataclass(frozen=True)
class NoteListPage:
    """
    One page of a keyset-paginated listing.

    ``page_size`` is the bound that was requested (or defaulted), not the
    number of notes returned.
    """

    page_size: int
    notes: Tuple[Note, ...]

    def __post_init__(self) -> None:
        if not is_integer(self.page_size):
            raise ValidationError(
                message=f"page_size must be an integer, was {describe(self.page_size)}",
                field="page_size",
            )
        if isinstance(self.notes, (str, bytes)) or not isinstance(self.notes, Sequence):
            raise ValidationError(
                message=f"notes must be a sequence, was {describe(self.notes)}",
                field="notes",
            )
        for index, note in enumerate(self.notes):
            if not isinstance(note, Note):
                raise ValidationError(
                    message=(
                        f"each element in notes must be an instance of {Note.__name__}, "
                        f"element {index} was {describe(note)}"
                    ),
                    field="notes",
                )
        object.__setattr__(self, "notes", tuple(self.notes))
