"""
QuickNotes Backend: Entity Type Tests
=====================================

What we test:
    ✅ NoteForCreate / NoteForUpdate / Note reject wrongly-typed fields
    ✅ Empty content is valid
    ✅ NoteListPage normalizes notes to a tuple and checks every element
    ✅ Instances are frozen
"""

import dataclasses
from datetime import datetime, timezone

import pytest

from quicknotes.exceptions import ValidationError
from quicknotes.models.note import Note, NoteForCreate, NoteForUpdate, NoteListPage
from quicknotes.models.note_id import NoteId

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_note(content="hello"):
    return Note(id=NoteId.generate(), content=content, creation_time=NOW, last_updated_time=NOW)


class TestNoteForCreate:

    def test_empty_content_is_valid(self):
        assert NoteForCreate(content="").content == ""

    @pytest.mark.parametrize("content", [None, 1, b"bytes", ["a"]])
    def test_non_string_content_rejected(self, content):
        with pytest.raises(ValidationError) as exc_info:
            NoteForCreate(content=content)
        assert exc_info.value.field == "content"

    def test_frozen(self):
        note = NoteForCreate(content="a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            note.content = "b"


class TestNoteForUpdate:

    def test_requires_note_id(self):
        with pytest.raises(ValidationError) as exc_info:
            NoteForUpdate(id=str(NoteId.generate()), content="x")
        assert exc_info.value.field == "id"

    def test_valid(self):
        note_id = NoteId.generate()
        update = NoteForUpdate(id=note_id, content="x")
        assert update.id == note_id


class TestNote:

    def test_requires_datetimes(self):
        with pytest.raises(ValidationError) as exc_info:
            Note(id=NoteId.generate(), content="x", creation_time=0, last_updated_time=NOW)
        assert exc_info.value.field == "creation_time"

    def test_equal_by_fields(self):
        note = make_note()
        assert note == dataclasses.replace(note)


class TestNoteListPage:

    def test_list_becomes_tuple(self):
        notes = [make_note("a"), make_note("b")]
        page = NoteListPage(page_size=5, notes=notes)
        assert page.notes == tuple(notes)

        notes.append(make_note("c"))
        assert len(page.notes) == 2

    def test_empty_page(self):
        assert NoteListPage(page_size=20, notes=[]).notes == ()

    def test_rejects_non_note_element(self):
        with pytest.raises(ValidationError) as exc_info:
            NoteListPage(page_size=5, notes=[make_note(), "oops"])
        assert "element 1" in exc_info.value.message

    @pytest.mark.parametrize("notes", [None, "abc", 3])
    def test_rejects_non_sequence(self, notes):
        with pytest.raises(ValidationError):
            NoteListPage(page_size=5, notes=notes)

    @pytest.mark.parametrize("page_size", [None, "5", 5.0, True])
    def test_rejects_non_integer_page_size(self, page_size):
        with pytest.raises(ValidationError):
            NoteListPage(page_size=page_size, notes=[])
