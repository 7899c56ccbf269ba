"""
QuickNotes Backend: Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the HTTP contract.
How:   FastAPI validates request bodies against these models, serializes
       responses with their camelCase aliases, and generates OpenAPI docs.
Who:   Used by route handlers only. The service and storage layers work with
       the dataclasses in quicknotes.models.note; the from_* constructors
       below copy those into wire shapes.

Wire shapes:
    note        {id, content, creationDateTime, lastUpdatedDateTime}
    note page   {pageSize, notes: [note, ...]}
    created     {id}
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, StrictStr

from quicknotes.models.note import Note, NoteListPage
from quicknotes.models.note_id import NoteId


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteContentRequest(BaseModel):
    """
    Body of POST /api/v1/notes and PUT /api/v1/notes/{id}.

    StrictStr: numbers, booleans, objects and null are rejected rather than
    coerced. An empty string is valid content.
    """
    content: StrictStr = Field(description="Free-text note content")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    """A single persisted note."""

    model_config = {"populate_by_name": True}

    id: str = Field(description="Note identifier (canonical UUIDv4)")
    content: str = Field(description="Note content")
    creation_date_time: datetime = Field(
        alias="creationDateTime",
        description="When the note was created (UTC ISO 8601)",
    )
    last_updated_date_time: datetime = Field(
        alias="lastUpdatedDateTime",
        description="When the note content was last written (UTC ISO 8601)",
    )

    @classmethod
    def from_note(cls, note: Note) -> "NoteResponse":
        return cls(
            id=note.id.value,
            content=note.content,
            creation_date_time=note.creation_time,
            last_updated_date_time=note.last_updated_time,
        )


class NoteListResponse(BaseModel):
    """
    One page of notes, newest first.

    ``pageSize`` echoes the requested (or default) bound, not ``len(notes)``.
    The next page is requested with ``afterId`` set to the last note's id.
    """

    model_config = {"populate_by_name": True}

    page_size: int = Field(alias="pageSize", description="Requested page size bound")
    notes: List[NoteResponse] = Field(description="Notes on this page")

    @classmethod
    def from_page(cls, page: NoteListPage) -> "NoteListResponse":
        return cls(
            page_size=page.page_size,
            notes=[NoteResponse.from_note(note) for note in page.notes],
        )


class NoteCreatedResponse(BaseModel):
    """Returned by POST /api/v1/notes with HTTP 201 Created."""
    id: str = Field(description="Identifier of the new note")

    @classmethod
    def from_id(cls, note_id: NoteId) -> "NoteCreatedResponse":
        return cls(id=note_id.value)


class AliveResponse(BaseModel):
    message: str = Field(default="alive")


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid id 'abc'",
            "details": {"field": "id"},
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
