"""
QuickNotes Backend: Notes Route Handlers
========================================

What:  CRUD endpoints under /api/v1/notes.
How:   Parses path/query strings into NoteId, builds the entity types,
       delegates to NoteService and shapes the response. Error responses are
       produced by the global exception handlers in main.py.

    GET    /api/v1/notes?pageSize=&afterId=   → 200 {pageSize, notes} | 404
    GET    /api/v1/notes/{id}                 → 200 note | 404
    POST   /api/v1/notes        {content}     → 201 {id}
    PUT    /api/v1/notes/{id}   {content}     → 204 | 404
    DELETE /api/v1/notes/{id}                 → 204 | 404
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from quicknotes.exceptions import EntityNotFoundError, ValidationError
from quicknotes.models.note import NoteForCreate, NoteForUpdate
from quicknotes.models.note_id import NoteId
from quicknotes.schemas.note import (
    ErrorResponse,
    NoteContentRequest,
    NoteCreatedResponse,
    NoteListResponse,
    NoteResponse,
)
from quicknotes.services.note_service import NoteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notes", tags=["Notes"])


def get_note_service(request: Request) -> NoteService:
    """The NoteService built by the lifespan and stored on app.state."""
    return request.app.state.note_service


def parse_note_id(value: str, field: str = "id") -> NoteId:
    try:
        return NoteId(value)
    except ValidationError as err:
        raise ValidationError(message=f"Invalid {field} {value}", field=field) from err


@router.get(
    "",
    response_model=NoteListResponse,
    responses={
        400: {"description": "Invalid pageSize or afterId", "model": ErrorResponse},
        404: {"description": "afterId names a note that no longer exists", "model": ErrorResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="List notes, newest first",
)
async def list_notes(
    page_size: Optional[int] = Query(
        default=None,
        alias="pageSize",
        description="Page size bound, 1 to 100 (default 20)",
    ),
    after_id: Optional[str] = Query(
        default=None,
        alias="afterId",
        description="Id of the last note of the previous page",
    ),
    note_service: NoteService = Depends(get_note_service),
) -> NoteListResponse:
    cursor = parse_note_id(after_id, field="afterId") if after_id is not None else None
    page = await note_service.list(page_size, cursor)
    return NoteListResponse.from_page(page)


@router.get(
    "/{note_id}",
    response_model=NoteResponse,
    responses={
        400: {"description": "Invalid id", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Get a single note by id",
)
async def get_note(
    note_id: str,
    note_service: NoteService = Depends(get_note_service),
) -> NoteResponse:
    parsed_id = parse_note_id(note_id)
    note = await note_service.find_by_id(parsed_id)
    if note is None:
        raise EntityNotFoundError(resource="note", resource_id=parsed_id.value)
    return NoteResponse.from_note(note)


@router.post(
    "",
    response_model=NoteCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing or non-string content", "model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    body: NoteContentRequest,
    note_service: NoteService = Depends(get_note_service),
) -> NoteCreatedResponse:
    note_id = await note_service.create(NoteForCreate(content=body.content))
    logger.info("Created note %s", note_id)
    return NoteCreatedResponse.from_id(note_id)


@router.put(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"description": "Invalid id or content", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Replace a note's content",
)
async def update_note(
    note_id: str,
    body: NoteContentRequest,
    note_service: NoteService = Depends(get_note_service),
) -> Response:
    parsed_id = parse_note_id(note_id)
    await note_service.update(NoteForUpdate(id=parsed_id, content=body.content))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={
        400: {"description": "Invalid id", "model": ErrorResponse},
        404: {"description": "Note not found", "model": ErrorResponse},
    },
    summary="Delete a note",
)
async def delete_note(
    note_id: str,
    note_service: NoteService = Depends(get_note_service),
) -> Response:
    parsed_id = parse_note_id(note_id)
    await note_service.delete_by_id(parsed_id)
    logger.info("Deleted note %s", parsed_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
