"""
QuickNotes Backend
==================

A small notes service: create, read, page through, update and delete
free-text notes over a JSON HTTP API, persisted in an embedded SQLite file
that several worker processes can share.

Layers:
    routes/    HTTP handlers (FastAPI)
    services/  NoteService: transaction boundaries, existence checks
    dao/       NoteDao: SQL against the notes table
    models/    Immutable domain types and the ORM table mapping
    database   Engine, PRAGMAs, BEGIN / BEGIN IMMEDIATE scopes
"""

__version__ = "1.0.0"
