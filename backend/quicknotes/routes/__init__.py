# Routes package init
"""
QuickNotes Backend: API Routes Package
======================================

Route Inventory:
    - notes.py:   GET    /api/v1/notes           (page through notes)
                  GET    /api/v1/notes/{id}      (single note)
                  POST   /api/v1/notes           (create)
                  PUT    /api/v1/notes/{id}      (replace content)
                  DELETE /api/v1/notes/{id}      (delete)
    - health.py:  GET    /api/v1/                (liveness)
                  GET    /health                 (store connectivity)

Routes handle HTTP concerns only: parse path/query/body, call NoteService,
shape the response. Failures propagate to the handlers in main.py.
"""
