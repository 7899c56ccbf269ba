# Middleware package init
"""
QuickNotes Backend: Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [GZip] → Route Handler

    1. Request ID: sets the correlation ID before anything logs
    2. Logging: one access line per request, carrying that ID
    3. GZip: compresses response bodies (Starlette's GZipMiddleware)
"""
