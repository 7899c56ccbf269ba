"""
QuickNotes Backend: Exception Hierarchy
=======================================

What:  Application-specific exceptions for every failure the notes core can report.
How:   Each exception carries a human-readable message and an optional context
       dict. Storage and service errors keep the original failure as their
       ``__cause__`` (raised with ``raise ... from err``).
Who:   Raised by the DAO, the service layer and the database handle; mapped to
       HTTP responses by the global handlers registered in main.py.

Exception Hierarchy:
    QuickNotesError (base)
    ├── ValidationError              → 400 Bad Request (never wrapped, raised before I/O)
    ├── EntityNotFoundError          → 404 Not Found
    ├── StorageError                 → 500 Internal Server Error
    │   └── StorageBusyError         → 503 Service Unavailable (lock wait exceeded)
    └── ServiceError                 → 500 Internal Server Error
        └── ServiceUnavailableError  → 503 Service Unavailable
"""

from typing import Any, Dict, Optional


class QuickNotesError(Exception):
    """
    Base exception for all QuickNotes errors.

    Attributes:
        message:  Error description
        context:  Additional debug info (logged, NOT returned to the client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(QuickNotesError):
    """
    Raised when caller-supplied input has the wrong type, shape or range.

    Always raised before any storage I/O and never wrapped by the service
    layer. The caller can recover by correcting the input.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class EntityNotFoundError(QuickNotesError):
    """
    Raised when the target of a mutation (or a looked-up resource) does not exist.

    The service layer raises it from inside the existence-checked
    update/delete transaction, which is then rolled back.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"No {resource} with id '{resource_id}' exists"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class StorageError(QuickNotesError):
    """
    Raised by the storage access layer when the underlying store fails.

    Covers unavailable stores, constraint violations and driver errors.
    The SQLAlchemy exception is kept as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "A storage error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageBusyError(StorageError):
    """Raised when SQLite gave up waiting for a lock (busy_timeout exceeded)."""

    def __init__(
        self,
        message: str = "The store is busy",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ServiceError(QuickNotesError):
    """
    Raised by the service layer for any storage-originated failure.

    The message names the operation (and the entity for creates/updates);
    the wrapped StorageError is kept as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "A service error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ServiceUnavailableError(ServiceError):
    """
    ServiceError whose cause is a lock timeout.

    The request layer answers 503 with a Retry-After header; no retry is
    performed inside the core.
    """

    def __init__(
        self,
        message: str = "The service is temporarily busy",
        retry_after: int = 1,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
