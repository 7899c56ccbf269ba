"""
QuickNotes Backend: Note Identifier
===================================

What:  Validated wrapper around a random (version 4) UUID.
How:   Accepts only the dashed 8-4-4-4-12 hexadecimal form, checks the version
       and RFC 4122 variant, and keeps the lowercase canonical string.
Who:   Built by routes from path/query strings, by the DAO from stored rows,
       and freshly generated by NoteDao.create().

Equality and hashing use the canonical string, so ``NoteId("ABC...")`` and
``NoteId("abc...")`` are the same identifier.
"""

import re
import uuid
from typing import Any

from quicknotes.exceptions import ValidationError
from quicknotes.validation import describe

_DASHED_HEX = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


class NoteId:
    """Immutable UUIDv4 identifier in canonical lowercase dashed form."""

    __slots__ = ("_uuid",)

    def __init__(self, value: str):
        if not isinstance(value, str) or not _DASHED_HEX.match(value):
            raise ValidationError(
                message=f"value must be a valid UUIDv4 string, was {describe(value)}",
                field="id",
            )
        parsed = uuid.UUID(value)
        if parsed.version != 4 or parsed.variant != uuid.RFC_4122:
            raise ValidationError(
                message=f"value must be a valid UUIDv4 string, was {describe(value)}",
                field="id",
            )
        object.__setattr__(self, "_uuid", parsed)

    @classmethod
    def generate(cls) -> "NoteId":
        """Creates a fresh random identifier (uuid4 draws from os.urandom)."""
        return cls(str(uuid.uuid4()))

    @classmethod
    def from_uuid(cls, value: uuid.UUID) -> "NoteId":
        if not isinstance(value, uuid.UUID):
            raise ValidationError(
                message=f"value must be an instance of UUID, was {describe(value)}",
                field="id",
            )
        return cls(str(value))

    @property
    def value(self) -> str:
        """The canonical lowercase dashed string."""
        return str(self._uuid)

    @property
    def uuid(self) -> uuid.UUID:
        return self._uuid

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NoteId):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"NoteId({self.value!r})"
