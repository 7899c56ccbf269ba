"""
Argument checks shared by the entity types, the DAO and the service layer.

Every helper raises ValidationError with a message naming the argument, its
type and its value, and never touches storage.
"""

from typing import Any, Optional, Type, TypeVar

from quicknotes.exceptions import ValidationError

T = TypeVar("T")


def describe(value: Any) -> str:
    """Renders ``value`` for error messages: ``type <name> with value <repr>``."""
    return f"type {type(value).__name__} with value {value!r}"


def require_instance(value: Any, cls: Type[T], name: str) -> T:
    if not isinstance(value, cls):
        raise ValidationError(
            message=f"{name} must be an instance of {cls.__name__}, was {describe(value)}",
            field=name,
        )
    return value


def require_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            message=f"{name} must be a string, was {describe(value)}",
            field=name,
        )
    return value


def is_integer(value: Any) -> bool:
    # bool is an int subclass but never a valid count
    return isinstance(value, int) and not isinstance(value, bool)


def require_page_size(
    page_size: Optional[int],
    minimum: int,
    maximum: int,
    default: int,
    name: str = "pageSize",
) -> int:
    """
    Resolves an optional page size.

    Returns ``default`` when ``page_size`` is None; otherwise the value must be
    an integer within ``[minimum, maximum]``.
    """
    if page_size is None:
        return default
    if not is_integer(page_size):
        raise ValidationError(
            message=f"if provided, {name} must be an integer, was {describe(page_size)}",
            field=name,
        )
    if page_size < minimum or page_size > maximum:
        raise ValidationError(
            message=f"if provided, {name} must be >= {minimum} and <= {maximum}, was {page_size}",
            field=name,
            context={"minimum": minimum, "maximum": maximum},
        )
    return page_size
