from __future__ import annotations

from typing import Any

from .errors import ValidationError


MAX_IDENTITY_LENGTH = 128
MAX_NAME_LENGTH = 255
MAX_NOTES_LENGTH = 1024


def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    """
    Validate + normalize a required text field.

    - None / non-string / whitespace-only -> ValidationError("<field> cannot be empty")
    - strings are stripped before the length check
    """
    if value is None or not isinstance(value, str):
        raise ValidationError(f"{field} cannot be empty", field=field)
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{field} cannot be empty", field=field)
    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters",
            field=field,
        )
    return cleaned


def optional_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    """Like require_text, but None/blank normalizes to ""."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", field=field)
    cleaned = value.strip()
    if max_length is not None and len(cleaned) > max_length:
        raise ValidationError(
            f"{field} must be at most {max_length} characters",
            field=field,
        )
    return cleaned


def normalize_identity(value: Any, field: str = "identity") -> str:
    """Identities are opaque; only surrounding whitespace is removed."""
    return require_text(value, field, max_length=MAX_IDENTITY_LENGTH)
