"""Shared guards and normalisers for the teaching services."""
from __future__ import annotations

from typing import Optional

from backend.identity_access.domain import Identity
from backend.storage.documents import is_valid_id

from backend.teaching.errors import ValidationError


def require_email(identity: Identity | None) -> str:
    if not identity or not identity.email:
        raise ValidationError("email_required", "User email missing")
    return identity.email


def require_id(value: object, *, detail: str = "invalid_id", message: str = "Invalid ID") -> str:
    if not is_valid_id(value):
        raise ValidationError(detail, message)
    return str(value)


def normalize_text(value: object, *, field: str, max_len: int = 200, required: bool = True) -> Optional[str]:
    if value is None:
        if required:
            raise ValidationError(f"{field}_required", f"{field} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"invalid_{field}", f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        if required:
            raise ValidationError(f"{field}_required", f"{field} is required")
        return None
    if len(trimmed) > max_len:
        raise ValidationError(f"invalid_{field}", f"{field} is too long")
    return trimmed
