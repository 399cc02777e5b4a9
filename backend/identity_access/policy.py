"""Access policy: pure predicates over (identity, resource)."""
from __future__ import annotations

from typing import Any, Mapping

from .domain import Identity

OWNER_FIELD = "email"


def is_admin(identity: Identity | None) -> bool:
    return bool(identity and identity.role == "admin")


def is_teacher(identity: Identity | None) -> bool:
    return bool(identity and identity.role == "teacher")


def owner_of(resource: Mapping[str, Any] | None) -> str | None:
    if not resource:
        return None
    owner = resource.get(OWNER_FIELD)
    return owner if isinstance(owner, str) and owner else None


def can_modify(identity: Identity | None, resource: Mapping[str, Any] | None) -> bool:
    """Admins may modify anything; everyone else only what they own."""
    if is_admin(identity):
        return True
    if not identity or not identity.email:
        return False
    return identity.email == owner_of(resource)


def can_set_status(identity: Identity | None) -> bool:
    return is_admin(identity)


__all__ = ["is_admin", "is_teacher", "owner_of", "can_modify", "can_set_status"]
