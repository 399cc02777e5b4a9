"""
Identity domain constants and the resolved caller identity.

Why:
- Centralize allowed roles to avoid drift between services and web layer.
- Policy and lifecycle code depend only on `(email, role)`, never on how the
  identity was obtained.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({"student", "teacher", "admin"})


@dataclass(frozen=True)
class Identity:
    email: Optional[str] = None
    role: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.email)


ANONYMOUS = Identity()


def normalize_role(value: object) -> Optional[str]:
    if not isinstance(value, str):
        return None
    role = value.strip().lower()
    return role if role in ALLOWED_ROLES else None


def normalize_email(value: object) -> Optional[str]:
    if not isinstance(value, str):
        return None
    email = value.strip()
    return email or None


__all__ = ["ALLOWED_ROLES", "Identity", "ANONYMOUS", "normalize_role", "normalize_email"]
