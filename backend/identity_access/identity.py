"""
Caller identity resolution (request -> Identity).

Why:
    The platform currently trusts two request headers as a stand-in for real
    authentication. Hiding that behind `IdentityResolver` keeps the access
    policy and lifecycle code unchanged when a verified scheme replaces it.

Security:
    `HeaderIdentityResolver` performs no credential verification. Production
    startup refuses it unless explicitly allowed (see web.config).
"""
from __future__ import annotations

from typing import Mapping, Protocol

from .domain import ANONYMOUS, Identity, normalize_email, normalize_role

EMAIL_HEADER = "x-user-email"
ROLE_HEADER = "x-user-role"


class IdentityResolver(Protocol):
    def resolve(self, headers: Mapping[str, str]) -> Identity:
        ...


class HeaderIdentityResolver:
    """Read `(email, role)` from `x-user-email` / `x-user-role`.

    Unknown roles resolve to `None` so they never satisfy a role check.
    """

    def __init__(self, email_header: str = EMAIL_HEADER, role_header: str = ROLE_HEADER) -> None:
        self.email_header = email_header.lower()
        self.role_header = role_header.lower()

    def resolve(self, headers: Mapping[str, str]) -> Identity:
        email = normalize_email(headers.get(self.email_header))
        role = normalize_role(headers.get(self.role_header))
        if email is None and role is None:
            return ANONYMOUS
        return Identity(email=email, role=role)
