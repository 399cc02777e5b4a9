"""
Error taxonomy for teaching services.

Each error carries a machine-readable `detail` code (stable, used by clients
and tests) and a human `message`. The web layer maps the classes to HTTP
status codes in one place.
"""
from __future__ import annotations


class EduManageError(Exception):
    kind = "error"

    def __init__(self, detail: str, message: str | None = None) -> None:
        self.detail = detail
        self.message = message or detail.replace("_", " ").capitalize()
        super().__init__(self.message)


class ValidationError(EduManageError):
    """Missing/malformed field or identifier; raised before any storage call."""

    kind = "bad_request"


class AuthorizationError(EduManageError):
    """Wrong role or not the resource owner; no mutation performed."""

    kind = "forbidden"


class NotFoundError(EduManageError):
    """Referenced entity is absent."""

    kind = "not_found"


class ConflictError(EduManageError):
    """Duplicate or state-incompatible request (e.g. second enrollment)."""

    kind = "conflict"


class UpstreamError(EduManageError):
    """Store or payment processor failure; not retried here."""

    kind = "upstream_error"


__all__ = [
    "EduManageError",
    "ValidationError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
    "UpstreamError",
]
