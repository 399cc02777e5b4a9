"""
Shared route helpers: caller identity, service lookup, private JSON responses.

All API responses are user- or role-scoped, so they carry
`Cache-Control: private, no-store`.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from backend.identity_access.domain import ANONYMOUS, Identity
from backend.web.wiring import Services


def private_json(payload: Any, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        content=jsonable_encoder(payload),
        status_code=status_code,
        headers={"Cache-Control": "private, no-store"},
    )


def current_identity(request: Request) -> Identity:
    identity = getattr(request.state, "identity", None)
    return identity if isinstance(identity, Identity) else ANONYMOUS


def services(request: Request) -> Services:
    return request.app.state.services
