"""Operations endpoints: liveness, store health and public counters."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from .security import private_json, services

operations_router = APIRouter(tags=["Operations"])


@operations_router.get("/")
def root():
    return PlainTextResponse("EduManage server is running")


@operations_router.get("/health")
def health(request: Request):
    """
    Probe the document store.

    Returns 200 `{"status": "healthy"}` or 503 when the store is unreachable.
    """
    ok = services(request).store.ping()
    return private_json({"status": "healthy" if ok else "unhealthy"}, status_code=200 if ok else 503)


@operations_router.get("/api/stats")
def stats(request: Request):
    return private_json(services(request).stats.counts())
