"""
Teacher request routes.

Notes:
    - `POST /api/teacher-requests` applies, or resubmits a rejected request.
    - `POST /api/teacher-requests/resubmit` only resubmits.
    - Listing, approve and reject are admin-only.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .security import current_identity, private_json, services

teacher_requests_router = APIRouter(tags=["Teacher requests"])


class TeacherApplication(BaseModel):
    name: Any = None
    experience: Any = None
    title: Any = None
    category: Any = None


@teacher_requests_router.post("/api/teacher-requests")
def apply_for_teacher(request: Request, payload: TeacherApplication):
    doc = services(request).teacher_requests.apply(current_identity(request), payload.model_dump())
    return private_json({"message": "Request submitted", "request": doc}, status_code=201)


@teacher_requests_router.post("/api/teacher-requests/resubmit")
def resubmit_teacher_request(request: Request, payload: TeacherApplication | None = None):
    fields = payload.model_dump() if payload is not None else None
    doc = services(request).teacher_requests.resubmit(current_identity(request), fields)
    return private_json({"message": "Request resubmitted", "request": doc})


@teacher_requests_router.get("/api/teacher-requests/me")
def my_teacher_request(request: Request):
    return private_json(services(request).teacher_requests.get_for(current_identity(request)))


@teacher_requests_router.get("/api/teacher-requests")
def list_teacher_requests(request: Request, status: str | None = None):
    items = services(request).teacher_requests.list_requests(current_identity(request), status=status)
    return private_json(items)


@teacher_requests_router.patch("/api/teacher-requests/{request_id}/approve")
def approve_teacher_request(request: Request, request_id: str):
    doc = services(request).teacher_requests.approve(current_identity(request), request_id)
    return private_json({"message": "Request approved", "request": doc})


@teacher_requests_router.patch("/api/teacher-requests/{request_id}/reject")
def reject_teacher_request(request: Request, request_id: str):
    doc = services(request).teacher_requests.reject(current_identity(request), request_id)
    return private_json({"message": "Request rejected", "request": doc})
