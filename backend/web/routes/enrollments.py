"""Enrollment routes (free enroll, cancel, caller's enrollments)."""
from __future__ import annotations

from fastapi import APIRouter, Request

from .security import current_identity, private_json, services

enrollments_router = APIRouter(tags=["Enrollments"])


@enrollments_router.post("/enroll/{class_id}")
def enroll(request: Request, class_id: str):
    doc = services(request).enrollments.enroll(current_identity(request), class_id)
    return private_json({"message": "Enrolled successfully", "enrollmentId": doc["_id"]}, status_code=201)


@enrollments_router.delete("/enroll/{class_id}")
def cancel_enrollment(request: Request, class_id: str):
    services(request).enrollments.cancel(current_identity(request), class_id)
    return private_json({"message": "Enrollment cancelled"})


@enrollments_router.get("/enrollments")
def my_enrollments(request: Request):
    return private_json(services(request).enrollments.list_for(current_identity(request)))
