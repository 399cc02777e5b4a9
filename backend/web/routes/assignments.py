"""Assignment and submission routes."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .security import current_identity, private_json, services

assignments_router = APIRouter(tags=["Assignments"])


class AssignmentCreate(BaseModel):
    title: Any = None
    description: Any = None
    deadline: Any = None


class SubmissionCreate(BaseModel):
    submissionUrl: Any = None


@assignments_router.post("/classes/{class_id}/assignments")
def create_assignment(request: Request, class_id: str, payload: AssignmentCreate):
    doc = services(request).assignments.create(current_identity(request), class_id, payload.model_dump())
    return private_json({"message": "Assignment created", "id": doc["_id"]}, status_code=201)


@assignments_router.get("/classes/{class_id}/assignments")
def list_assignments(request: Request, class_id: str):
    return private_json(services(request).assignments.list_for_class(current_identity(request), class_id))


@assignments_router.post("/assignments/{assignment_id}/submissions")
def submit_assignment(request: Request, assignment_id: str, payload: SubmissionCreate):
    doc = services(request).assignments.submit(current_identity(request), assignment_id, payload.model_dump())
    return private_json({"message": "Submission recorded", "id": doc["_id"]}, status_code=201)
