"""Feedback routes. Listing is public (homepage testimonials)."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request
from pydantic import BaseModel

from .security import current_identity, private_json, services

feedback_router = APIRouter(tags=["Feedback"])


class FeedbackCreate(BaseModel):
    classId: Any = None
    rating: Any = None
    description: Any = None
    name: Any = None


@feedback_router.post("/feedback")
def create_feedback(request: Request, payload: FeedbackCreate):
    doc = services(request).feedback.create(current_identity(request), payload.model_dump())
    return private_json({"message": "Feedback submitted", "id": doc["_id"]}, status_code=201)


@feedback_router.get("/feedback")
def list_feedback(
    request: Request,
    classId: str | None = None,
    limit: int | None = Query(default=None, ge=1, le=100),
):
    return private_json(services(request).feedback.list_feedback(class_id=classId, limit=limit))
