"""
Class routes: list/fetch, create, content update, moderation status, delete.

Why:
    Thin adapter over `ClassesService`. Owner email is always taken from the
    caller identity; any `email` in the body is ignored.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .security import current_identity, private_json, services

classes_router = APIRouter(tags=["Classes"])


class ClassCreate(BaseModel):
    # Accept loose types and validate in the service to return uniform 400s
    title: Any = None
    price: Any = None
    description: Any = None
    image: Any = None
    name: Any = None


class ClassUpdate(BaseModel):
    title: Any = None
    price: Any = None
    description: Any = None
    image: Any = None


class StatusUpdate(BaseModel):
    status: Any = None


@classes_router.get("/classes")
def list_classes(request: Request, email: str | None = None, status: str | None = None):
    return private_json(services(request).classes.list_classes(email=email, status=status))


@classes_router.get("/classes/{class_id}")
def get_class(request: Request, class_id: str):
    return private_json(services(request).classes.get_class(class_id))


@classes_router.post("/classes")
def create_class(request: Request, payload: ClassCreate):
    """Create a class owned by the caller (teacher or admin); starts `pending`."""
    doc = services(request).classes.create_class(current_identity(request), payload.model_dump())
    return private_json({"message": "Class added successfully", "id": doc["_id"]}, status_code=201)


@classes_router.put("/classes/{class_id}")
def update_class(request: Request, class_id: str, payload: ClassUpdate):
    result = services(request).classes.update_class(current_identity(request), class_id, payload.model_dump())
    return private_json({"message": "Class updated successfully", "modifiedCount": result.modified_count})


@classes_router.patch("/classes/{class_id}/status")
def set_class_status(request: Request, class_id: str, payload: StatusUpdate):
    result = services(request).classes.set_status(current_identity(request), class_id, payload.status)
    return private_json({"message": "Status updated successfully", "modifiedCount": result.modified_count})


@classes_router.delete("/classes/{class_id}")
def delete_class(request: Request, class_id: str):
    deleted = services(request).classes.delete_class(current_identity(request), class_id)
    return private_json({"message": "Class deleted successfully", "deletedCount": deleted})
