"""
User directory routes.

Notes:
    - `POST /api/users` is idempotent: an existing email answers 200 with
      "User already exists" and changes nothing.
    - Listing and role changes are admin-only.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from .security import current_identity, private_json, services

users_router = APIRouter(tags=["Users"])


class UserCreate(BaseModel):
    email: Any = None
    name: Any = None
    photo: Any = None


class RoleUpdate(BaseModel):
    role: Any = None


@users_router.post("/api/users")
def create_user(request: Request, payload: UserCreate):
    user, created = services(request).users.create_user(payload.model_dump())
    if not created:
        return private_json({"message": "User already exists", "insertedId": None})
    return private_json({"message": "User created", "insertedId": user["_id"]}, status_code=201)


@users_router.get("/api/users/role")
def get_user_role(request: Request, email: str | None = None):
    role = services(request).users.get_role(email)
    return private_json({"role": role})


@users_router.get("/api/users")
def list_users(request: Request, search: str | None = None):
    """List users (admin only), optionally filtered by a name/email substring."""
    items = services(request).users.list_users(current_identity(request), search=search)
    return private_json(items)


@users_router.patch("/api/users/{email}/role")
def set_user_role(request: Request, email: str, payload: RoleUpdate):
    result = services(request).users.set_role(current_identity(request), email, payload.role)
    return private_json({"message": "Role updated", **result})
