"""Class service layer: moderated class records (Clean Architecture boundary).

Why:
    A class is owned by the teacher who created it and moves through
    `pending / approved / rejected` under admin moderation. Keeping the
    policy checks and status rules here lets the web adapter stay thin and
    lets us unit-test the lifecycle without FastAPI.

Behavior:
    - Owner email always comes from the caller identity, never the payload.
    - New classes start `pending`.
    - Content updates and deletes require `can_modify`; status changes
      require `can_set_status`. Failed checks raise before any write.
    - Admins may set any of the three statuses at any time (no forward-only
      progression).
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from backend.identity_access.domain import Identity
from backend.identity_access.policy import can_modify, can_set_status, is_admin, is_teacher
from backend.storage.documents import DocumentSession, UpdateResult, now_iso
from backend.teaching.errors import AuthorizationError, NotFoundError, ValidationError

from .common import normalize_text, require_email, require_id

logger = logging.getLogger("edumanage.teaching.classes")

CLASS_STATUSES = ("pending", "approved", "rejected")
CONTENT_FIELDS = ("title", "price", "description", "image")


def _normalize_price(value: object) -> float | int:
    if value is None:
        raise ValidationError("price_required", "price is required")
    if isinstance(value, bool):
        raise ValidationError("invalid_price", "price must be a positive number")
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError as exc:
            raise ValidationError("invalid_price", "price must be a positive number") from exc
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise ValidationError("invalid_price", "price must be a positive number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _normalize_image(value: object, *, required: bool = True) -> Optional[str]:
    return normalize_text(value, field="image", max_len=2048, required=required)


def normalize_status(value: object) -> str:
    if not isinstance(value, str) or value not in CLASS_STATUSES:
        raise ValidationError("invalid_status", "Invalid status value")
    return value


@dataclass
class ClassesService:
    """Use cases for classes (framework-independent)."""

    store: DocumentSession

    @property
    def _classes(self):
        return self.store.collection("classes")

    def list_classes(self, *, email: str | None = None, status: str | None = None) -> List[dict]:
        flt: Dict[str, Any] = {}
        if email:
            flt["email"] = email
        if status:
            flt["status"] = normalize_status(status)
        return self._classes.find(flt, sort=("createdAt", -1))

    def get_class(self, class_id: str) -> dict:
        cid = require_id(class_id)
        doc = self._classes.find_one({"_id": cid})
        if not doc:
            raise NotFoundError("class_not_found", "Class not found")
        return doc

    def create_class(self, identity: Identity, payload: Mapping[str, Any]) -> dict:
        """Create a class owned by the caller.

        Permissions:
            Caller must be a teacher (admins are allowed as well).
        """
        if not (is_teacher(identity) or is_admin(identity)):
            raise AuthorizationError("teacher_role_required", "Only teachers can add classes")
        owner = require_email(identity)
        doc = {
            "title": normalize_text(payload.get("title"), field="title"),
            "price": _normalize_price(payload.get("price")),
            "description": normalize_text(payload.get("description"), field="description", max_len=5000),
            "image": _normalize_image(payload.get("image")),
            "name": normalize_text(payload.get("name"), field="name", required=False),
            "email": owner,
            "status": "pending",
            "createdAt": now_iso(),
        }
        doc["_id"] = self._classes.insert_one(doc)
        logger.info("class created id=%s status=pending", doc["_id"])
        return doc

    def update_class(self, identity: Identity, class_id: str, changes: Mapping[str, Any]) -> UpdateResult:
        """Update content fields of a class (owner or admin).

        Fields absent or null in `changes` are left untouched; `email` and
        `status` are never writable here.
        """
        cid = require_id(class_id)
        updates: Dict[str, Any] = {}
        for key in CONTENT_FIELDS:
            value = changes.get(key)
            if value is None:
                continue
            if key == "price":
                updates[key] = _normalize_price(value)
            elif key == "image":
                updates[key] = _normalize_image(value)
            elif key == "description":
                updates[key] = normalize_text(value, field=key, max_len=5000)
            else:
                updates[key] = normalize_text(value, field=key)
        if not updates:
            raise ValidationError("no_fields", "No updatable fields supplied")
        current = self.get_class(cid)
        if not can_modify(identity, current):
            raise AuthorizationError("not_owner", "Unauthorized")
        return self._classes.update_one({"_id": cid}, updates)

    def set_status(self, identity: Identity, class_id: str, status: object) -> UpdateResult:
        """Set moderation status (admin only). Any transition is allowed."""
        if not can_set_status(identity):
            raise AuthorizationError("admin_required", "Admins only")
        cid = require_id(class_id)
        new_status = normalize_status(status)
        current = self.get_class(cid)
        result = self._classes.update_one({"_id": cid}, {"status": new_status})
        logger.info("class status id=%s %s->%s", cid, current.get("status"), new_status)
        return result

    def delete_class(self, identity: Identity, class_id: str) -> int:
        cid = require_id(class_id)
        current = self.get_class(cid)
        if not can_modify(identity, current):
            raise AuthorizationError("not_owner", "Unauthorized")
        deleted = self._classes.delete_one({"_id": cid})
        logger.info("class deleted id=%s", cid)
        return deleted
