"""Class feedback left by enrolled students; listing is public."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Mapping

from backend.identity_access.domain import Identity
from backend.storage.documents import DocumentStore, now_iso
from backend.teaching.errors import AuthorizationError, NotFoundError, ValidationError

from .common import normalize_text, require_email, require_id

logger = logging.getLogger("edumanage.teaching.feedback")


def _normalize_rating(value: object) -> int:
    if value is None:
        raise ValidationError("rating_required", "rating is required")
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError("invalid_rating", "rating must be an integer from 1 to 5")
    return value


@dataclass
class FeedbackService:
    store: DocumentStore

    def create(self, identity: Identity, payload: Mapping[str, Any]) -> dict:
        email = require_email(identity)
        cid = require_id(payload.get("classId"), detail="invalid_class_id", message="Invalid class ID")
        rating = _normalize_rating(payload.get("rating"))
        description = normalize_text(payload.get("description"), field="description", max_len=2000)
        if not self.store.collection("classes").find_one({"_id": cid}):
            raise NotFoundError("class_not_found", "Class not found")
        if not self.store.collection("enrollments").find_one({"classId": cid, "email": email}):
            raise AuthorizationError("not_enrolled", "Only enrolled students can leave feedback")
        user = self.store.collection("users").find_one({"email": email}) or {}
        doc = {
            "classId": cid,
            "email": email,
            "name": normalize_text(payload.get("name"), field="name", required=False) or user.get("name"),
            "photo": user.get("photo"),
            "rating": rating,
            "description": description,
            "createdAt": now_iso(),
        }
        doc["_id"] = self.store.collection("feedback").insert_one(doc)
        logger.info("feedback created id=%s class=%s", doc["_id"], cid)
        return doc

    def list_feedback(self, *, class_id: str | None = None, limit: int | None = None) -> List[dict]:
        flt: Dict[str, Any] = {}
        if class_id:
            flt["classId"] = require_id(class_id, detail="invalid_class_id", message="Invalid class ID")
        return self.store.collection("feedback").find(flt, sort=("createdAt", -1), limit=limit)
