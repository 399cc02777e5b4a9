"""Enrollment guard: one enrollment per (class, student).

The storage layer's unique key on `(classId, email)` is the authoritative
guarantee; the existence check below only yields a friendly error early.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional

from backend.identity_access.domain import Identity
from backend.storage.documents import DocumentSession, DuplicateKeyError, now_iso
from backend.teaching.errors import ConflictError, NotFoundError

from .common import require_email, require_id

logger = logging.getLogger("edumanage.teaching.enrollments")


def insert_enrollment(session: DocumentSession, class_id: str, email: str, *, payment_id: Optional[str] = None) -> dict:
    """Insert an enrollment record, mapping duplicates to `ConflictError`."""
    enrollments = session.collection("enrollments")
    if enrollments.find_one({"classId": class_id, "email": email}):
        raise ConflictError("already_enrolled", "Already enrolled in this class")
    doc = {"classId": class_id, "email": email, "enrolledAt": now_iso()}
    if payment_id:
        doc["paymentId"] = payment_id
    try:
        doc["_id"] = enrollments.insert_one(doc)
    except DuplicateKeyError as exc:
        raise ConflictError("already_enrolled", "Already enrolled in this class") from exc
    return doc


@dataclass
class EnrollmentsService:
    store: DocumentSession

    def enroll(self, identity: Identity, class_id: str) -> dict:
        email = require_email(identity)
        cid = require_id(class_id, detail="invalid_class_id", message="Invalid class ID")
        if not self.store.collection("classes").find_one({"_id": cid}):
            raise NotFoundError("class_not_found", "Class not found")
        doc = insert_enrollment(self.store, cid, email)
        logger.info("enrolled class=%s id=%s", cid, doc["_id"])
        return doc

    def cancel(self, identity: Identity, class_id: str) -> None:
        email = require_email(identity)
        cid = require_id(class_id, detail="invalid_class_id", message="Invalid class ID")
        deleted = self.store.collection("enrollments").delete_one({"classId": cid, "email": email})
        if deleted == 0:
            raise NotFoundError("enrollment_not_found", "Enrollment not found or already cancelled")
        logger.info("enrollment cancelled class=%s", cid)

    def list_for(self, identity: Identity) -> List[dict]:
        email = require_email(identity)
        return self.store.collection("enrollments").find({"email": email}, sort=("enrolledAt", -1))

    def is_enrolled(self, class_id: str, email: str | None) -> bool:
        if not email:
            return False
        return self.store.collection("enrollments").find_one({"classId": class_id, "email": email}) is not None
