"""Assignments and submissions for a class.

Why:
    Teachers post assignments to their classes; enrolled students submit a
    link per assignment. Keeps access checks (owner/admin vs. enrolled) in
    one place and framework-free.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, List, Mapping

from backend.identity_access.domain import Identity
from backend.identity_access.policy import can_modify
from backend.storage.documents import DocumentStore, DuplicateKeyError, now_iso
from backend.teaching.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError

from .common import normalize_text, require_email, require_id

logger = logging.getLogger("edumanage.teaching.assignments")


def _parse_deadline(value: object) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("deadline_required", "deadline is required")
    if not isinstance(value, str):
        raise ValidationError("invalid_deadline", "deadline must be an ISO date/time")
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError("invalid_deadline", "deadline must be an ISO date/time") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).isoformat()


@dataclass
class AssignmentsService:
    store: DocumentStore

    def _load_class(self, class_id: str) -> dict:
        cid = require_id(class_id, detail="invalid_class_id", message="Invalid class ID")
        cls = self.store.collection("classes").find_one({"_id": cid})
        if not cls:
            raise NotFoundError("class_not_found", "Class not found")
        return cls

    def _is_enrolled(self, class_id: str, email: str | None) -> bool:
        if not email:
            return False
        return self.store.collection("enrollments").find_one({"classId": class_id, "email": email}) is not None

    def create(self, identity: Identity, class_id: str, payload: Mapping[str, Any]) -> dict:
        cls = self._load_class(class_id)
        if not can_modify(identity, cls):
            raise AuthorizationError("not_owner", "Unauthorized")
        doc = {
            "classId": cls["_id"],
            "title": normalize_text(payload.get("title"), field="title"),
            "description": normalize_text(payload.get("description"), field="description", max_len=5000),
            "deadline": _parse_deadline(payload.get("deadline")),
            "email": require_email(identity),
            "submissionCount": 0,
            "createdAt": now_iso(),
        }
        doc["_id"] = self.store.collection("assignments").insert_one(doc)
        logger.info("assignment created id=%s class=%s", doc["_id"], cls["_id"])
        return doc

    def list_for_class(self, identity: Identity, class_id: str) -> List[dict]:
        cls = self._load_class(class_id)
        if not (can_modify(identity, cls) or self._is_enrolled(cls["_id"], identity.email)):
            raise AuthorizationError("not_enrolled", "Not enrolled in this class")
        return self.store.collection("assignments").find({"classId": cls["_id"]}, sort=("deadline", 1))

    def submit(self, identity: Identity, assignment_id: str, payload: Mapping[str, Any]) -> dict:
        """Record the caller's submission and bump the assignment's counter.

        Raises ConflictError when the caller already submitted.
        """
        email = require_email(identity)
        aid = require_id(assignment_id, detail="invalid_assignment_id", message="Invalid assignment ID")
        url = normalize_text(payload.get("submissionUrl"), field="submissionUrl", max_len=2048)
        with self.store.transaction() as session:
            assignments = session.collection("assignments")
            assignment = assignments.find_one({"_id": aid})
            if not assignment:
                raise NotFoundError("assignment_not_found", "Assignment not found")
            class_id = assignment["classId"]
            if not session.collection("enrollments").find_one({"classId": class_id, "email": email}):
                raise AuthorizationError("not_enrolled", "Not enrolled in this class")
            submissions = session.collection("submissions")
            doc = {
                "assignmentId": aid,
                "classId": class_id,
                "email": email,
                "submissionUrl": url,
                "submittedAt": now_iso(),
            }
            try:
                doc["_id"] = submissions.insert_one(doc)
            except DuplicateKeyError as exc:
                raise ConflictError("already_submitted", "Assignment already submitted") from exc
            count = len(submissions.find({"assignmentId": aid}))
            assignments.update_one({"_id": aid}, {"submissionCount": count})
        logger.info("submission recorded assignment=%s", aid)
        return doc
