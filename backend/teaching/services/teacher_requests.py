"""Teacher request workflow (apply, resubmit, approve, reject).

Why:
    Becoming a teacher is moderated. A request moves
    `pending -> approved | rejected`, and a rejected request may be
    resubmitted back to `pending`. Approval also promotes the user's role,
    so both writes must land together or not at all.

Behavior:
    - One request per email (unique key in the store). Re-applying reuses
      the rejected record instead of creating a second one.
    - Status transitions are conditional updates (`status == expected`), so
      two admins racing on the same request cannot both win.
    - `approve` runs inside `store.transaction()`; when the user record is
      missing it raises NotFound and the request stays `pending`. Only a
      `student` role is promoted.

Permissions:
    apply/resubmit/get_for act on the caller's own request. list/approve/
    reject are admin only.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Mapping, Optional

from backend.identity_access.domain import Identity
from backend.identity_access.policy import is_admin
from backend.storage.documents import DocumentSession, DocumentStore, DuplicateKeyError, now_iso
from backend.teaching.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError

from .common import normalize_text, require_email, require_id

logger = logging.getLogger("edumanage.teaching.teacher_requests")

EXPERIENCE_LEVELS = ("beginner", "mid-level", "experienced")
REQUEST_STATUSES = ("pending", "approved", "rejected")


def _normalize_application(payload: Mapping[str, Any]) -> Dict[str, str]:
    experience = payload.get("experience")
    if experience is None or (isinstance(experience, str) and not experience.strip()):
        raise ValidationError("experience_required", "experience is required")
    if not isinstance(experience, str) or experience.strip() not in EXPERIENCE_LEVELS:
        raise ValidationError("invalid_experience", "experience must be beginner, mid-level or experienced")
    return {
        "name": normalize_text(payload.get("name"), field="name"),
        "experience": experience.strip(),
        "title": normalize_text(payload.get("title"), field="title"),
        "category": normalize_text(payload.get("category"), field="category"),
    }


def _require_admin(identity: Identity) -> None:
    if not is_admin(identity):
        raise AuthorizationError("admin_required", "Admins only")


@dataclass
class TeacherRequestsService:
    store: DocumentStore

    def _current_role(self, identity: Identity, email: str) -> Optional[str]:
        if identity.role == "teacher":
            return "teacher"
        user = self.store.collection("users").find_one({"email": email})
        return user.get("role") if user else identity.role

    def apply(self, identity: Identity, payload: Mapping[str, Any]) -> dict:
        """Create a pending request, or resubmit the caller's rejected one.

        Returns the stored request. Raises ConflictError when the caller is
        already a teacher or admin, or already has a pending/approved request.
        """
        email = require_email(identity)
        role = self._current_role(identity, email)
        if role == "teacher":
            raise ConflictError("already_teacher", "You are already a teacher")
        if role == "admin":
            raise ConflictError("already_admin", "Admins cannot apply to teach")
        fields = _normalize_application(payload)
        requests = self.store.collection("teacher_requests")
        existing = requests.find_one({"email": email})
        if existing:
            status = existing.get("status")
            if status == "pending":
                raise ConflictError("request_pending", "Request already pending")
            if status == "approved":
                raise ConflictError("request_approved", "Request already approved")
            return self._reopen(existing, fields)
        doc = {**fields, "email": email, "status": "pending", "requestedAt": now_iso()}
        try:
            doc["_id"] = requests.insert_one(doc)
        except DuplicateKeyError as exc:
            raise ConflictError("request_pending", "Request already pending") from exc
        logger.info("teacher request created id=%s", doc["_id"])
        return doc

    def resubmit(self, identity: Identity, payload: Mapping[str, Any] | None = None) -> dict:
        """Move the caller's rejected request back to `pending`.

        Field values in `payload` replace the stored ones when given.
        """
        email = require_email(identity)
        existing = self.store.collection("teacher_requests").find_one({"email": email})
        if not existing:
            raise NotFoundError("request_not_found", "No teacher request found")
        if existing.get("status") != "rejected":
            raise ConflictError("request_not_rejected", "Only rejected requests can be resubmitted")
        fields: Dict[str, Any] = {}
        if payload:
            merged = {k: existing.get(k) for k in ("name", "experience", "title", "category")}
            merged.update({k: v for k, v in payload.items() if v is not None})
            fields = _normalize_application(merged)
        return self._reopen(existing, fields)

    def _reopen(self, existing: dict, fields: Mapping[str, Any]) -> dict:
        changes = {**fields, "status": "pending", "requestedAt": now_iso(), "approvedAt": None, "rejectedAt": None}
        result = self.store.collection("teacher_requests").update_one(
            {"_id": existing["_id"], "status": "rejected"}, changes
        )
        if result.matched_count == 0:
            raise ConflictError("request_not_rejected", "Only rejected requests can be resubmitted")
        logger.info("teacher request resubmitted id=%s", existing["_id"])
        return {**existing, **changes}

    def get_for(self, identity: Identity) -> dict:
        email = require_email(identity)
        doc = self.store.collection("teacher_requests").find_one({"email": email})
        if not doc:
            raise NotFoundError("request_not_found", "No teacher request found")
        return doc

    def list_requests(self, identity: Identity, *, status: str | None = None) -> List[dict]:
        _require_admin(identity)
        flt: Dict[str, Any] = {}
        if status:
            if status not in REQUEST_STATUSES:
                raise ValidationError("invalid_status", "Invalid status value")
            flt["status"] = status
        return self.store.collection("teacher_requests").find(flt, sort=("requestedAt", -1))

    def approve(self, identity: Identity, request_id: str) -> dict:
        """Approve a pending request and promote its user to `teacher`.

        Both writes run in one store transaction. A missing user aborts the
        transaction with NotFoundError, leaving the request pending.
        """
        _require_admin(identity)
        rid = require_id(request_id)
        with self.store.transaction() as session:
            request = self._load_pending(session, rid)
            users = session.collection("users")
            if not users.find_one({"email": request["email"]}):
                raise NotFoundError("user_not_found", "User not found")
            stamp = now_iso()
            self._transition(session, rid, "approved", {"approvedAt": stamp})
            # only students are promoted; an admin keeps the admin role
            users.update_one({"email": request["email"], "role": "student"}, {"role": "teacher"})
        logger.info("teacher request approved id=%s", rid)
        return {**request, "status": "approved", "approvedAt": stamp}

    def reject(self, identity: Identity, request_id: str) -> dict:
        _require_admin(identity)
        rid = require_id(request_id)
        request = self._load_pending(self.store, rid)
        stamp = now_iso()
        self._transition(self.store, rid, "rejected", {"rejectedAt": stamp})
        logger.info("teacher request rejected id=%s", rid)
        return {**request, "status": "rejected", "rejectedAt": stamp}

    @staticmethod
    def _load_pending(session: DocumentSession, rid: str) -> dict:
        request = session.collection("teacher_requests").find_one({"_id": rid})
        if not request:
            raise NotFoundError("request_not_found", "Teacher request not found")
        if request.get("status") != "pending":
            raise ConflictError("request_not_pending", "Request is not pending")
        return request

    @staticmethod
    def _transition(session: DocumentSession, rid: str, status: str, stamps: Mapping[str, Any]) -> None:
        result = session.collection("teacher_requests").update_one(
            {"_id": rid, "status": "pending"}, {"status": status, **stamps}
        )
        if result.matched_count == 0:
            raise ConflictError("request_not_pending", "Request is not pending")
