"""User directory use cases: idempotent sign-up, role lookup, admin role changes."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, List, Mapping, Optional, Tuple

from backend.identity_access.domain import Identity, normalize_email, normalize_role
from backend.identity_access.policy import is_admin
from backend.storage.documents import DocumentStore, DuplicateKeyError, now_iso
from backend.teaching.errors import AuthorizationError, NotFoundError, ValidationError

from .common import normalize_text

logger = logging.getLogger("edumanage.teaching.users")


def _require_email_value(value: object) -> str:
    email = normalize_email(value)
    if not email:
        raise ValidationError("email_required", "Email is required")
    if len(email) > 320 or "@" not in email:
        raise ValidationError("invalid_email", "Invalid email")
    return email


@dataclass
class UsersService:
    store: DocumentStore

    def create_user(self, payload: Mapping[str, Any]) -> Tuple[dict, bool]:
        """Create the user unless the email exists.

        Returns `(user, created)`. New users always start as `student`; the
        payload cannot pick a role.
        """
        email = _require_email_value(payload.get("email"))
        users = self.store.collection("users")
        existing = users.find_one({"email": email})
        if existing:
            return existing, False
        doc = {
            "email": email,
            "name": normalize_text(payload.get("name"), field="name", required=False),
            "photo": normalize_text(payload.get("photo"), field="photo", max_len=2048, required=False),
            "role": "student",
            "createdAt": now_iso(),
        }
        try:
            doc["_id"] = users.insert_one(doc)
        except DuplicateKeyError:
            # concurrent sign-up for the same email
            return users.find_one({"email": email}) or doc, False
        logger.info("user created id=%s", doc["_id"])
        return doc, True

    def get_role(self, email: object) -> str:
        addr = _require_email_value(email)
        user = self.store.collection("users").find_one({"email": addr})
        if not user:
            raise NotFoundError("user_not_found", "User not found")
        return user.get("role") or "student"

    def list_users(self, identity: Identity, *, search: Optional[str] = None) -> List[dict]:
        if not is_admin(identity):
            raise AuthorizationError("admin_required", "Admins only")
        users = self.store.collection("users").find({}, sort=("createdAt", -1))
        needle = (search or "").strip().lower()
        if not needle:
            return users
        return [
            u for u in users
            if needle in (u.get("email") or "").lower() or needle in (u.get("name") or "").lower()
        ]

    def set_role(self, identity: Identity, email: object, role: object) -> dict:
        if not is_admin(identity):
            raise AuthorizationError("admin_required", "Admins only")
        addr = _require_email_value(email)
        new_role = normalize_role(role)
        if new_role is None:
            raise ValidationError("invalid_role", "Role must be student, teacher or admin")
        users = self.store.collection("users")
        result = users.update_one({"email": addr}, {"role": new_role})
        if result.matched_count == 0:
            raise NotFoundError("user_not_found", "User not found")
        logger.info("user role changed role=%s", new_role)
        return {"email": addr, "role": new_role, "modified": result.modified_count}
