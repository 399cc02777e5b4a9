"""Unit tests for ClassesService (no FastAPI).

Focus:
    - Owner email comes from the caller, status starts pending
    - Policy checks run before any write
    - Status literals are validated; admins may move status in any direction
"""
from __future__ import annotations

import pytest

from backend.identity_access.domain import Identity
from backend.teaching.errors import AuthorizationError, NotFoundError, ValidationError
from backend.teaching.services.classes import ClassesService

from backend.tests.utils.identities import ADMIN, STUDENT, TEACHER
from backend.tests.utils.stores import open_memory_store

ALGEBRA = {"title": "Algebra", "price": 20, "description": "intro", "image": "http://x/img.png"}


@pytest.fixture
def svc() -> ClassesService:
    return ClassesService(open_memory_store())


def test_create_sets_owner_from_identity_and_pending(svc: ClassesService):
    doc = svc.create_class(TEACHER, {**ALGEBRA, "email": "evil@x.com", "status": "approved"})
    stored = svc.get_class(doc["_id"])
    assert stored["email"] == "t@x.com"
    assert stored["status"] == "pending"
    assert stored["price"] == 20


def test_create_requires_teacher_or_admin(svc: ClassesService):
    with pytest.raises(AuthorizationError):
        svc.create_class(STUDENT, ALGEBRA)
    assert svc.create_class(ADMIN, ALGEBRA)["email"] == "admin@x.com"


@pytest.mark.parametrize(
    "patch, detail",
    [
        ({"title": "  "}, "title_required"),
        ({"price": 0}, "invalid_price"),
        ({"price": -3}, "invalid_price"),
        ({"price": True}, "invalid_price"),
        ({"price": "abc"}, "invalid_price"),
        ({"description": None}, "description_required"),
        ({"image": 42}, "invalid_image"),
    ],
)
def test_create_validates_fields(svc: ClassesService, patch, detail):
    with pytest.raises(ValidationError) as exc:
        svc.create_class(TEACHER, {**ALGEBRA, **patch})
    assert exc.value.detail == detail


def test_update_only_owner_or_admin(svc: ClassesService):
    cid = svc.create_class(TEACHER, ALGEBRA)["_id"]
    with pytest.raises(AuthorizationError):
        svc.update_class(Identity(email="other@x.com", role="teacher"), cid, {"title": "Hacked"})
    assert svc.get_class(cid)["title"] == "Algebra"

    res = svc.update_class(TEACHER, cid, {"title": "Algebra II", "price": "25.5"})
    assert res.modified_count == 1
    stored = svc.get_class(cid)
    assert stored["title"] == "Algebra II"
    assert stored["price"] == 25.5

    svc.update_class(ADMIN, cid, {"description": "by admin"})
    assert svc.get_class(cid)["description"] == "by admin"


def test_update_ignores_status_and_email(svc: ClassesService):
    cid = svc.create_class(TEACHER, ALGEBRA)["_id"]
    with pytest.raises(ValidationError) as exc:
        svc.update_class(TEACHER, cid, {"status": "approved", "email": "x@x.com"})
    assert exc.value.detail == "no_fields"


def test_update_unknown_class_is_not_found(svc: ClassesService):
    with pytest.raises(NotFoundError):
        svc.update_class(TEACHER, "7b0f3f0e-2a41-4a53-9a0e-1f6d2d0f1c11", {"title": "x"})


def test_malformed_id_is_validation_error(svc: ClassesService):
    with pytest.raises(ValidationError) as exc:
        svc.get_class("not-an-id")
    assert exc.value.detail == "invalid_id"


def test_set_status_admin_only_and_any_direction(svc: ClassesService):
    cid = svc.create_class(TEACHER, ALGEBRA)["_id"]
    with pytest.raises(AuthorizationError):
        svc.set_status(TEACHER, cid, "approved")
    assert svc.get_class(cid)["status"] == "pending"

    svc.set_status(ADMIN, cid, "approved")
    assert svc.get_class(cid)["status"] == "approved"
    svc.set_status(ADMIN, cid, "pending")
    assert svc.get_class(cid)["status"] == "pending"
    svc.set_status(ADMIN, cid, "rejected")
    assert svc.get_class(cid)["status"] == "rejected"


def test_set_status_rejects_unknown_literal(svc: ClassesService):
    cid = svc.create_class(TEACHER, ALGEBRA)["_id"]
    with pytest.raises(ValidationError) as exc:
        svc.set_status(ADMIN, cid, "published")
    assert exc.value.detail == "invalid_status"
    assert svc.get_class(cid)["status"] == "pending"


def test_delete_owner_or_admin(svc: ClassesService):
    cid = svc.create_class(TEACHER, ALGEBRA)["_id"]
    with pytest.raises(AuthorizationError):
        svc.delete_class(STUDENT, cid)
    assert svc.delete_class(TEACHER, cid) == 1
    with pytest.raises(NotFoundError):
        svc.get_class(cid)


def test_list_filters_by_owner_and_status(svc: ClassesService):
    a = svc.create_class(TEACHER, ALGEBRA)["_id"]
    svc.create_class(Identity(email="u@x.com", role="teacher"), {**ALGEBRA, "title": "Biology"})
    svc.set_status(ADMIN, a, "approved")
    assert [c["_id"] for c in svc.list_classes(status="approved")] == [a]
    assert [c["title"] for c in svc.list_classes(email="u@x.com")] == ["Biology"]
    assert len(svc.list_classes()) == 2
