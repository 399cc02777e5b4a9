"""Enrollment guard: NotFound for missing class, Conflict on duplicates."""
from __future__ import annotations

import pytest

from backend.storage.documents import DuplicateKeyError
from backend.storage.memory import MemoryDocumentStore
from backend.teaching.errors import ConflictError, NotFoundError, ValidationError
from backend.teaching.services.classes import ClassesService
from backend.teaching.services.enrollments import EnrollmentsService

from backend.tests.utils.identities import ADMIN, STUDENT, TEACHER
from backend.tests.utils.stores import open_memory_store

MISSING_ID = "7b0f3f0e-2a41-4a53-9a0e-1f6d2d0f1c11"


@pytest.fixture
def store() -> MemoryDocumentStore:
    return open_memory_store()


@pytest.fixture
def class_id(store: MemoryDocumentStore) -> str:
    classes = ClassesService(store)
    cid = classes.create_class(
        TEACHER, {"title": "Algebra", "price": 20, "description": "intro", "image": "http://x/img.png"}
    )["_id"]
    classes.set_status(ADMIN, cid, "approved")
    return cid


def test_enroll_twice_conflicts_and_keeps_one(store: MemoryDocumentStore, class_id: str):
    svc = EnrollmentsService(store)
    first = svc.enroll(STUDENT, class_id)
    assert first["classId"] == class_id and first["email"] == "s@x.com"
    assert first["enrolledAt"]
    with pytest.raises(ConflictError) as exc:
        svc.enroll(STUDENT, class_id)
    assert exc.value.detail == "already_enrolled"
    assert len(store.collection("enrollments").find({"classId": class_id, "email": "s@x.com"})) == 1


def test_enroll_missing_class_is_not_found(store: MemoryDocumentStore):
    with pytest.raises(NotFoundError):
        EnrollmentsService(store).enroll(STUDENT, MISSING_ID)


def test_enroll_requires_email(store: MemoryDocumentStore, class_id: str):
    with pytest.raises(ValidationError) as exc:
        EnrollmentsService(store).enroll(None, class_id)
    assert exc.value.detail == "email_required"


def test_store_duplicate_maps_to_conflict(store: MemoryDocumentStore, class_id: str, monkeypatch):
    svc = EnrollmentsService(store)
    enrollments = store.collection("enrollments")

    class RacingCollection:
        """Simulates a concurrent insert that lands between check and insert."""

        name = "enrollments"

        def find_one(self, flt):
            return None

        def insert_one(self, doc):
            raise DuplicateKeyError("enrollments", ("classId", "email"))

    original = store.collection
    monkeypatch.setattr(store, "collection", lambda name: RacingCollection() if name == "enrollments" else original(name))
    with pytest.raises(ConflictError):
        svc.enroll(STUDENT, class_id)
    assert enrollments.estimated_count() == 0


def test_cancel_and_cancel_again(store: MemoryDocumentStore, class_id: str):
    svc = EnrollmentsService(store)
    svc.enroll(STUDENT, class_id)
    svc.cancel(STUDENT, class_id)
    assert not svc.is_enrolled(class_id, "s@x.com")
    with pytest.raises(NotFoundError):
        svc.cancel(STUDENT, class_id)


def test_list_for_caller_only(store: MemoryDocumentStore, class_id: str):
    svc = EnrollmentsService(store)
    svc.enroll(STUDENT, class_id)
    svc.enroll(TEACHER, class_id)
    mine = svc.list_for(STUDENT)
    assert [e["email"] for e in mine] == ["s@x.com"]
