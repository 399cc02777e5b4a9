"""Users: idempotent create, role lookup, admin list/search and role change."""
from __future__ import annotations

import pytest

from backend.teaching.errors import AuthorizationError, NotFoundError, ValidationError
from backend.teaching.services.users import UsersService

from backend.tests.utils.identities import ADMIN, STUDENT
from backend.tests.utils.stores import open_memory_store


@pytest.fixture
def svc() -> UsersService:
    return UsersService(open_memory_store())


def test_create_is_idempotent_and_defaults_to_student(svc: UsersService):
    user, created = svc.create_user({"email": "s@x.com", "name": "Sam", "role": "admin"})
    assert created
    assert user["role"] == "student"
    again, created_again = svc.create_user({"email": "s@x.com", "name": "Other"})
    assert not created_again
    assert again["name"] == "Sam"
    assert svc.store.collection("users").estimated_count() == 1


def test_create_requires_email(svc: UsersService):
    with pytest.raises(ValidationError):
        svc.create_user({"name": "No mail"})
    with pytest.raises(ValidationError) as exc:
        svc.create_user({"email": "not-an-email"})
    assert exc.value.detail == "invalid_email"


def test_get_role(svc: UsersService):
    svc.create_user({"email": "s@x.com"})
    assert svc.get_role("s@x.com") == "student"
    with pytest.raises(NotFoundError):
        svc.get_role("ghost@x.com")
    with pytest.raises(ValidationError):
        svc.get_role(None)


def test_list_users_admin_only_and_search(svc: UsersService):
    svc.create_user({"email": "sam@x.com", "name": "Sam Smith"})
    svc.create_user({"email": "kim@y.org", "name": "Kim"})
    with pytest.raises(AuthorizationError):
        svc.list_users(STUDENT)
    assert len(svc.list_users(ADMIN)) == 2
    assert [u["email"] for u in svc.list_users(ADMIN, search="SMITH")] == ["sam@x.com"]
    assert [u["email"] for u in svc.list_users(ADMIN, search="y.org")] == ["kim@y.org"]


def test_set_role(svc: UsersService):
    svc.create_user({"email": "s@x.com"})
    with pytest.raises(AuthorizationError):
        svc.set_role(STUDENT, "s@x.com", "admin")
    with pytest.raises(ValidationError):
        svc.set_role(ADMIN, "s@x.com", "root")
    with pytest.raises(NotFoundError):
        svc.set_role(ADMIN, "ghost@x.com", "teacher")
    assert svc.set_role(ADMIN, "s@x.com", "teacher")["role"] == "teacher"
    assert svc.get_role("s@x.com") == "teacher"
