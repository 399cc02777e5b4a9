"""
Document store ports shared by the teaching services.

Intent:
    Keep services independent of the concrete database. A store hands out
    named collections offering insert/find/update/delete/count by equality
    filter, plus a `transaction()` block for multi-write operations.

Behavior:
    - Every stored document carries `_id`, an opaque UUID string assigned by
      the store. Filters may reference `_id` like any other top-level field.
    - `update_one` applies `$set` semantics: listed fields are overwritten,
      other fields are kept.
    - Unique keys (see `UNIQUE_KEYS`) are enforced by the store itself and
      surface as `DuplicateKeyError`; application pre-checks only exist to
      produce friendlier errors.

Permissions:
    Pure contracts; no I/O here.
"""
from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple
from uuid import UUID, uuid4


Document = Dict[str, Any]

# collection -> tuple of unique field groups
UNIQUE_KEYS: Dict[str, Tuple[Tuple[str, ...], ...]] = {
    "users": (("email",),),
    "teacher_requests": (("email",),),
    "enrollments": (("classId", "email"),),
    "submissions": (("assignmentId", "email"),),
    "payments": (("transactionId",),),
}


class StoreError(Exception):
    """Base class for document store failures."""


class StoreUnavailableError(StoreError):
    """Store cannot be reached or was used before `open()` / after `close()`."""


class DuplicateKeyError(StoreError):
    """Insert or update violated a unique key of the collection."""

    def __init__(self, collection: str, fields: Sequence[str] = ()) -> None:
        self.collection = collection
        self.fields = tuple(fields)
        super().__init__(f"duplicate key in {collection}: {', '.join(self.fields) or '?'}")


@dataclass(frozen=True)
class UpdateResult:
    matched_count: int
    modified_count: int


class Collection(Protocol):
    name: str

    def insert_one(self, doc: Mapping[str, Any]) -> str:
        ...

    def find_one(self, filter: Mapping[str, Any]) -> Optional[Document]:
        ...

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        sort: Optional[Tuple[str, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        ...

    def update_one(self, filter: Mapping[str, Any], set_fields: Mapping[str, Any]) -> UpdateResult:
        ...

    def delete_one(self, filter: Mapping[str, Any]) -> int:
        ...

    def estimated_count(self) -> int:
        ...


class DocumentSession(Protocol):
    """Collections bound to one unit of work (see `DocumentStore.transaction`)."""

    def collection(self, name: str) -> Collection:
        ...


class DocumentStore(DocumentSession, Protocol):
    def open(self) -> None:
        ...

    def close(self) -> None:
        ...

    def ping(self) -> bool:
        ...

    def transaction(self) -> AbstractContextManager[DocumentSession]:
        ...


def new_id() -> str:
    return str(uuid4())


def is_valid_id(value: object) -> bool:
    """Best-effort identifier check so malformed ids never reach a filter."""
    if not isinstance(value, str) or not value:
        return False
    try:
        UUID(value)
    except (ValueError, TypeError):
        return False
    return True


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def matches(doc: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """Equality match on top-level fields."""
    if not filter:
        return True
    return all(k in doc and doc[k] == v for k, v in filter.items())


def sort_key(field: str):
    # None first, then numbers, then everything else by string form
    def _key(doc: Mapping[str, Any]):
        value = doc.get(field)
        if value is None:
            return (0, 0, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (1, value, "")
        return (2, 0, str(value))

    return _key


__all__ = [
    "Document",
    "UNIQUE_KEYS",
    "StoreError",
    "StoreUnavailableError",
    "DuplicateKeyError",
    "UpdateResult",
    "Collection",
    "DocumentSession",
    "DocumentStore",
    "new_id",
    "is_valid_id",
    "now_iso",
    "matches",
    "sort_key",
]
