"""
In-memory document store for tests and offline development.

Why:
    Mirrors the Postgres store's contract (unique keys, `$set` updates,
    transactions) so API and service tests run without a database.

Behavior:
    - A single re-entrant lock guards all collections; every operation is
      atomic with respect to other threads.
    - `transaction()` holds the lock for the whole block and restores a deep
      snapshot if the block raises.
    - Documents are deep-copied on the way in and out so callers never alias
      stored state.
"""
from __future__ import annotations

from contextlib import contextmanager
import copy
import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .documents import (
    UNIQUE_KEYS,
    Document,
    DuplicateKeyError,
    StoreUnavailableError,
    UpdateResult,
    matches,
    new_id,
    sort_key,
)


class MemoryCollection:
    def __init__(self, store: "MemoryDocumentStore", name: str) -> None:
        self._store = store
        self.name = name

    @property
    def _docs(self) -> Dict[str, Document]:
        return self._store._data.setdefault(self.name, {})

    def _check_unique(self, candidate: Mapping[str, Any], *, skip_id: str | None = None) -> None:
        for fields in UNIQUE_KEYS.get(self.name, ()):
            if any(candidate.get(f) is None for f in fields):
                continue
            for doc_id, doc in self._docs.items():
                if doc_id == skip_id:
                    continue
                if all(doc.get(f) == candidate.get(f) for f in fields):
                    raise DuplicateKeyError(self.name, fields)

    def insert_one(self, doc: Mapping[str, Any]) -> str:
        with self._store._lock:
            record = copy.deepcopy(dict(doc))
            doc_id = str(record.get("_id") or new_id())
            record["_id"] = doc_id
            if doc_id in self._docs:
                raise DuplicateKeyError(self.name, ("_id",))
            self._check_unique(record)
            self._docs[doc_id] = record
            return doc_id

    def find_one(self, filter: Mapping[str, Any]) -> Optional[Document]:
        with self._store._lock:
            for doc in self._docs.values():
                if matches(doc, filter):
                    return copy.deepcopy(doc)
            return None

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        sort: Optional[Tuple[str, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        with self._store._lock:
            items = [copy.deepcopy(d) for d in self._docs.values() if matches(d, filter)]
        if sort:
            field, direction = sort
            items.sort(key=sort_key(field), reverse=direction < 0)
        if limit is not None:
            items = items[: max(0, int(limit))]
        return items

    def update_one(self, filter: Mapping[str, Any], set_fields: Mapping[str, Any]) -> UpdateResult:
        if "_id" in set_fields:
            raise ValueError("immutable_id")
        with self._store._lock:
            for doc_id, doc in self._docs.items():
                if not matches(doc, filter):
                    continue
                if all(k in doc and doc[k] == v for k, v in set_fields.items()):
                    return UpdateResult(matched_count=1, modified_count=0)
                updated = {**doc, **copy.deepcopy(dict(set_fields))}
                self._check_unique(updated, skip_id=doc_id)
                self._docs[doc_id] = updated
                return UpdateResult(matched_count=1, modified_count=1)
            return UpdateResult(matched_count=0, modified_count=0)

    def delete_one(self, filter: Mapping[str, Any]) -> int:
        with self._store._lock:
            for doc_id, doc in list(self._docs.items()):
                if matches(doc, filter):
                    del self._docs[doc_id]
                    return 1
            return 0

    def estimated_count(self) -> int:
        with self._store._lock:
            return len(self._docs)


class MemoryDocumentStore:
    """Process-local store. Collections and transactions require `open()` first."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Document]] = {}
        self._lock = threading.RLock()
        self.opened = False

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.opened = False

    def ping(self) -> bool:
        return self.opened

    def _require_open(self) -> None:
        if not self.opened:
            raise StoreUnavailableError("memory store is not open")

    def collection(self, name: str) -> MemoryCollection:
        self._require_open()
        return MemoryCollection(self, name)

    @contextmanager
    def transaction(self) -> Iterator["MemoryDocumentStore"]:
        self._require_open()
        with self._lock:
            snapshot = copy.deepcopy(self._data)
            try:
                yield self
            except BaseException:
                self._data = snapshot
                raise
