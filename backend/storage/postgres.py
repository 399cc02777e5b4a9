"""
Postgres-backed document store (JSONB) on a shared psycopg connection pool.

Why:
    The platform models its records as schemaless documents. Storing them as
    JSONB rows keeps that shape while Postgres supplies what a document
    database would: unique indexes for the invariants that must hold under
    concurrency (one enrollment per class and student, one teacher request
    per email, ...) and real transactions for the teacher approval.

Design:
    - One table, `(collection, id, doc)`. `_id` lives in the `id` column and is
      merged into documents on read.
    - Equality filters translate to `doc @> filter` (GIN-indexed); `_id`
      filters hit the primary key.
    - The pool is the process-wide resource: `open()` before serving, `close()`
      on shutdown. Calls outside `transaction()` borrow a connection per
      operation; `transaction()` pins one connection for the whole block.

Security:
    Never log documents or DSNs; log exception class names only.
"""
from __future__ import annotations

from contextlib import contextmanager
import logging
import re
from typing import Any, Iterator, List, Mapping, Optional, Tuple
from uuid import UUID

import psycopg
from psycopg import sql
from psycopg.errors import UniqueViolation
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool, PoolTimeout

from .documents import (
    UNIQUE_KEYS,
    Document,
    DuplicateKeyError,
    StoreError,
    StoreUnavailableError,
    UpdateResult,
    is_valid_id,
    new_id,
)

_log = logging.getLogger("edumanage.storage")

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


def _check_ident(value: str) -> str:
    if not _IDENT_RE.match(value or ""):
        raise ValueError(f"invalid identifier: {value!r}")
    return value


def schema_statements(table: str) -> List[sql.Composed]:
    """DDL for the documents table and its unique/GIN indexes (idempotent)."""
    tbl = sql.Identifier(_check_ident(table))
    stmts = [
        sql.SQL(
            """
            create table if not exists {tbl} (
                collection text not null,
                id uuid not null,
                doc jsonb not null,
                created_at timestamptz not null default now(),
                primary key (collection, id)
            )
            """
        ).format(tbl=tbl),
        sql.SQL("create index if not exists {idx} on {tbl} using gin (doc jsonb_path_ops)").format(
            idx=sql.Identifier(f"{table}_doc_gin"), tbl=tbl
        ),
    ]
    for collection, groups in UNIQUE_KEYS.items():
        for fields in groups:
            _check_ident(collection)
            for f in fields:
                _check_ident(f)
            name = f"{table}_{collection}_{'_'.join(fields)}_uq".lower()[:63]
            exprs = sql.SQL(", ").join(sql.SQL("(doc ->> {})").format(sql.Literal(f)) for f in fields)
            stmts.append(
                sql.SQL("create unique index if not exists {idx} on {tbl} ({exprs}) where collection = {c}").format(
                    idx=sql.Identifier(name), tbl=tbl, exprs=exprs, c=sql.Literal(collection)
                )
            )
    return stmts


def _where(filter: Mapping[str, Any] | None) -> Tuple[sql.Composable, list]:
    """Build the filter clause (after `collection = %s`) and its params.

    Returns a clause that never matches when `_id` is malformed so callers get
    "not found" rather than a cast error.
    """
    flt = dict(filter or {})
    parts: list[sql.Composable] = []
    params: list = []
    if "_id" in flt:
        raw = flt.pop("_id")
        if not is_valid_id(raw):
            return sql.SQL(" and false"), []
        parts.append(sql.SQL(" and id = %s"))
        params.append(UUID(raw))
    if flt:
        parts.append(sql.SQL(" and doc @> %s"))
        params.append(Jsonb(flt))
    return sql.Composed(parts), params


def _row_to_doc(row) -> Document:
    doc = dict(row[1] or {})
    doc["_id"] = str(row[0])
    return doc


class PostgresCollection:
    def __init__(self, store: "PostgresDocumentStore", name: str, conn: psycopg.Connection | None = None) -> None:
        self._store = store
        self._bound = conn
        self.name = _check_ident(name)

    @contextmanager
    def _conn(self) -> Iterator[psycopg.Connection]:
        if self._bound is not None:
            yield self._bound
            return
        with self._store._connection() as conn:
            yield conn

    @contextmanager
    def _errors(self, fields: Tuple[str, ...] = ()) -> Iterator[None]:
        try:
            yield
        except UniqueViolation as exc:
            raise DuplicateKeyError(self.name, fields or self._unique_fields_of(exc)) from exc
        except psycopg.OperationalError as exc:
            _log.warning("store unavailable: collection=%s error=%s", self.name, type(exc).__name__)
            raise StoreUnavailableError(type(exc).__name__) from exc
        except psycopg.Error as exc:
            _log.warning("store error: collection=%s error=%s", self.name, type(exc).__name__)
            raise StoreError(type(exc).__name__) from exc

    def _unique_fields_of(self, exc: UniqueViolation) -> Tuple[str, ...]:
        constraint = getattr(getattr(exc, "diag", None), "constraint_name", None) or ""
        for fields in UNIQUE_KEYS.get(self.name, ()):
            if "_".join(fields).lower() in constraint:
                return fields
        return ()

    @property
    def _tbl(self) -> sql.Identifier:
        return sql.Identifier(self._store.table)

    def insert_one(self, doc: Mapping[str, Any]) -> str:
        body = dict(doc)
        doc_id = str(body.pop("_id", None) or new_id())
        if not is_valid_id(doc_id):
            raise ValueError("invalid_id")
        q = sql.SQL("insert into {tbl} (collection, id, doc) values (%s, %s, %s)").format(tbl=self._tbl)
        with self._errors(), self._conn() as conn:
            with conn.transaction():
                conn.execute(q, (self.name, UUID(doc_id), Jsonb(body)))
        return doc_id

    def find_one(self, filter: Mapping[str, Any]) -> Optional[Document]:
        items = self.find(filter, limit=1)
        return items[0] if items else None

    def find(
        self,
        filter: Mapping[str, Any] | None = None,
        *,
        sort: Optional[Tuple[str, int]] = None,
        limit: Optional[int] = None,
    ) -> List[Document]:
        clause, params = _where(filter)
        q = sql.SQL("select id, doc from {tbl} where collection = %s").format(tbl=self._tbl) + clause
        args: list = [self.name, *params]
        if sort:
            field, direction = sort
            order = sql.SQL(" desc") if direction < 0 else sql.SQL(" asc")
            q += sql.SQL(" order by doc -> %s::text") + order + sql.SQL(", created_at, id")
            args.append(field)
        else:
            q += sql.SQL(" order by created_at, id")
        if limit is not None:
            q += sql.SQL(" limit %s")
            args.append(max(0, int(limit)))
        with self._errors(), self._conn() as conn:
            rows = conn.execute(q, args).fetchall()
        return [_row_to_doc(r) for r in rows]

    def update_one(self, filter: Mapping[str, Any], set_fields: Mapping[str, Any]) -> UpdateResult:
        if "_id" in set_fields:
            raise ValueError("immutable_id")
        clause, params = _where(filter)
        select = (
            sql.SQL("select id, doc from {tbl} where collection = %s").format(tbl=self._tbl)
            + clause
            + sql.SQL(" limit 1 for update")
        )
        update = sql.SQL("update {tbl} set doc = doc || %s where collection = %s and id = %s").format(tbl=self._tbl)
        with self._errors(), self._conn() as conn:
            with conn.transaction():
                row = conn.execute(select, [self.name, *params]).fetchone()
                if row is None:
                    return UpdateResult(matched_count=0, modified_count=0)
                current = row[1] or {}
                if all(k in current and current[k] == v for k, v in set_fields.items()):
                    return UpdateResult(matched_count=1, modified_count=0)
                conn.execute(update, (Jsonb(dict(set_fields)), self.name, row[0]))
        return UpdateResult(matched_count=1, modified_count=1)

    def delete_one(self, filter: Mapping[str, Any]) -> int:
        clause, params = _where(filter)
        q = (
            sql.SQL("delete from {tbl} where (collection, id) in (select collection, id from {tbl} where collection = %s").format(
                tbl=self._tbl
            )
            + clause
            + sql.SQL(" limit 1)")
        )
        with self._errors(), self._conn() as conn:
            with conn.transaction():
                cur = conn.execute(q, [self.name, *params])
                return int(cur.rowcount or 0)

    def estimated_count(self) -> int:
        q = sql.SQL("select count(*) from {tbl} where collection = %s").format(tbl=self._tbl)
        with self._errors(), self._conn() as conn:
            row = conn.execute(q, (self.name,)).fetchone()
        return int(row[0]) if row else 0


class _BoundSession:
    """Collections pinned to one connection inside `transaction()`."""

    def __init__(self, store: "PostgresDocumentStore", conn: psycopg.Connection) -> None:
        self._store = store
        self._conn = conn

    def collection(self, name: str) -> PostgresCollection:
        return PostgresCollection(self._store, name, conn=self._conn)


class PostgresDocumentStore:
    def __init__(
        self,
        dsn: str,
        *,
        table: str = "documents",
        min_size: int = 1,
        max_size: int = 10,
        statement_timeout_ms: int = 5000,
        acquire_timeout_seconds: float = 5.0,
    ) -> None:
        """Configure, but do not open, the connection pool.

        Parameters:
            dsn: psycopg connection string.
            table: documents table name (validated identifier).
            statement_timeout_ms: server-side per-statement timeout.
            acquire_timeout_seconds: bound on waiting for a pooled connection
                and on the initial open.
        """
        self.table = _check_ident(table)
        self._dsn = dsn
        self._acquire_timeout = float(acquire_timeout_seconds)
        self._pool = ConnectionPool(
            dsn,
            min_size=int(min_size),
            max_size=int(max_size),
            timeout=self._acquire_timeout,
            kwargs={"options": f"-c statement_timeout={int(statement_timeout_ms)}"},
            open=False,
            name="edumanage-store",
        )
        self._opened = False

    def open(self) -> None:
        """Open the pool and ensure the schema exists; raises when unreachable."""
        if self._opened:
            return
        if not self._dsn:
            raise StoreUnavailableError("DATABASE_URL is not configured")
        try:
            self._pool.open(wait=True, timeout=self._acquire_timeout)
            with self._pool.connection() as conn:
                for stmt in schema_statements(self.table):
                    conn.execute(stmt)
        except (PoolTimeout, psycopg.Error) as exc:
            _log.error("store open failed: error=%s", type(exc).__name__)
            self._pool.close()
            raise StoreUnavailableError(type(exc).__name__) from exc
        self._opened = True
        _log.info("store opened: table=%s", self.table)

    def close(self) -> None:
        if not self._opened:
            return
        self._opened = False
        self._pool.close()
        _log.info("store closed")

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        if not self._opened:
            raise StoreUnavailableError("store is not open")
        try:
            with self._pool.connection() as conn:
                yield conn
        except PoolTimeout as exc:
            raise StoreUnavailableError("pool_timeout") from exc

    def ping(self) -> bool:
        try:
            with self._connection() as conn:
                conn.execute("select 1")
            return True
        except (StoreError, psycopg.Error) as exc:
            _log.warning("store ping failed: error=%s", type(exc).__name__)
            return False

    def collection(self, name: str) -> PostgresCollection:
        return PostgresCollection(self, name)

    @contextmanager
    def transaction(self) -> Iterator[_BoundSession]:
        with self._connection() as conn:
            try:
                with conn.transaction():
                    yield _BoundSession(self, conn)
            except UniqueViolation as exc:
                raise DuplicateKeyError("transaction") from exc
