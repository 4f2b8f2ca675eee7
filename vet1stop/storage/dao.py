"""SQLite-backed resource repositories.

``SqliteResourceStore`` is built once per process and passed to whoever
needs storage. It hands out one repository per category partition plus a
catalog repository that spans every partition.
"""
import json
import logging
import secrets
import sqlite3
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from vet1stop.errors import DuplicateKeyError, RepositoryError
from vet1stop.search.predicates import Predicate
from vet1stop.storage.db import init_db, session
from vet1stop.storage.models import PARTITIONS, UNDEFINED, Resource, partition_for
from vet1stop.storage.repository import IdOrPredicate, ResourceRepository, SortSpec
from vet1stop.storage.sql import compile_predicate, compile_sort, field_expr

logger = logging.getLogger("vet1stop.storage.dao")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_resource_id() -> str:
    """24 hex chars, the same shape as a document-store object id."""
    return secrets.token_hex(12)


def _row_to_resource(row: sqlite3.Row) -> Resource:
    try:
        doc = json.loads(row["doc"])
    except json.JSONDecodeError as e:
        raise RepositoryError(f"Corrupt document for id {row['id']}: {e}") from e
    if not isinstance(doc, dict):
        raise RepositoryError(f"Corrupt document for id {row['id']}: not a JSON object")
    doc["id"] = row["id"]
    return Resource.from_document(doc)


# A partial move leaves the same id in undefined and a real category.
# Catalog reads skip the stale undefined copy in that case.
_SKIP_SHADOWED_UNDEFINED = (
    "(NOT (partition = ? AND EXISTS ("
    "SELECT 1 FROM resources AS other "
    "WHERE other.id = resources.id AND other.partition <> ?)))"
)


class SqliteResourceRepository(ResourceRepository):
    """Resources in one partition, or in all of them when ``partition`` is None."""

    def __init__(self, db_path: Path, partition: Optional[str] = None):
        self.db_path = db_path
        self.partition = partition

    def __repr__(self) -> str:
        return f"SqliteResourceRepository(partition={self.partition or '*'})"

    @property
    def spans_all(self) -> bool:
        return self.partition is None

    def _scope(self) -> tuple[str, list[Any]]:
        if self.spans_all:
            undefined = PARTITIONS[UNDEFINED]
            return _SKIP_SHADOWED_UNDEFINED, [undefined, undefined]
        return "partition = ?", [self.partition]

    def _where(self, target: IdOrPredicate) -> tuple[str, list[Any]]:
        scope_sql, params = self._scope()
        if isinstance(target, str):
            return f"{scope_sql} AND id = ?", [*params, target]
        pred_sql, pred_params = compile_predicate(target)
        return f"{scope_sql} AND ({pred_sql})", [*params, *pred_params]

    def find(
        self,
        predicate: Predicate,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[Resource]:
        where, params = self._where(predicate)
        sql = f"SELECT partition, id, doc FROM resources WHERE {where} ORDER BY {compile_sort(sort)}"
        # Catalog reads dedupe by id first, so the cap is applied afterwards.
        if limit is not None and not self.spans_all:
            sql += " LIMIT ?"
            params.append(limit)

        with session(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()

        resources = [_row_to_resource(r) for r in rows]
        if self.spans_all:
            seen: set[str] = set()
            unique: list[Resource] = []
            for res in resources:
                if res.id in seen:
                    continue
                seen.add(res.id)
                unique.append(res)
            resources = unique
            if limit is not None:
                resources = resources[:limit]
        return resources

    def count(self, predicate: Predicate) -> int:
        where, params = self._where(predicate)
        counted = "COUNT(DISTINCT id)" if self.spans_all else "COUNT(*)"
        with session(self.db_path) as conn:
            row = conn.execute(f"SELECT {counted} FROM resources WHERE {where}", params).fetchone()
        return row[0]

    def count_by(self, field: str) -> dict[str, int]:
        scope_sql, params = self._scope()
        sql = (
            f"SELECT {field_expr(field)} AS value, COUNT(DISTINCT id) AS n "
            f"FROM resources WHERE {scope_sql} GROUP BY value ORDER BY value"
        )
        with session(self.db_path) as conn:
            rows = conn.execute(sql, params).fetchall()
        return {("" if r["value"] is None else str(r["value"])): r["n"] for r in rows}

    def insert_one(self, resource: Resource) -> str:
        now = now_iso()
        stored = replace(
            resource,
            id=resource.id or new_resource_id(),
            created_at=resource.created_at or now,
            updated_at=resource.updated_at or now,
        )
        partition = self.partition or partition_for(stored.category)
        doc = json.dumps(stored.to_document(), ensure_ascii=False)

        with session(self.db_path) as conn:
            if self.spans_all:
                taken = conn.execute(
                    "SELECT 1 FROM resources WHERE id = ? LIMIT 1", (stored.id,)
                ).fetchone()
                if taken is not None:
                    raise DuplicateKeyError(f"Resource id already exists: {stored.id}")
            conn.execute(
                "INSERT INTO resources (partition, id, doc) VALUES (?, ?, ?)",
                (partition, stored.id, doc),
            )
        logger.debug("Inserted %s into %s", stored.id, partition)
        return stored.id

    def delete_one(self, target: IdOrPredicate) -> bool:
        where, params = self._where(target)
        with session(self.db_path) as conn:
            cur = conn.execute(
                f"DELETE FROM resources WHERE rowid = "
                f"(SELECT rowid FROM resources WHERE {where} ORDER BY rowid LIMIT 1)",
                params,
            )
            return cur.rowcount > 0

    def update_one(self, target: IdOrPredicate, fields: Mapping[str, Any]) -> bool:
        if "id" in fields:
            raise RepositoryError("Resource id cannot be updated")
        # The partition is derived from the category, so changing it is a move.
        if "category" in fields:
            raise RepositoryError("Resource category cannot be updated in place")
        where, params = self._where(target)
        with session(self.db_path) as conn:
            row = conn.execute(
                f"SELECT rowid, doc FROM resources WHERE {where} ORDER BY rowid LIMIT 1",
                params,
            ).fetchone()
            if row is None:
                return False
            try:
                doc = json.loads(row["doc"])
            except json.JSONDecodeError as e:
                raise RepositoryError(f"Corrupt document: {e}") from e
            if not isinstance(doc, dict):
                raise RepositoryError("Corrupt document: not a JSON object")
            doc.update(fields)
            if "updatedAt" not in fields:
                doc["updatedAt"] = now_iso()
            conn.execute(
                "UPDATE resources SET doc = ? WHERE rowid = ?",
                (json.dumps(doc, ensure_ascii=False), row["rowid"]),
            )
        return True


class SqliteResourceStore:
    """Owns the database file and hands out partition repositories."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def init(self) -> "SqliteResourceStore":
        init_db(self.db_path)
        return self

    def partition(self, category: str) -> SqliteResourceRepository:
        if category not in PARTITIONS:
            raise RepositoryError(f"Unknown category partition: {category!r}")
        return SqliteResourceRepository(self.db_path, PARTITIONS[category])

    def catalog(self) -> SqliteResourceRepository:
        return SqliteResourceRepository(self.db_path)

