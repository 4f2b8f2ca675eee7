"""Compile predicates and sort specs into SQLite over JSON documents.

Each record lives in ``resources.doc`` as a JSON object; fields are read
with ``json_extract`` and array fields are scanned with ``json_each``.
"""
import re
from functools import lru_cache
from typing import Any, Optional

from vet1stop.errors import InvalidFilterError
from vet1stop.search.predicates import (
    And,
    ArrayContainsAll,
    ArrayContainsAny,
    Equals,
    NotEquals,
    Or,
    Predicate,
    RegexContains,
    TextSearch,
)
from vet1stop.storage.repository import ASCENDING, SortSpec

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

TEXT_SEARCH_FIELDS = ("title", "description")
TEXT_SEARCH_ARRAYS = ("tags",)


def field_expr(field: str) -> str:
    """SQL expression reading ``field`` from the stored document."""
    if not _FIELD_RE.match(field):
        raise InvalidFilterError(f"Unsupported field name: {field!r}")
    if field == "id":
        return "id"
    return f"json_extract(doc, '$.{field}')"


def _array_path(field: str) -> str:
    if not _FIELD_RE.match(field):
        raise InvalidFilterError(f"Unsupported field name: {field!r}")
    return f"'$.{field}'"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _text_search(query: str) -> tuple[str, list[Any]]:
    """Any whitespace-separated term in title, description or tags."""
    terms = query.split()
    if not terms:
        return "1", []
    clauses: list[str] = []
    params: list[Any] = []
    for term in terms:
        pattern = f"%{_escape_like(term)}%"
        parts = [f"{field_expr(f)} LIKE ? ESCAPE '\\'" for f in TEXT_SEARCH_FIELDS]
        params.extend([pattern] * len(TEXT_SEARCH_FIELDS))
        for arr in TEXT_SEARCH_ARRAYS:
            parts.append(
                f"EXISTS (SELECT 1 FROM json_each(doc, {_array_path(arr)}) "
                f"WHERE json_each.value LIKE ? ESCAPE '\\')"
            )
            params.append(pattern)
        clauses.append("(" + " OR ".join(parts) + ")")
    return "(" + " OR ".join(clauses) + ")", params


def compile_predicate(predicate: Predicate) -> tuple[str, list[Any]]:
    """Return a WHERE fragment and its positional parameters."""
    if isinstance(predicate, Equals):
        if predicate.value is None:
            return f"{field_expr(predicate.field)} IS NULL", []
        return f"{field_expr(predicate.field)} = ?", [predicate.value]

    if isinstance(predicate, NotEquals):
        if predicate.value is None:
            return f"{field_expr(predicate.field)} IS NOT NULL", []
        return f"{field_expr(predicate.field)} IS NOT ?", [predicate.value]

    if isinstance(predicate, RegexContains):
        pattern = predicate.pattern
        if predicate.case_insensitive:
            pattern = f"(?i){pattern}"
        try:
            _compiled(pattern)
        except re.error as e:
            raise InvalidFilterError(f"Invalid pattern {predicate.pattern!r}: {e}") from e
        return f"{field_expr(predicate.field)} REGEXP ?", [pattern]

    if isinstance(predicate, ArrayContainsAny):
        if not predicate.values:
            return "0", []
        marks = ", ".join("?" for _ in predicate.values)
        sql = (
            f"EXISTS (SELECT 1 FROM json_each(doc, {_array_path(predicate.field)}) "
            f"WHERE json_each.value IN ({marks}))"
        )
        return sql, list(predicate.values)

    if isinstance(predicate, ArrayContainsAll):
        if not predicate.values:
            return "1", []
        path = _array_path(predicate.field)
        clauses = [
            f"EXISTS (SELECT 1 FROM json_each(doc, {path}) WHERE json_each.value = ?)"
            for _ in predicate.values
        ]
        return "(" + " AND ".join(clauses) + ")", list(predicate.values)

    if isinstance(predicate, TextSearch):
        return _text_search(predicate.query)

    if isinstance(predicate, (And, Or)):
        if not predicate.predicates:
            return ("1", []) if isinstance(predicate, And) else ("0", [])
        joiner = " AND " if isinstance(predicate, And) else " OR "
        clauses = []
        params: list[Any] = []
        for child in predicate.predicates:
            sql, child_params = compile_predicate(child)
            clauses.append(f"({sql})")
            params.extend(child_params)
        return joiner.join(clauses), params

    raise InvalidFilterError(f"Unsupported predicate: {predicate!r}")


def compile_sort(sort: Optional[SortSpec]) -> str:
    """ORDER BY body; insertion order when no sort is given."""
    if not sort:
        return "rowid ASC"
    parts = [
        f"{field_expr(field)} {'ASC' if direction == ASCENDING else 'DESC'}"
        for field, direction in sort
    ]
    parts.append("rowid ASC")
    return ", ".join(parts)


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def regexp(pattern: str, value: Any) -> bool:
    """SQLite REGEXP hook: ``value REGEXP pattern`` calls ``regexp(pattern, value)``."""
    if value is None:
        return False
    return _compiled(pattern).search(str(value)) is not None
