"""Storage-agnostic filter predicates.

A predicate is an immutable tree built once per query and handed to a
repository, which decides how to evaluate it (SQL, in-memory, ...).
Field names use the stored document keys (``category``, ``tags``,
``isPremiumContent``...).
"""
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class NotEquals:
    field: str
    value: Any


@dataclass(frozen=True)
class RegexContains:
    field: str
    pattern: str
    case_insensitive: bool = True


@dataclass(frozen=True)
class ArrayContainsAny:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class ArrayContainsAll:
    field: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class TextSearch:
    """Free-text search; matching semantics belong to the repository."""

    query: str


@dataclass(frozen=True)
class And:
    predicates: tuple["Predicate", ...] = ()


@dataclass(frozen=True)
class Or:
    predicates: tuple["Predicate", ...] = ()


Predicate = Union[
    Equals, NotEquals, RegexContains, ArrayContainsAny, ArrayContainsAll,
    TextSearch, And, Or,
]

# Empty conjunction matches every record.
MATCH_ALL = And(())


def and_(*predicates: Predicate) -> Predicate:
    """Conjunction that collapses to a single predicate when possible."""
    if len(predicates) == 1:
        return predicates[0]
    return And(tuple(predicates))
