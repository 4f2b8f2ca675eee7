"""Translate resource filter options into a predicate plus a result cap."""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from vet1stop.errors import InvalidFilterError
from vet1stop.search.predicates import (
    ArrayContainsAll,
    Equals,
    Predicate,
    TextSearch,
    and_,
)

logger = logging.getLogger("vet1stop.search.filters")

_TRUE = "true"
_FALSE = "false"


@dataclass(frozen=True)
class ResourceFilter:
    """Recognized query options. ``None`` means "not supplied"."""

    category: Optional[str] = None
    subcategory: Optional[str] = None
    source: Optional[str] = None
    featured: Optional[bool] = None
    is_premium_content: Optional[bool] = None
    tags: Optional[tuple[str, ...]] = None
    query: Optional[str] = None
    limit: Optional[int] = None

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> "ResourceFilter":
        """Parse string parameters as they arrive from HTTP or the CLI.

        ``tags`` is comma separated and ``q`` carries the text query.
        Empty strings count as not supplied.
        """
        def _get(name: str) -> Optional[str]:
            value = params.get(name)
            return value if value else None

        tags_param = _get("tags")
        limit_param = _get("limit")
        limit: Optional[int] = None
        if limit_param is not None:
            try:
                limit = int(limit_param)
            except ValueError:
                raise InvalidFilterError(f"limit must be an integer, got {limit_param!r}") from None

        return cls(
            category=_get("category"),
            subcategory=_get("subcategory"),
            source=_get("source"),
            featured=_parse_bool("featured", _get("featured")),
            is_premium_content=_parse_bool("isPremiumContent", _get("isPremiumContent")),
            tags=tuple(t.strip() for t in tags_param.split(",")) if tags_param else None,
            query=_get("q"),
            limit=limit,
        )


@dataclass(frozen=True)
class FilterQuery:
    predicate: Predicate
    limit: Optional[int] = None


def _parse_bool(name: str, value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == _TRUE:
        return True
    if lowered == _FALSE:
        return False
    raise InvalidFilterError(f"{name} must be 'true' or 'false', got {value!r}")


def _validate(options: ResourceFilter) -> None:
    if options.tags is not None and any(t == "" for t in options.tags):
        raise InvalidFilterError("tags must not contain empty strings")
    if options.limit is not None:
        if isinstance(options.limit, bool) or not isinstance(options.limit, int):
            raise InvalidFilterError(f"limit must be an integer, got {options.limit!r}")
        if options.limit <= 0:
            raise InvalidFilterError(f"limit must be positive, got {options.limit}")


def build_filter(options: Optional[ResourceFilter] = None) -> FilterQuery:
    """Build the predicate for a set of options.

    Every supplied option adds one condition; all conditions are ANDed.
    With nothing supplied the predicate matches everything.
    """
    options = options or ResourceFilter()
    _validate(options)

    conditions: list[Predicate] = []
    if options.category:
        conditions.append(Equals("category", options.category))
    if options.subcategory:
        conditions.append(Equals("subcategory", options.subcategory))
    if options.source:
        conditions.append(Equals("source", options.source))
    if options.featured is not None:
        conditions.append(Equals("featured", options.featured))
    if options.is_premium_content is not None:
        conditions.append(Equals("isPremiumContent", options.is_premium_content))
    if options.tags:
        conditions.append(ArrayContainsAll("tags", tuple(options.tags)))
    if options.query is not None and options.query.strip():
        conditions.append(TextSearch(options.query.strip()))

    logger.debug("Built filter with %d condition(s), limit=%s", len(conditions), options.limit)
    return FilterQuery(predicate=and_(*conditions), limit=options.limit)
