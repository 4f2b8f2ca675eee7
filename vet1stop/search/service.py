"""Resource queries: listing, lookup, counts and related resources."""
import logging
from typing import Optional

from vet1stop.errors import InvalidFilterError, NotFoundError
from vet1stop.search.filters import ResourceFilter, build_filter
from vet1stop.search.predicates import (
    And,
    ArrayContainsAny,
    Equals,
    NotEquals,
)
from vet1stop.storage.models import Resource
from vet1stop.storage.repository import DESCENDING, ResourceRepository

logger = logging.getLogger("vet1stop.search.service")

DEFAULT_SORT = (
    ("featured", DESCENDING),
    ("dateAdded", DESCENDING),
    ("updatedAt", DESCENDING),
)
RELATED_SORT = (
    ("dateAdded", DESCENDING),
    ("updatedAt", DESCENDING),
)
DEFAULT_RELATED_LIMIT = 3


class ResourceQueryService:
    """Read-side operations over a resource repository."""

    def __init__(self, repository: ResourceRepository):
        self.repository = repository

    def get_resources(self, options: Optional[ResourceFilter] = None) -> list[Resource]:
        """Resources matching ``options``, featured first then newest.

        No match is an empty list, not an error.
        """
        query = build_filter(options)
        resources = self.repository.find(query.predicate, sort=DEFAULT_SORT, limit=query.limit)
        if query.limit is not None:
            resources = resources[: query.limit]
        logger.info("get_resources returned %d resource(s)", len(resources))
        return resources

    def get_resource_by_id(self, resource_id: str) -> Resource:
        """Look up one resource; a categorized copy wins over a stale undefined one."""
        found = self.repository.find(Equals("id", resource_id), limit=1)
        if not found:
            raise NotFoundError(resource_id)
        return found[0]

    def get_resource_counts(self) -> dict[str, int]:
        """Resource count per category (tag and other filters do not apply)."""
        return self.repository.count_by("category")

    def get_related_resources(
        self, resource_id: str, limit: int = DEFAULT_RELATED_LIMIT
    ) -> list[Resource]:
        """Other resources in the same category sharing at least one tag."""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise InvalidFilterError(f"limit must be a positive integer, got {limit!r}")
        source = self.get_resource_by_id(resource_id)
        if not source.tags:
            return []

        predicate = And((
            NotEquals("id", source.id),
            Equals("category", source.category),
            ArrayContainsAny("tags", tuple(source.tags)),
        ))
        related = self.repository.find(predicate, sort=RELATED_SORT, limit=limit)
        logger.info("Found %d related resource(s) for %s", len(related), resource_id)
        return related[:limit]

    def get_featured_resources(
        self, category: Optional[str] = None, limit: int = DEFAULT_RELATED_LIMIT
    ) -> list[Resource]:
        return self.get_resources(ResourceFilter(category=category, featured=True, limit=limit))
