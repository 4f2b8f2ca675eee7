"""Repository interface for resource persistence.

The engine only talks to storage through this contract; any document
store able to evaluate predicates can sit behind it.
"""
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence, Union

from vet1stop.search.predicates import Predicate
from vet1stop.storage.models import Resource

ASCENDING = 1
DESCENDING = -1

# (document key, direction) pairs, applied in order.
SortSpec = Sequence[tuple[str, int]]

IdOrPredicate = Union[str, Predicate]


class ResourceRepository(ABC):
    """Abstract store of resources within one or more partitions.

    All methods raise ``RepositoryError`` when the store fails.
    """

    @abstractmethod
    def find(
        self,
        predicate: Predicate,
        sort: Optional[SortSpec] = None,
        limit: Optional[int] = None,
    ) -> list[Resource]:
        """Return matching resources, sorted and capped as requested."""
        ...

    @abstractmethod
    def count(self, predicate: Predicate) -> int:
        ...

    @abstractmethod
    def count_by(self, field: str) -> dict[str, int]:
        """Count resources grouped by the distinct values of ``field``."""
        ...

    @abstractmethod
    def insert_one(self, resource: Resource) -> str:
        """Insert a resource and return its id.

        Raises ``DuplicateKeyError`` if the id is already taken.
        """
        ...

    @abstractmethod
    def delete_one(self, target: IdOrPredicate) -> bool:
        """Delete the first match. Returns whether anything was deleted."""
        ...

    @abstractmethod
    def update_one(self, target: IdOrPredicate, fields: Mapping[str, Any]) -> bool:
        """Merge ``fields`` (document keys) into the first match."""
        ...
