"""Resource record and its stored-document mapping."""
from dataclasses import dataclass, field
from typing import Any, Optional

CATEGORIES = (
    "health",
    "education",
    "life_leisure",
    "jobs",
    "shop",
    "local",
    "social",
    "undefined",
)

UNDEFINED = "undefined"

PARTITIONS = {
    "health": "healthResources",
    "education": "educationResources",
    "life_leisure": "lifeLeisureResources",
    "jobs": "jobResources",
    "shop": "shopResources",
    "local": "localResources",
    "social": "socialResources",
    "undefined": "undefinedResources",
}

# attribute name -> document key
_FIELD_KEYS = {
    "id": "id",
    "title": "title",
    "description": "description",
    "url": "url",
    "category": "category",
    "subcategory": "subcategory",
    "source": "source",
    "source_name": "sourceName",
    "tags": "tags",
    "featured": "featured",
    "is_premium_content": "isPremiumContent",
    "date_added": "dateAdded",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "rating": "rating",
    "reviews": "reviews",
    "note": "note",
}
_KEY_FIELDS = {v: k for k, v in _FIELD_KEYS.items()}
_NULLABLE = {"id", "date_added", "created_at", "updated_at", "rating", "reviews", "note"}


def partition_for(category: Optional[str]) -> str:
    """Partition name for a category; unknown categories land in undefined."""
    return PARTITIONS.get((category or "").strip().lower(), PARTITIONS[UNDEFINED])


@dataclass(frozen=True)
class Resource:
    id: Optional[str] = None
    title: str = ""
    description: str = ""
    url: str = ""
    category: str = UNDEFINED
    subcategory: str = ""
    source: str = ""
    source_name: str = ""
    tags: tuple[str, ...] = ()
    featured: bool = False
    is_premium_content: bool = False
    date_added: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    note: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict, compare=True, hash=False)

    @property
    def partition(self) -> str:
        return partition_for(self.category)

    def to_document(self) -> dict[str, Any]:
        """Flatten into the stored JSON shape (extras merged at top level)."""
        doc: dict[str, Any] = dict(self.extra)
        for attr, key in _FIELD_KEYS.items():
            value = getattr(self, attr)
            if attr == "tags":
                value = list(value)
            doc[key] = value
        return doc

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> "Resource":
        """Build a Resource from a stored document.

        Keys outside the strict record go into ``extra`` untouched.
        """
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in doc.items():
            attr = _KEY_FIELDS.get(key)
            if attr is None:
                extra[key] = value
            elif value is not None or attr in _NULLABLE:
                kwargs[attr] = value

        if "_id" in extra and "id" not in kwargs:
            kwargs["id"] = str(extra.pop("_id"))
        if "id" in kwargs and kwargs["id"] is not None:
            kwargs["id"] = str(kwargs["id"])
        if "tags" in kwargs:
            kwargs["tags"] = tuple(str(t) for t in kwargs["tags"] or ())
        for flag in ("featured", "is_premium_content"):
            if flag in kwargs:
                kwargs[flag] = bool(kwargs[flag])

        return cls(**kwargs, extra=extra)
