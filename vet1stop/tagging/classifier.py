"""Rule-based classifier using keyword matching."""
from typing import Any

from vet1stop.storage.models import Resource
from vet1stop.tagging.taxonomy import CATEGORY_RULES, FALLBACK_CATEGORY

# Bookkeeping fields, not resource content.
_NON_CONTENT_FIELDS = {"id", "_id", "dateAdded", "createdAt", "updatedAt", "note"}


def _strings(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        found: list[str] = []
        for item in value:
            found.extend(_strings(item))
        return found
    if isinstance(value, dict):
        found = []
        for item in value.values():
            found.extend(_strings(item))
        return found
    return []


def resource_text(resource: Resource) -> str:
    """Concatenate every string-valued field of a resource, case-folded."""
    parts: list[str] = []
    for key, value in resource.to_document().items():
        if key in _NON_CONTENT_FIELDS:
            continue
        parts.extend(_strings(value))
    return " ".join(parts).casefold()


def categorize_text(text: str) -> str:
    """Return the category of the first rule with a keyword in ``text``.

    Falls back to ``undefined`` when nothing matches.
    """
    folded = text.casefold()
    for category, keywords in CATEGORY_RULES:
        if any(kw in folded for kw in keywords):
            return category
    return FALLBACK_CATEGORY


def categorize(resource: Resource) -> str:
    return categorize_text(resource_text(resource))


def matched_keywords(text: str) -> dict[str, list[str]]:
    """All keyword hits per category, in rule order. Used for reporting."""
    folded = text.casefold()
    hits: dict[str, list[str]] = {}
    for category, keywords in CATEGORY_RULES:
        found = [kw for kw in keywords if kw in folded]
        if found:
            hits[category] = found
    return hits
