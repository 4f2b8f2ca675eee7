"""Category taxonomy for resource classification.

Rule order decides the outcome for text that mentions several areas:
the first category with any keyword hit wins.
"""

CATEGORY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("health", ("health", "medical")),
    ("education", ("education", "school", "training")),
    ("life_leisure", ("life", "leisure", "housing")),
    ("jobs", ("job", "career", "employment")),
    ("shop", ("shop", "business", "store", "discount")),
    ("local", ("local", "community", "service", "location")),
    ("social", ("social", "event", "group", "news", "article")),
)

FALLBACK_CATEGORY = "undefined"

PLACEHOLDER_NOTE = "Placeholder content - to be revamped or improved in future updates."
