"""Cache categories and their fixed TTL tiers.

Each category maps to a TTL chosen at write time. Entries are never
invalidated per key; they expire with their tier or disappear with a
cache rotation.
"""

from enum import Enum


class CacheCategory(str, Enum):
    """Content category of a cached backend response."""

    SUGGESTION = "suggestion"  # Autocomplete, changes with the index
    PROGRAM = "program"        # Academic programs, effectively static
    PEOPLE = "people"          # Staff directory
    DEFAULT = "default"        # General search


CACHE_TTL_SECONDS: dict[CacheCategory, int] = {
    CacheCategory.SUGGESTION: 3600,   # 1 hour
    CacheCategory.PROGRAM: 86400,     # 24 hours
    CacheCategory.PEOPLE: 43200,      # 12 hours
    CacheCategory.DEFAULT: 1800,      # 30 minutes
}


def ttl_for(category: CacheCategory | str) -> int:
    """Get the TTL for a cache category.

    Unknown category names fall back to the default tier.

    Args:
        category: CacheCategory member or its string value

    Returns:
        TTL in seconds

    Example:
        >>> ttl_for("program")
        86400
    """
    try:
        resolved = CacheCategory(category)
    except ValueError:
        resolved = CacheCategory.DEFAULT
    return CACHE_TTL_SECONDS[resolved]
