"""Slug derivation for category names."""

import re

_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATORS = re.compile(r"[\s_-]+", re.ASCII)


def slugify(text: str) -> str:
    """
    Derive a URL-safe slug from a display name.

    Lowercases, strips non-word characters, collapses runs of whitespace,
    underscores and hyphens into one hyphen, and trims hyphens at both ends.

    >>> slugify("  Memory Foam_Matras! ")
    'memory-foam-matras'
    """
    slug = _NON_WORD.sub("", text.lower().strip())
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")
