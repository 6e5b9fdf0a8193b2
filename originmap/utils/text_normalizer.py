"""Artist-name key normalisation.

Cache keys, batch-lookup keys and resolved-map keys all go through
:func:`normalize_query_key` so the three agree exactly.  Matching is
plain lower-casing: no whitespace folding, no accent stripping,
no fuzzy matching.
"""

from __future__ import annotations


def normalize_query_key(name: str) -> str:
    """Return the cache / resolved-map key for an artist display name."""
    return name.lower()


def names_match(query: str, candidate: str) -> bool:
    """Case-insensitive exact comparison used for best-match selection."""
    return normalize_query_key(query) == normalize_query_key(candidate)
