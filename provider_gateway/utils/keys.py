"""Cache key helpers."""
from __future__ import annotations


def normalize_query(query: str) -> str:
    """Collapse whitespace and case so equivalent searches share a cache entry."""

    return " ".join(query.split()).lower()


def make_cache_key(prefix: str, *parts: object) -> str:
    """Join ``prefix`` and ``parts`` with colons, e.g. ``tmdb:search:alien:1``."""

    return ":".join([prefix, *(str(part) for part in parts)])
