"""Utility helpers."""
from .keys import make_cache_key, normalize_query  # noqa: F401
from .backoff import backoff_delay_ms, retry  # noqa: F401
