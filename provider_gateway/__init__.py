"""Package exports commonly used helpers for convenience."""

from .cache import TTLCache
from .config import Settings, get_settings
from .errors import ConfigurationError, ProviderUnavailable, QuotaExceeded
from .logging_config import configure_logging
from .rate_limit import RateLimiter, RateLimitResult

__all__ = [
    "ConfigurationError",
    "ProviderUnavailable",
    "QuotaExceeded",
    "RateLimitResult",
    "RateLimiter",
    "Settings",
    "TTLCache",
    "configure_logging",
    "get_settings",
]
