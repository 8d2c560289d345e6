"""Application settings and environment loading utilities."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from provider_gateway.errors import ConfigurationError


def _load_dotenv() -> None:
    env_path = Path(".env")
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


_load_dotenv()


def validate_non_empty(value: Optional[str], name: str) -> str:
    if not value:
        raise ConfigurationError(f"{name} environment variable is required")
    return value


def _int_env(name: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration derived from environment variables."""

    tmdb_api_key: Optional[str] = None
    google_places_api_key: Optional[str] = None
    cache_max_size: int = 1000
    cache_sweep_interval_seconds: int = 300
    tmdb_rate_limit_requests: int = 40
    tmdb_rate_limit_window_seconds: int = 10
    google_places_rate_limit_requests: int = 100
    google_places_rate_limit_window_seconds: int = 60
    retry_attempts: int = 2
    retry_base_delay_ms: int = 500
    http_timeout_seconds: int = 10

    @property
    def rate_limits(self) -> dict[str, tuple[int, int]]:
        """Provider name to ``(requests, window_seconds)``."""

        return {
            "tmdb": (self.tmdb_rate_limit_requests, self.tmdb_rate_limit_window_seconds),
            "google_places": (
                self.google_places_rate_limit_requests,
                self.google_places_rate_limit_window_seconds,
            ),
        }

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            tmdb_api_key=os.getenv("TMDB_API_KEY") or None,
            google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY") or None,
            cache_max_size=_int_env("CACHE_MAX_SIZE", 1000),
            cache_sweep_interval_seconds=_int_env("CACHE_SWEEP_INTERVAL_SECONDS", 300, minimum=0),
            tmdb_rate_limit_requests=_int_env("TMDB_RATE_LIMIT_REQUESTS", 40),
            tmdb_rate_limit_window_seconds=_int_env("TMDB_RATE_LIMIT_WINDOW_SECONDS", 10),
            google_places_rate_limit_requests=_int_env("GOOGLE_PLACES_RATE_LIMIT_REQUESTS", 100),
            google_places_rate_limit_window_seconds=_int_env(
                "GOOGLE_PLACES_RATE_LIMIT_WINDOW_SECONDS", 60
            ),
            retry_attempts=_int_env("PROVIDER_RETRY_ATTEMPTS", 2),
            retry_base_delay_ms=_int_env("PROVIDER_RETRY_BASE_DELAY_MS", 500, minimum=0),
            http_timeout_seconds=_int_env("HTTP_TIMEOUT_SECONDS", 10),
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings.from_env()
