"""Shared request pipeline for provider clients.

Every public client operation follows the same path: a fresh cache entry is
returned as-is; otherwise the provider's rate limit is checked, the provider is
called (with retries for transient failures) and the normalized result is
cached. Any failure after the cache lookup yields the operation's fallback
value instead of an exception. Only :class:`ConfigurationError` escapes.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from provider_gateway.cache import TTLCache
from provider_gateway.clients.http import HttpClient, HttpResponse
from provider_gateway.config import Settings
from provider_gateway.errors import ConfigurationError, ProviderUnavailable, QuotaExceeded
from provider_gateway.rate_limit import RateLimiter
from provider_gateway.utils import retry

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _is_transient(exc: Exception) -> bool:
    return isinstance(exc, ProviderUnavailable) and exc.retryable


class ProviderClient:
    """Base class wiring a provider to the cache, rate limiter and HTTP client."""

    provider = ""
    label = ""

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Optional[TTLCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        http: Optional[HttpClient] = None,
    ) -> None:
        self._settings = settings
        if cache is None:
            cache = TTLCache(settings.cache_max_size, sweep_interval_seconds=None)
        if rate_limiter is None:
            rate_limiter = RateLimiter(settings.rate_limits)
        if http is None:
            http = HttpClient(settings.http_timeout_seconds)
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._http = http

    async def _cached_call(
        self,
        cache_key: str,
        ttl_seconds: float,
        fetch: Callable[[], Awaitable[T]],
        fallback: Callable[[], T],
    ) -> T:
        cached = self._cache.get(cache_key)
        if cached is not None:
            LOGGER.debug("cache hit", extra={"provider": self.provider, "cache_key": cache_key})
            return cached

        try:
            return await self._cache.get_or_set(
                cache_key, lambda: self._admit_and_fetch(fetch), ttl_seconds
            )
        except ConfigurationError:
            raise
        except QuotaExceeded as exc:
            LOGGER.warning(
                "rate limit exceeded, serving fallback",
                extra={"provider": self.provider, "cache_key": cache_key, "reset_in": exc.reset_in},
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.error(
                "provider call failed, serving fallback",
                exc_info=True,
                extra={
                    "provider": self.provider,
                    "cache_key": cache_key,
                    "status": getattr(exc, "status", None),
                },
            )
        return fallback()

    async def _admit_and_fetch(self, fetch: Callable[[], Awaitable[T]]) -> T:
        admission = self._rate_limiter.check_limit(self.provider)
        if not admission.allowed:
            raise QuotaExceeded(self.provider, admission.reset_time)
        return await fetch()

    async def _get_json(self, url: str, params: Mapping[str, Any]) -> Dict[str, Any]:
        """GET ``url`` and return its JSON object body, retrying transient failures."""

        async def attempt() -> Dict[str, Any]:
            response = await self._http.get(url, params=params)
            self._raise_for_status(response)
            payload = response.json()
            if not isinstance(payload, dict):
                raise ProviderUnavailable(f"{self.label} returned an unexpected payload")
            return payload

        return await retry(
            attempt,
            max_attempts=self._settings.retry_attempts,
            base_delay_ms=self._settings.retry_base_delay_ms,
            should_retry=_is_transient,
        )

    def _raise_for_status(self, response: HttpResponse) -> None:
        """Raise descriptive errors for provider responses."""

        if response.ok:
            return
        status = response.status_code
        if status == 429:
            message, retryable = f"{self.label} API rate limit exceeded.", True
        elif status in (401, 403):
            message, retryable = f"{self.label} rejected the API key.", False
        elif status == 404:
            message, retryable = f"{self.label} resource not found.", False
        else:
            message, retryable = f"{self.label} API error ({status}).", status >= 500
        raise ProviderUnavailable(
            f"{message} Response: {response.body[:200]}", status=status, retryable=retryable
        )
