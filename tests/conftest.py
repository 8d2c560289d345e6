from __future__ import annotations

import json

import pytest

from provider_gateway.cache import TTLCache
from provider_gateway.clients.http import HttpResponse
from provider_gateway.config import Settings
from provider_gateway.rate_limit import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHttp:
    """Serve canned responses keyed by URL substring and record every call."""

    def __init__(self) -> None:
        self.routes: dict[str, list[HttpResponse]] = {}
        self.calls: list[tuple[str, dict]] = []

    def add(self, url_part: str, payload, status: int = 200) -> None:
        body = payload if isinstance(payload, str) else json.dumps(payload)
        self.routes.setdefault(url_part, []).append(HttpResponse(status_code=status, body=body))

    def calls_to(self, url_part: str) -> list[tuple[str, dict]]:
        return [call for call in self.calls if url_part in call[0]]

    async def get(self, url, *, params=None):  # noqa: D401
        """Return the next queued response for the first matching route."""

        self.calls.append((url, dict(params or {})))
        for url_part, responses in self.routes.items():
            if url_part in url:
                return responses.pop(0) if len(responses) > 1 else responses[0]
        return HttpResponse(status_code=404, body="{}")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        tmdb_api_key="test_tmdb_key",
        google_places_api_key="test_google_key",
        retry_attempts=1,
    )


@pytest.fixture()
def cache(clock) -> TTLCache:
    return TTLCache(max_size=1000, sweep_interval_seconds=None, clock=clock)


@pytest.fixture()
def rate_limiter(clock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture()
def fake_http() -> FakeHttp:
    return FakeHttp()
