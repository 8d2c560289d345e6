from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from provider_gateway.utils import backoff
from provider_gateway.utils import make_cache_key, normalize_query, retry


@pytest.fixture()
def sleeps(monkeypatch):
    delays: list[float] = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(backoff.asyncio, "sleep", fake_sleep)
    monkeypatch.setattr(backoff.random, "uniform", lambda low, high: 0.0)
    return delays


@pytest.mark.asyncio
async def test_retry_success_first_attempt(sleeps):
    operation = AsyncMock(return_value="success")

    assert await retry(operation) == "success"
    assert operation.call_count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_retry_transient_failure_then_success(sleeps):
    operation = AsyncMock(side_effect=[RuntimeError("temporary 1"), RuntimeError("temporary 2"), "ok"])

    assert await retry(operation, max_attempts=3, base_delay_ms=100) == "ok"
    assert operation.call_count == 3
    assert sleeps == [0.1, 0.2]


@pytest.mark.asyncio
async def test_retry_reraises_last_error(sleeps):
    operation = AsyncMock(side_effect=[RuntimeError("first"), RuntimeError("last")])

    with pytest.raises(RuntimeError, match="last"):
        await retry(operation, max_attempts=2, base_delay_ms=10)

    assert operation.call_count == 2
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_retry_stops_when_error_is_not_retryable(sleeps):
    operation = AsyncMock(side_effect=ValueError("bad input"))

    with pytest.raises(ValueError):
        await retry(operation, max_attempts=5, should_retry=lambda exc: not isinstance(exc, ValueError))

    assert operation.call_count == 1
    assert sleeps == []


@pytest.mark.asyncio
async def test_retry_adds_jitter_to_exponential_delay(monkeypatch):
    delays: list[float] = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr(backoff.asyncio, "sleep", fake_sleep)
    monkeypatch.setattr(backoff.random, "uniform", lambda low, high: high / 2)
    operation = AsyncMock(side_effect=[OSError(), OSError(), OSError(), "done"])

    await retry(operation, max_attempts=4, base_delay_ms=1000)

    assert delays == [1.5, 2.5, 4.5]


def test_make_cache_key_joins_parts():
    assert make_cache_key("tmdb", "search", "alien", 1) == "tmdb:search:alien:1"


def test_normalize_query_collapses_case_and_whitespace():
    assert normalize_query("  The   Matrix ") == "the matrix"
