from __future__ import annotations

import asyncio

import pytest

from provider_gateway.clients.tmdb import MovieClient, map_movie
from provider_gateway.config import Settings
from provider_gateway.errors import ConfigurationError
from provider_gateway.models import MovieData, MovieSearchResult
from provider_gateway.rate_limit import RateLimiter

SEARCH_PAYLOAD = {
    "page": 1,
    "total_results": 1,
    "total_pages": 1,
    "results": [
        {
            "id": 603,
            "title": "The Matrix",
            "overview": "A hacker learns the truth.",
            "release_date": "1999-03-30",
            "poster_path": "/matrix.jpg",
            "backdrop_path": "/matrix-bg.jpg",
            "vote_average": 8.2,
            "vote_count": 24000,
            "genre_ids": [28, 878],
            "original_language": "en",
            "adult": False,
            "popularity": 80.5,
        }
    ],
}

DETAILS_PAYLOAD = {
    "id": 603,
    "title": "The Matrix",
    "runtime": 136,
    "poster_path": None,
    "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
}


def make_client(settings, cache, rate_limiter, fake_http) -> MovieClient:
    return MovieClient(settings, cache=cache, rate_limiter=rate_limiter, http=fake_http)


def test_missing_api_key_fails_at_construction(cache, rate_limiter, fake_http):
    with pytest.raises(ConfigurationError, match="TMDB_API_KEY"):
        MovieClient(Settings(), cache=cache, rate_limiter=rate_limiter, http=fake_http)


def test_map_movie_builds_absolute_image_urls():
    movie = map_movie(SEARCH_PAYLOAD["results"][0])

    assert movie.id == "603"
    assert movie.poster_path == "https://image.tmdb.org/t/p/w500/matrix.jpg"
    assert movie.backdrop_path == "https://image.tmdb.org/t/p/w1280/matrix-bg.jpg"
    assert movie.genres is None


def test_map_movie_fills_defaults_for_absent_fields():
    movie = map_movie({})

    assert movie == MovieData(id="", title="", adult=False)


@pytest.mark.asyncio
async def test_search_normalizes_single_result(settings, cache, rate_limiter, fake_http):
    fake_http.add("/search/movie", SEARCH_PAYLOAD)
    client = make_client(settings, cache, rate_limiter, fake_http)

    result = await client.search_movies("The Matrix")

    assert result.total_results == 1
    assert len(result.results) == 1
    movie = result.results[0]
    assert movie.id == "603"
    assert movie.title == "The Matrix"
    assert movie.poster_path == "https://image.tmdb.org/t/p/w500/matrix.jpg"
    assert movie.genre_ids == [28, 878]
    url, params = fake_http.calls[0]
    assert params == {"api_key": "test_tmdb_key", "query": "The Matrix", "page": 1}


@pytest.mark.asyncio
async def test_search_is_served_from_cache_without_rate_limit_check(
    settings, cache, rate_limiter, fake_http
):
    fake_http.add("/search/movie", SEARCH_PAYLOAD)
    client = make_client(settings, cache, rate_limiter, fake_http)

    first = await client.search_movies("the matrix")
    second = await client.search_movies("  The   Matrix ")

    assert first == second
    assert len(fake_http.calls) == 1
    assert rate_limiter.get_stats()["tmdb"]["current"] == 1
    assert cache.ttl("tmdb:search:the matrix:1") == 6 * 60 * 60


@pytest.mark.asyncio
async def test_search_returns_empty_fallback_on_server_error(settings, cache, rate_limiter, fake_http):
    fake_http.add("/search/movie", {"status_message": "oops"}, status=500)
    client = make_client(settings, cache, rate_limiter, fake_http)

    result = await client.search_movies("alien")

    assert result == MovieSearchResult(results=[], total_results=0, total_pages=0, page=1)
    assert result.to_dict() == {"results": [], "total_results": 0, "total_pages": 0, "page": 1}
    assert not cache.has("tmdb:search:alien:1")


@pytest.mark.asyncio
async def test_search_falls_back_on_malformed_payload(settings, cache, rate_limiter, fake_http):
    fake_http.add("/search/movie", "<html>not json</html>")
    client = make_client(settings, cache, rate_limiter, fake_http)

    result = await client.search_movies("alien")

    assert result.results == []


@pytest.mark.asyncio
async def test_transient_errors_are_retried(cache, rate_limiter, fake_http, monkeypatch):
    async def no_sleep(seconds):
        return None

    monkeypatch.setattr("provider_gateway.utils.backoff.asyncio.sleep", no_sleep)
    fake_http.add("/search/movie", {}, status=503)
    fake_http.add("/search/movie", SEARCH_PAYLOAD)
    settings = Settings(tmdb_api_key="key", retry_attempts=2, retry_base_delay_ms=0)
    client = make_client(settings, cache, rate_limiter, fake_http)

    result = await client.search_movies("matrix")

    assert len(result.results) == 1
    assert len(fake_http.calls) == 2
    assert rate_limiter.get_stats()["tmdb"]["current"] == 1


@pytest.mark.asyncio
async def test_not_found_is_not_retried(cache, rate_limiter, fake_http):
    fake_http.add("/movie/999", {"status_message": "missing"}, status=404)
    settings = Settings(tmdb_api_key="key", retry_attempts=3)
    client = make_client(settings, cache, rate_limiter, fake_http)

    movie = await client.get_movie_details("999")

    assert movie.title == "Movie information unavailable"
    assert len(fake_http.calls) == 1


@pytest.mark.asyncio
async def test_details_map_genres_and_cache_for_a_day(settings, cache, rate_limiter, fake_http):
    fake_http.add("/movie/603", DETAILS_PAYLOAD)
    client = make_client(settings, cache, rate_limiter, fake_http)

    movie = await client.get_movie_details("603")

    assert movie.genres == ["Action", "Science Fiction"]
    assert movie.runtime == 136
    assert movie.poster_path is None
    assert cache.ttl("tmdb:movie:603") == 24 * 60 * 60


@pytest.mark.asyncio
async def test_details_fallback_when_rate_limited(settings, cache, clock, fake_http):
    limiter = RateLimiter(clock=clock)
    limiter.set_rate_limit("tmdb", 1, 60)
    limiter.check_limit("tmdb")
    client = make_client(settings, cache, limiter, fake_http)

    movie = await client.get_movie_details("42")

    assert movie.id == "42"
    assert movie.title == "Movie information unavailable"
    assert movie.overview == "Movie details could not be retrieved at this time."
    assert fake_http.calls == []
    assert not cache.has("tmdb:movie:42")


@pytest.mark.asyncio
async def test_unconfigured_provider_propagates(settings, cache, clock, fake_http):
    client = make_client(settings, cache, RateLimiter({}, clock=clock), fake_http)

    with pytest.raises(ConfigurationError, match="Unknown API: tmdb"):
        await client.search_movies("alien")


@pytest.mark.asyncio
async def test_concurrent_identical_searches_share_one_provider_call(
    settings, cache, rate_limiter, fake_http
):
    fake_http.add("/search/movie", SEARCH_PAYLOAD)
    gate = asyncio.Event()
    unblocked_get = fake_http.get

    async def gated_get(url, *, params=None):
        await gate.wait()
        return await unblocked_get(url, params=params)

    fake_http.get = gated_get
    client = make_client(settings, cache, rate_limiter, fake_http)

    async def open_gate():
        await asyncio.sleep(0)
        gate.set()

    first, second, _ = await asyncio.gather(
        client.search_movies("alien"), client.search_movies("alien"), open_gate()
    )

    assert first == second
    assert len(first.results) == 1
    assert len(fake_http.calls) == 1
    assert rate_limiter.get_stats()["tmdb"]["current"] == 1


@pytest.mark.asyncio
async def test_details_payload_without_id_falls_back(settings, cache, rate_limiter, fake_http):
    fake_http.add("/movie/7", {"title": "No id"})
    client = make_client(settings, cache, rate_limiter, fake_http)

    movie = await client.get_movie_details("7")

    assert movie == MovieData(
        id="7",
        title="Movie information unavailable",
        overview="Movie details could not be retrieved at this time.",
    )
    assert len(fake_http.calls) == 1
    assert not cache.has("tmdb:movie:7")
