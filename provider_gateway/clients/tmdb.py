"""TMDB movie metadata client."""
from __future__ import annotations

from typing import Any, Dict, Optional

from provider_gateway.cache import TTLCache
from provider_gateway.clients.base import ProviderClient
from provider_gateway.clients.http import HttpClient
from provider_gateway.config import Settings, validate_non_empty
from provider_gateway.errors import ProviderUnavailable
from provider_gateway.models import (
    MOVIE_UNAVAILABLE_OVERVIEW,
    MOVIE_UNAVAILABLE_TITLE,
    MovieData,
    MovieSearchResult,
)
from provider_gateway.rate_limit import RateLimiter
from provider_gateway.utils import make_cache_key, normalize_query

BASE_URL = "https://api.themoviedb.org/3"
POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"
BACKDROP_BASE_URL = "https://image.tmdb.org/t/p/w1280"

SEARCH_TTL_SECONDS = 6 * 60 * 60
DETAILS_TTL_SECONDS = 24 * 60 * 60


def _image_url(base: str, path: Optional[str]) -> Optional[str]:
    return f"{base}{path}" if path else None


def map_movie(raw: Dict[str, Any], *, include_genres: bool = False) -> MovieData:
    """Project a TMDB movie payload into :class:`MovieData`."""

    movie_id = raw.get("id")
    movie = MovieData(
        id=str(movie_id) if movie_id is not None else "",
        title=raw.get("title") or "",
        overview=raw.get("overview") or None,
        release_date=raw.get("release_date") or None,
        poster_path=_image_url(POSTER_BASE_URL, raw.get("poster_path")),
        backdrop_path=_image_url(BACKDROP_BASE_URL, raw.get("backdrop_path")),
        vote_average=raw.get("vote_average") or None,
        vote_count=raw.get("vote_count") or None,
        genre_ids=raw.get("genre_ids") or None,
        runtime=raw.get("runtime") or None,
        original_language=raw.get("original_language") or None,
        adult=bool(raw.get("adult", False)),
        popularity=raw.get("popularity") or None,
    )
    if include_genres and raw.get("genres"):
        movie.genres = [genre["name"] for genre in raw["genres"]]
    return movie


class MovieClient(ProviderClient):
    """Search and look up movies on TMDB with caching and fallbacks."""

    provider = "tmdb"
    label = "TMDB"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Optional[TTLCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        http: Optional[HttpClient] = None,
    ) -> None:
        self._api_key = validate_non_empty(settings.tmdb_api_key, "TMDB_API_KEY")
        super().__init__(settings, cache=cache, rate_limiter=rate_limiter, http=http)

    async def search_movies(self, query: str, page: int = 1) -> MovieSearchResult:
        cache_key = make_cache_key(self.provider, "search", normalize_query(query), page)

        async def fetch() -> MovieSearchResult:
            payload = await self._get_json(
                f"{BASE_URL}/search/movie",
                {"api_key": self._api_key, "query": query.strip(), "page": page},
            )
            results = payload.get("results") or []
            if not isinstance(results, list):
                raise ProviderUnavailable("TMDB search returned malformed results")
            return MovieSearchResult(
                results=[map_movie(item) for item in results],
                total_results=payload.get("total_results") or 0,
                total_pages=payload.get("total_pages") or 0,
                page=payload.get("page") or 1,
            )

        def fallback() -> MovieSearchResult:
            return MovieSearchResult(results=[], total_results=0, total_pages=0, page=1)

        return await self._cached_call(cache_key, SEARCH_TTL_SECONDS, fetch, fallback)

    async def get_movie_details(self, movie_id: str) -> MovieData:
        movie_id = str(movie_id).strip()
        cache_key = make_cache_key(self.provider, "movie", movie_id)

        async def fetch() -> MovieData:
            payload = await self._get_json(
                f"{BASE_URL}/movie/{movie_id}",
                {"api_key": self._api_key, "append_to_response": "genres"},
            )
            if "id" not in payload:
                raise ProviderUnavailable("TMDB movie payload is missing an id")
            return map_movie(payload, include_genres=True)

        def fallback() -> MovieData:
            return MovieData(
                id=movie_id,
                title=MOVIE_UNAVAILABLE_TITLE,
                overview=MOVIE_UNAVAILABLE_OVERVIEW,
            )

        return await self._cached_call(cache_key, DETAILS_TTL_SECONDS, fetch, fallback)
