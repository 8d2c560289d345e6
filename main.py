"""FastAPI application exposing cached, rate-limited movie and restaurant lookups."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from provider_gateway.cache import TTLCache
from provider_gateway.clients import HttpClient, MovieClient, RestaurantClient
from provider_gateway.config import get_settings
from provider_gateway.errors import ConfigurationError
from provider_gateway.logging_config import configure_logging
from provider_gateway.rate_limit import RateLimiter

configure_logging()
LOGGER = logging.getLogger(__name__)

settings = get_settings()
cache = TTLCache(
    settings.cache_max_size,
    sweep_interval_seconds=settings.cache_sweep_interval_seconds or None,
)
rate_limiter = RateLimiter(settings.rate_limits)
http_client = HttpClient(settings.http_timeout_seconds)


@asynccontextmanager
async def lifespan(_: FastAPI):
    cache.start()
    try:
        yield
    finally:
        await cache.stop()
        http_client.close()


app = FastAPI(title="Provider Gateway", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    LOGGER.error("configuration error", extra={"reason": str(exc)})
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@lru_cache()
def get_movie_client() -> MovieClient:
    """Provide the shared TMDB client."""

    return MovieClient(settings, cache=cache, rate_limiter=rate_limiter, http=http_client)


@lru_cache()
def get_restaurant_client() -> RestaurantClient:
    """Provide the shared Google Places client."""

    return RestaurantClient(settings, cache=cache, rate_limiter=rate_limiter, http=http_client)


@app.get("/api/movies/search")
async def search_movies(
    query: str = Query(..., min_length=1, description="Free-text movie title search."),
    page: int = Query(1, ge=1, le=1000),
    movies: MovieClient = Depends(get_movie_client),
) -> dict:
    result = await movies.search_movies(query, page)
    return result.to_dict()


@app.get("/api/movies/{movie_id}")
async def get_movie(movie_id: str, movies: MovieClient = Depends(get_movie_client)) -> dict:
    movie = await movies.get_movie_details(movie_id)
    return movie.to_dict()


@app.get("/api/restaurants/search")
async def search_restaurants(
    query: str = Query(..., min_length=1),
    location: str = Query(..., min_length=1, description="Address or place name to search near."),
    radius: int = Query(5000, ge=1, le=50000, description="Search radius in meters."),
    restaurants: RestaurantClient = Depends(get_restaurant_client),
) -> dict:
    result = await restaurants.search_restaurants(query, location, radius)
    return result.to_dict()


@app.get("/api/restaurants/{place_id}")
async def get_restaurant(
    place_id: str, restaurants: RestaurantClient = Depends(get_restaurant_client)
) -> dict:
    place = await restaurants.get_restaurant_details(place_id)
    return place.to_dict()


@app.get("/api/stats")
async def stats() -> dict:
    """Report rate-limit windows and cache occupancy for monitoring."""

    return {"rateLimits": rate_limiter.get_stats(), "cache": cache.stats()}
