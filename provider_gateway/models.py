"""Normalized records returned to callers, independent of the provider payloads."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

MOVIE_UNAVAILABLE_TITLE = "Movie information unavailable"
MOVIE_UNAVAILABLE_OVERVIEW = "Movie details could not be retrieved at this time."
RESTAURANT_UNAVAILABLE_NAME = "Restaurant information unavailable"
RESTAURANT_UNAVAILABLE_ADDRESS = "Address could not be retrieved at this time."


@dataclass
class MovieData:
    id: str
    title: str
    overview: Optional[str] = None
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    vote_average: Optional[float] = None
    vote_count: Optional[int] = None
    genre_ids: Optional[List[int]] = None
    genres: Optional[List[str]] = None
    runtime: Optional[int] = None
    original_language: Optional[str] = None
    adult: Optional[bool] = None
    popularity: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MovieSearchResult:
    results: List[MovieData] = field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0
    page: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LatLng:
    lat: float
    lng: float


@dataclass
class Geometry:
    location: LatLng


@dataclass
class OpeningHours:
    open_now: Optional[bool] = None
    weekday_text: Optional[List[str]] = None


@dataclass
class RestaurantData:
    place_id: str
    name: str
    formatted_address: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    photos: Optional[List[str]] = None
    formatted_phone_number: Optional[str] = None
    website: Optional[str] = None
    types: Optional[List[str]] = None
    opening_hours: Optional[OpeningHours] = None
    geometry: Optional[Geometry] = None
    business_status: Optional[str] = None
    user_ratings_total: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RestaurantSearchResult:
    results: List[RestaurantData] = field(default_factory=list)
    status: str = "ZERO_RESULTS"
    next_page_token: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
