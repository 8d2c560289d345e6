"""Google Places restaurant client."""
from __future__ import annotations

from typing import Any, Dict, Optional

from provider_gateway.cache import TTLCache
from provider_gateway.clients.base import ProviderClient
from provider_gateway.clients.http import HttpClient
from provider_gateway.config import Settings, validate_non_empty
from provider_gateway.errors import ProviderUnavailable
from provider_gateway.models import (
    RESTAURANT_UNAVAILABLE_ADDRESS,
    RESTAURANT_UNAVAILABLE_NAME,
    Geometry,
    LatLng,
    OpeningHours,
    RestaurantData,
    RestaurantSearchResult,
)
from provider_gateway.rate_limit import RateLimiter
from provider_gateway.utils import make_cache_key, normalize_query

PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"
GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
PHOTO_MAX_WIDTH = 400
DETAIL_FIELDS = ",".join(
    [
        "place_id",
        "name",
        "formatted_address",
        "rating",
        "price_level",
        "photos",
        "formatted_phone_number",
        "website",
        "types",
        "opening_hours",
        "geometry",
        "business_status",
        "user_ratings_total",
    ]
)

SEARCH_TTL_SECONDS = 6 * 60 * 60
DETAILS_TTL_SECONDS = 24 * 60 * 60
GEOCODE_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_RADIUS_METERS = 5000


class RestaurantClient(ProviderClient):
    """Search and look up restaurants on Google Places with caching and fallbacks."""

    provider = "google_places"
    label = "Google Places"

    def __init__(
        self,
        settings: Settings,
        *,
        cache: Optional[TTLCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
        http: Optional[HttpClient] = None,
    ) -> None:
        self._api_key = validate_non_empty(settings.google_places_api_key, "GOOGLE_PLACES_API_KEY")
        super().__init__(settings, cache=cache, rate_limiter=rate_limiter, http=http)

    def _photo_url(self, reference: str) -> str:
        return (
            f"{PLACES_BASE_URL}/photo?maxwidth={PHOTO_MAX_WIDTH}"
            f"&photoreference={reference}&key={self._api_key}"
        )

    def map_place(self, raw: Dict[str, Any]) -> RestaurantData:
        """Project a Places result into :class:`RestaurantData`."""

        place = RestaurantData(
            place_id=raw.get("place_id") or "",
            name=raw.get("name") or "",
            formatted_address=raw.get("formatted_address") or None,
            rating=raw.get("rating") or None,
            price_level=raw.get("price_level") or None,
            formatted_phone_number=raw.get("formatted_phone_number") or None,
            website=raw.get("website") or None,
            types=raw.get("types") or None,
            business_status=raw.get("business_status") or None,
            user_ratings_total=raw.get("user_ratings_total") or None,
        )
        photos = raw.get("photos") or []
        if photos:
            place.photos = [self._photo_url(photo["photo_reference"]) for photo in photos]
        if hours := raw.get("opening_hours"):
            place.opening_hours = OpeningHours(
                open_now=hours.get("open_now"), weekday_text=hours.get("weekday_text")
            )
        location = (raw.get("geometry") or {}).get("location")
        if location:
            place.geometry = Geometry(location=LatLng(lat=location["lat"], lng=location["lng"]))
        return place

    async def geocode(self, location: str) -> LatLng:
        """Resolve free-text ``location`` to coordinates, cached for a week."""

        cache_key = make_cache_key("geocode", normalize_query(location))

        async def fetch() -> LatLng:
            payload = await self._get_json(
                GEOCODE_URL, {"address": location.strip(), "key": self._api_key}
            )
            results = payload.get("results") or []
            if payload.get("status") != "OK" or not results:
                raise ProviderUnavailable(
                    f"Could not geocode location ({payload.get('status')})"
                )
            point = results[0]["geometry"]["location"]
            return LatLng(lat=point["lat"], lng=point["lng"])

        return await self._cache.get_or_set(cache_key, fetch, GEOCODE_TTL_SECONDS)

    async def search_restaurants(
        self, query: str, location: str, radius: int = DEFAULT_RADIUS_METERS
    ) -> RestaurantSearchResult:
        cache_key = make_cache_key(
            self.provider, "search", normalize_query(query), normalize_query(location), radius
        )

        async def fetch() -> RestaurantSearchResult:
            coordinates = await self.geocode(location)
            payload = await self._get_json(
                f"{PLACES_BASE_URL}/textsearch/json",
                {
                    "query": query.strip(),
                    "location": f"{coordinates.lat},{coordinates.lng}",
                    "radius": radius,
                    "type": "restaurant",
                    "key": self._api_key,
                },
            )
            status = payload.get("status")
            if status not in ("OK", "ZERO_RESULTS"):
                raise ProviderUnavailable(f"Google Places API error: {status}")
            results = payload.get("results") or []
            if not isinstance(results, list):
                raise ProviderUnavailable("Google Places search returned malformed results")
            return RestaurantSearchResult(
                results=[self.map_place(item) for item in results],
                status=status,
                next_page_token=payload.get("next_page_token"),
            )

        def fallback() -> RestaurantSearchResult:
            return RestaurantSearchResult(results=[], status="ZERO_RESULTS")

        return await self._cached_call(cache_key, SEARCH_TTL_SECONDS, fetch, fallback)

    async def get_restaurant_details(self, place_id: str) -> RestaurantData:
        place_id = place_id.strip()
        cache_key = make_cache_key(self.provider, "details", place_id)

        async def fetch() -> RestaurantData:
            payload = await self._get_json(
                f"{PLACES_BASE_URL}/details/json",
                {"place_id": place_id, "fields": DETAIL_FIELDS, "key": self._api_key},
            )
            status = payload.get("status")
            if status == "NOT_FOUND":
                raise ProviderUnavailable(f"Restaurant not found: {place_id}", status=404)
            if status != "OK" or not isinstance(payload.get("result"), dict):
                raise ProviderUnavailable(f"Google Places API error: {status}")
            return self.map_place(payload["result"])

        def fallback() -> RestaurantData:
            return RestaurantData(
                place_id=place_id,
                name=RESTAURANT_UNAVAILABLE_NAME,
                formatted_address=RESTAURANT_UNAVAILABLE_ADDRESS,
            )

        return await self._cached_call(cache_key, DETAILS_TTL_SECONDS, fetch, fallback)
