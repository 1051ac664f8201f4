"""Geocode fallback: look a venue up by name when no provider gave coordinates."""

from typing import Optional

import httpx
from loguru import logger

from vroom.services.discovery.errors import ProviderError
from vroom.services.discovery.models import GeocodeResult
from vroom.services.discovery.sources.google_places import places_text_search
from vroom.services.discovery.utils import map_google_price_level, normalize_name

MAX_GEOCODE_RESULTS = 3


def best_match(name: str, places: list[dict]) -> Optional[dict]:
    """First place whose normalized name contains, or is contained in, the venue's.

    Falls back to the first place when none match.
    """
    if not places:
        return None
    wanted = normalize_name(name)
    for place in places:
        candidate = normalize_name((place.get("displayName") or {}).get("text") or "")
        if wanted and candidate and (wanted in candidate or candidate in wanted):
            return place
    return places[0]


class GeocodeFallback:
    """Resolves a venue name to location data through Places text search."""

    def __init__(self, api_key: Optional[str], http_timeout: float = 30.0):
        self.api_key = api_key
        self.http_timeout = http_timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def geocode(self, name: str, city: str) -> Optional[GeocodeResult]:
        """Coordinates and contact details for ``name`` in ``city``, or None."""
        if not self.api_key:
            logger.info("[Geocode] GOOGLE_PLACES_API_KEY not set, skipping geocode")
            return None

        query = f"{name} restaurant {city}"
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            try:
                places = await places_text_search(
                    client, self.api_key, query, MAX_GEOCODE_RESULTS
                )
            except (ProviderError, httpx.HTTPError) as e:
                logger.info(f"[Geocode] Lookup failed for {name}: {e}")
                return None

        place = best_match(name, places)
        location = (place or {}).get("location") or {}
        if location.get("latitude") is None or location.get("longitude") is None:
            logger.info(f"[Geocode] No location found for {name}")
            return None

        return GeocodeResult(
            name=(place.get("displayName") or {}).get("text") or name,
            latitude=location["latitude"],
            longitude=location["longitude"],
            address=place.get("formattedAddress"),
            phone=place.get("nationalPhoneNumber"),
            rating=place.get("rating"),
            website=place.get("websiteUri"),
            google_place_id=place.get("id"),
            price_level=map_google_price_level(place.get("priceLevel")),
        )
