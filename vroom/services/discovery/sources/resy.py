"""Resy venue search source (unofficial API)."""

from typing import Optional

import httpx

from vroom.core.logging import log_http_request
from vroom.services.discovery.errors import ConfigurationError, ProviderError
from vroom.services.discovery.models import (
    Candidate,
    ProviderId,
    Region,
    ReservationPlatform,
    SearchFilters,
)
from vroom.services.discovery.progress import ProgressChannel
from vroom.services.discovery.sources.base import DEFAULT_SOURCE_TIMEOUT, SourceAdapter
from vroom.services.discovery.utils import coerce_price_level

RESY_API_BASE = "https://api.resy.com"
RESY_SEARCH_URL = f"{RESY_API_BASE}/3/venuesearch/search"

CITY_SLUGS = {
    "new york": "new-york-ny",
    "nyc": "new-york-ny",
    "manhattan": "new-york-ny",
    "brooklyn": "new-york-ny",
    "new york city": "new-york-ny",
}

# Per-person estimate multipliers applied to Resy's 1-4 price range
PRICE_PER_PERSON_MIN_FACTOR = 30
PRICE_PER_PERSON_MAX_FACTOR = 75


def normalize_city(city: str) -> str:
    """Resy city slug, e.g. "New York" -> "new-york-ny"."""
    normalized = city.lower().strip()
    return CITY_SLUGS.get(normalized, "-".join(normalized.split()))


def build_query(region: Region, filters: SearchFilters) -> str:
    parts = [filters.cuisine, region.neighborhood, "private dining"]
    return " ".join(p for p in parts if p)


class ResySource(SourceAdapter):
    """Discover venues from Resy's venue search."""

    provider = ProviderId.RESY

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = DEFAULT_SOURCE_TIMEOUT,
        http_timeout: float = 30.0,
    ):
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.http_timeout = http_timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _search(
        self,
        region: Region,
        filters: SearchFilters,
        progress: Optional[ProgressChannel],
    ) -> list[Candidate]:
        if not self.api_key:
            raise ConfigurationError("RESY_API_KEY not set")
        if filters.limit <= 0:
            return []

        city_slug = normalize_city(filters.city)
        query = build_query(region, filters)
        self._info(progress, f"[Resy] Searching: city={city_slug}, query={query}")

        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            resp = await client.get(
                RESY_SEARCH_URL,
                params={"city": city_slug, "per_page": filters.limit, "query": query},
                headers={
                    "Authorization": f'ResyAPI api_key="{self.api_key}"',
                    "X-Resy-Universal-Auth": self.api_key,
                    "Content-Type": "application/json",
                },
            )

        log_http_request("GET", RESY_SEARCH_URL, resp.status_code, provider=self.provider.value)
        if resp.status_code != 200:
            raise ProviderError(
                self.provider,
                f"HTTP {resp.status_code} - {resp.text[:200]}",
                status_code=resp.status_code,
            )

        hits = ((resp.json() or {}).get("search") or {}).get("hits") or []
        candidates = [c for c in (self._process_hit(h, filters) for h in hits) if c]

        self._info(progress, f"[Resy] Found {len(candidates)} venues in {region.label}")
        return candidates[: filters.limit]

    @staticmethod
    def _process_hit(hit: dict, filters: SearchFilters) -> Optional[Candidate]:
        name = (hit.get("name") or "").strip()
        if not name:
            return None

        venue_id = (hit.get("id") or {}).get("resy")
        location = hit.get("location") or {}
        cuisines = hit.get("cuisine") or []
        price_level = coerce_price_level(hit.get("price_range"))
        slug = hit.get("url_slug")

        return Candidate(
            name=name,
            provider=ProviderId.RESY,
            latitude=location.get("latitude"),
            longitude=location.get("longitude"),
            neighborhood=location.get("neighborhood") or None,
            city=filters.city,
            cuisine=cuisines[0].get("name") if cuisines else None,
            price_level=price_level,
            price_per_person_min=price_level * PRICE_PER_PERSON_MIN_FACTOR if price_level else None,
            price_per_person_max=price_level * PRICE_PER_PERSON_MAX_FACTOR if price_level else None,
            rating=(hit.get("rating") or {}).get("average"),
            resy_venue_id=str(venue_id) if venue_id is not None else None,
            reservation_platform=ReservationPlatform.RESY,
            reservation_url=f"https://resy.com/cities/ny/{slug}" if slug else None,
        )
