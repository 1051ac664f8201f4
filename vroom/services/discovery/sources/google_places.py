"""Google Places (New) Text Search discovery source.

One text query per search type, optionally restricted to the region's
bounding box. Results are deduplicated within the adapter by place id,
normalized name and website; cross-provider dedup is left to the resolver.
"""

import asyncio
import math
import re
from enum import Enum
from typing import Optional

import httpx
from loguru import logger

from vroom.core.logging import log_http_request
from vroom.services.discovery.errors import ConfigurationError, ProviderError
from vroom.services.discovery.models import (
    Bounds,
    Candidate,
    ProviderId,
    Region,
    SearchFilters,
)
from vroom.services.discovery.progress import ProgressChannel
from vroom.services.discovery.sources.base import DEFAULT_SOURCE_TIMEOUT, SourceAdapter
from vroom.services.discovery.utils import (
    estimate_price_range,
    extract_borough,
    extract_neighborhood,
    map_google_price_level,
    normalize_name,
)

PLACES_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"
PLACES_FIELD_MASK = ",".join(
    [
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.websiteUri",
        "places.nationalPhoneNumber",
        "places.rating",
        "places.priceLevel",
    ]
)
MAX_RESULTS_PER_QUERY = 20  # Places API cap for maxResultCount


class SearchType(str, Enum):
    RESTAURANT = "restaurant"
    PRIVATE_DINING = "private_dining"
    BAR = "bar"
    ROOFTOP = "rooftop"


SEARCH_QUERIES = {
    SearchType.RESTAURANT: "restaurant private dining",
    SearchType.PRIVATE_DINING: "private dining room restaurant",
    SearchType.BAR: "bar private event space",
    SearchType.ROOFTOP: "rooftop bar event space",
}

# Generic names that aren't real venues
GENERIC_NAME_PATTERNS = [
    re.compile(r"^private dining$", re.I),
    re.compile(r"^private room$", re.I),
    re.compile(r"^event space$", re.I),
    re.compile(r"^banquet hall$", re.I),
    re.compile(r"^catering service$", re.I),
    re.compile(r"^restaurant$", re.I),
    re.compile(r"^dining room$", re.I),
]


def is_generic_name(name: str) -> bool:
    return any(p.match(name.strip()) for p in GENERIC_NAME_PATTERNS)


def query_for(search_type: str) -> str:
    """Text query fragment for a search type; cuisines get the cuisine template."""
    try:
        return SEARCH_QUERIES[SearchType(search_type)]
    except ValueError:
        return f"{search_type} restaurant private dining"


def search_types_for(cuisine: Optional[str]) -> list[str]:
    if cuisine:
        return [cuisine.lower(), SearchType.RESTAURANT.value]
    return [SearchType.RESTAURANT.value, SearchType.PRIVATE_DINING.value]


def location_restriction(bounds: Bounds) -> dict:
    return {
        "rectangle": {
            "low": {"latitude": bounds.southwest.lat, "longitude": bounds.southwest.lng},
            "high": {"latitude": bounds.northeast.lat, "longitude": bounds.northeast.lng},
        }
    }


async def places_text_search(
    client: httpx.AsyncClient,
    api_key: str,
    text_query: str,
    max_results: int,
    bounds: Optional[Bounds] = None,
) -> list[dict]:
    """Call Places Text Search and return the raw ``places`` list."""
    body: dict = {
        "textQuery": text_query,
        "maxResultCount": max(1, min(MAX_RESULTS_PER_QUERY, max_results)),
    }
    if bounds is not None:
        body["locationRestriction"] = location_restriction(bounds)

    resp = await client.post(
        PLACES_SEARCH_URL,
        headers={
            "Content-Type": "application/json",
            "X-Goog-Api-Key": api_key,
            "X-Goog-FieldMask": PLACES_FIELD_MASK,
        },
        json=body,
    )
    log_http_request("POST", PLACES_SEARCH_URL, resp.status_code, provider=ProviderId.GOOGLE_PLACES.value)

    if resp.status_code == 429:
        raise ProviderError(ProviderId.GOOGLE_PLACES, "rate limited", status_code=429)
    if resp.status_code != 200:
        raise ProviderError(
            ProviderId.GOOGLE_PLACES,
            f"HTTP {resp.status_code}: {resp.text[:200]}",
            status_code=resp.status_code,
        )

    return resp.json().get("places", []) or []


def normalize_website(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    return re.sub(r"^https?://(www\.)?", "", url.lower()).rstrip("/")


class GooglePlacesSource(SourceAdapter):
    """Discover venues via the Places API (New) Text Search endpoint."""

    provider = ProviderId.GOOGLE_PLACES

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
            raise ConfigurationError("GOOGLE_PLACES_API_KEY not set")
        if filters.limit <= 0:
            return []

        search_types = search_types_for(filters.cuisine)
        per_type = math.ceil(filters.limit / len(search_types))
        location = f"{region.neighborhood}, {filters.city}" if region.neighborhood else filters.city

        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            outcomes = await asyncio.gather(
                *[self._search_type(client, t, location, per_type, region) for t in search_types],
                return_exceptions=True,
            )

        # A failed type is skipped; only a total outage reaches the adapter boundary
        results: list[list[dict]] = []
        errors: list[Exception] = []
        for search_type, outcome in zip(search_types, outcomes):
            if isinstance(outcome, (ProviderError, httpx.HTTPError)):
                logger.info(f"[Google Places] Search for '{search_type}' failed: {outcome}")
                errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results.append(outcome)
        if errors and not results:
            raise errors[-1]

        candidates: list[Candidate] = []
        seen_place_ids: set[str] = set()
        seen_names: set[str] = set()
        seen_websites: set[str] = set()

        for places in results:
            for place in places:
                candidate = self._process_place(place, filters, region)
                if candidate is None:
                    continue

                key = normalize_name(candidate.name)
                website = normalize_website(candidate.website)
                if candidate.google_place_id in seen_place_ids or key in seen_names:
                    continue
                if website and website in seen_websites:
                    continue

                seen_place_ids.add(candidate.google_place_id)
                seen_names.add(key)
                if website:
                    seen_websites.add(website)
                candidates.append(candidate)

        candidates = candidates[: filters.limit]
        self._info(progress, f"[Google Places] Found {len(candidates)} venues in {region.label}")
        return candidates

    async def _search_type(
        self,
        client: httpx.AsyncClient,
        search_type: str,
        location: str,
        max_results: int,
        region: Region,
    ) -> list[dict]:
        """One text query for a search type."""
        query = f"{query_for(search_type)} in {location}"
        return await places_text_search(
            client, self.api_key, query, max_results, bounds=region.bounds
        )

    @staticmethod
    def _process_place(
        place: dict, filters: SearchFilters, region: Region
    ) -> Optional[Candidate]:
        name = ((place.get("displayName") or {}).get("text") or "").strip()
        place_id = place.get("id")
        if not name or not place_id or is_generic_name(name):
            return None
        if not normalize_name(name):
            return None

        location = place.get("location") or {}
        address = place.get("formattedAddress")
        price_level = map_google_price_level(place.get("priceLevel"))
        price_min, price_max = estimate_price_range(price_level)

        return Candidate(
            name=name,
            provider=ProviderId.GOOGLE_PLACES,
            website=place.get("websiteUri"),
            phone=place.get("nationalPhoneNumber"),
            latitude=location.get("latitude"),
            longitude=location.get("longitude"),
            address=address,
            neighborhood=extract_neighborhood(address) or region.neighborhood,
            borough=extract_borough(address),
            city=filters.city,
            cuisine=filters.cuisine,
            price_level=price_level,
            price_per_person_min=price_min,
            price_per_person_max=price_max,
            rating=place.get("rating"),
            google_place_id=place_id,
        )
