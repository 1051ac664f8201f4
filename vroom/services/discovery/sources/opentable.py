"""OpenTable restaurant search source (public GraphQL endpoint)."""

import re
from datetime import date, timedelta
from typing import Optional
from urllib.parse import urlencode

import httpx

from vroom.core.logging import log_http_request
from vroom.services.discovery.errors import ProviderError
from vroom.services.discovery.models import (
    Candidate,
    ProviderId,
    Region,
    ReservationPlatform,
    SearchFilters,
)
from vroom.services.discovery.progress import ProgressChannel
from vroom.services.discovery.sources.base import DEFAULT_SOURCE_TIMEOUT, SourceAdapter
from vroom.services.discovery.sources.resy import (
    PRICE_PER_PERSON_MAX_FACTOR,
    PRICE_PER_PERSON_MIN_FACTOR,
    build_query,
)
from vroom.services.discovery.utils import coerce_price_level

OPENTABLE_GQL_ENDPOINT = "https://www.opentable.com/dapi/fe/gql"
OPENTABLE_BASE_URL = "https://www.opentable.com"
DEFAULT_TIME = "19:00"
DEFAULT_METRO_ID = 4  # New York

METRO_IDS = {
    "new york": 4,
    "nyc": 4,
    "manhattan": 4,
    "brooklyn": 4,
    "new york city": 4,
    "los angeles": 6,
    "la": 6,
    "chicago": 3,
    "san francisco": 1,
    "sf": 1,
    "boston": 5,
    "miami": 11,
    "washington dc": 12,
    "dc": 12,
    "seattle": 9,
    "philadelphia": 8,
    "houston": 14,
    "dallas": 13,
    "atlanta": 7,
    "denver": 15,
    "austin": 40,
}

RESTAURANT_SEARCH_QUERY = """
query RestaurantSearch($term: String, $metroId: Int!, $covers: Int!, $dateTime: String!, $first: Int) {
  restaurantSearch(
    term: $term
    metroId: $metroId
    covers: $covers
    dateTime: $dateTime
    first: $first
  ) {
    totalCount
    restaurants {
      rid
      name
      primaryCuisine { name }
      priceRange
      statistics {
        reviews {
          ratings { overall { rating } }
          count
        }
      }
      urls { profileLink { link } }
      location {
        latitude
        longitude
        neighborhood
        address
        city
      }
    }
  }
}
"""


def get_metro_id(city: str) -> int:
    """OpenTable metro id for a city; unknown cities fall back to New York."""
    return METRO_IDS.get(city.lower().strip(), DEFAULT_METRO_ID)


def default_search_date() -> str:
    return (date.today() + timedelta(days=1)).isoformat()


def extract_slug(url: Optional[str]) -> Optional[str]:
    """"/r/restaurant-name-new-york?x=1" -> "restaurant-name-new-york"."""
    if not url:
        return None
    match = re.search(r"/r/([^?]+)", url)
    return match.group(1) if match else None


def reservation_url(
    rid: int,
    slug: Optional[str] = None,
    party_size: Optional[int] = None,
    search_date: Optional[str] = None,
    time: str = DEFAULT_TIME,
) -> str:
    base = (
        f"{OPENTABLE_BASE_URL}/r/{slug}"
        if slug
        else f"{OPENTABLE_BASE_URL}/restref/client/?rid={rid}"
    )
    params = {}
    if party_size:
        params["covers"] = party_size
    if search_date:
        params["dateTime"] = f"{search_date}T{time}"
    if not params:
        return base
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}{urlencode(params)}"


class OpenTableSource(SourceAdapter):
    """Discover venues from OpenTable's restaurant search."""

    provider = ProviderId.OPENTABLE

    def __init__(self, timeout: float = DEFAULT_SOURCE_TIMEOUT, http_timeout: float = 30.0):
        super().__init__(timeout=timeout)
        self.http_timeout = http_timeout

    async def _search(
        self,
        region: Region,
        filters: SearchFilters,
        progress: Optional[ProgressChannel],
    ) -> list[Candidate]:
        if filters.limit <= 0:
            return []

        search_date = default_search_date()
        payload = {
            "operationName": "RestaurantSearch",
            "variables": {
                "term": build_query(region, filters),
                "metroId": get_metro_id(filters.city),
                "covers": filters.party_size,
                "dateTime": f"{search_date}T{DEFAULT_TIME}",
                "first": filters.limit,
            },
            "query": RESTAURANT_SEARCH_QUERY,
        }

        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            resp = await client.post(
                OPENTABLE_GQL_ENDPOINT,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)",
                },
                json=payload,
            )

        log_http_request("POST", OPENTABLE_GQL_ENDPOINT, resp.status_code, provider=self.provider.value)
        if resp.status_code != 200:
            raise ProviderError(self.provider, f"HTTP {resp.status_code}", status_code=resp.status_code)

        data = resp.json() or {}
        search = (data.get("data") or {}).get("restaurantSearch") or {}
        restaurants = search.get("restaurants") or []

        candidates = [
            c
            for c in (self._process_restaurant(r, filters, search_date) for r in restaurants)
            if c
        ]
        self._info(progress, f"[OpenTable] Found {len(candidates)} venues in {region.label}")
        return candidates[: filters.limit]

    @staticmethod
    def _process_restaurant(
        restaurant: dict, filters: SearchFilters, search_date: str
    ) -> Optional[Candidate]:
        name = (restaurant.get("name") or "").strip()
        rid = restaurant.get("rid")
        if not name or rid is None:
            return None

        location = restaurant.get("location") or {}
        price_level = coerce_price_level(restaurant.get("priceRange"))
        rating = (
            ((restaurant.get("statistics") or {}).get("reviews") or {})
            .get("ratings", {})
            .get("overall", {})
            .get("rating")
        )
        profile = ((restaurant.get("urls") or {}).get("profileLink") or {}).get("link")
        slug = extract_slug(profile)

        return Candidate(
            name=name,
            provider=ProviderId.OPENTABLE,
            latitude=location.get("latitude") or None,
            longitude=location.get("longitude") or None,
            address=location.get("address"),
            neighborhood=location.get("neighborhood") or None,
            city=location.get("city") or filters.city,
            cuisine=(restaurant.get("primaryCuisine") or {}).get("name"),
            price_level=price_level,
            price_per_person_min=price_level * PRICE_PER_PERSON_MIN_FACTOR if price_level else None,
            price_per_person_max=price_level * PRICE_PER_PERSON_MAX_FACTOR if price_level else None,
            rating=rating,
            opentable_id=str(rid),
            reservation_platform=ReservationPlatform.OPENTABLE,
            reservation_url=reservation_url(
                rid, slug, party_size=filters.party_size, search_date=search_date
            ),
        )
