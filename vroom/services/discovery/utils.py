"""Shared helpers for venue discovery: names, prices, addresses, domains, batching."""

import asyncio
import re
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence, TypeVar, Union
from urllib.parse import urlparse

from vroom.services.discovery.models import PriceLevel

T = TypeVar("T")
R = TypeVar("R")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_name(name: str) -> str:
    """Dedup key for a venue name: lowercase with every non-alphanumeric removed."""
    return _NON_ALNUM.sub("", (name or "").lower())


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


class GooglePriceLevel(str, Enum):
    FREE = "PRICE_LEVEL_FREE"
    INEXPENSIVE = "PRICE_LEVEL_INEXPENSIVE"
    MODERATE = "PRICE_LEVEL_MODERATE"
    EXPENSIVE = "PRICE_LEVEL_EXPENSIVE"
    VERY_EXPENSIVE = "PRICE_LEVEL_VERY_EXPENSIVE"


_GOOGLE_PRICE_LEVELS = {
    GooglePriceLevel.FREE: PriceLevel.FREE,
    GooglePriceLevel.INEXPENSIVE: PriceLevel.INEXPENSIVE,
    GooglePriceLevel.MODERATE: PriceLevel.MODERATE,
    GooglePriceLevel.EXPENSIVE: PriceLevel.EXPENSIVE,
    GooglePriceLevel.VERY_EXPENSIVE: PriceLevel.VERY_EXPENSIVE,
}

# Per-person estimate (min, max) in USD by price tier
_PRICE_RANGES = {
    PriceLevel.FREE: (30, 60),
    PriceLevel.INEXPENSIVE: (30, 60),
    PriceLevel.MODERATE: (60, 100),
    PriceLevel.EXPENSIVE: (100, 175),
    PriceLevel.VERY_EXPENSIVE: (150, 250),
}
DEFAULT_PRICE_RANGE = (75, 150)


def map_google_price_level(value: Optional[str]) -> Optional[PriceLevel]:
    """Map a Places API price-level enum string to the 0-4 tier.

    Unknown values map to None rather than a default tier.
    """
    if not value:
        return None
    try:
        return _GOOGLE_PRICE_LEVELS[GooglePriceLevel(value)]
    except ValueError:
        return None


def coerce_price_level(value: Optional[Union[int, str]]) -> Optional[PriceLevel]:
    """Clamp a provider's price range (usually 1-4, sometimes a numeric string) onto PriceLevel."""
    if value is None:
        return None
    try:
        return PriceLevel(max(0, min(4, int(value))))
    except (TypeError, ValueError):
        return None


def estimate_price_range(price_level: Optional[PriceLevel]) -> tuple[int, int]:
    """Estimate a per-person price range from a price tier."""
    if price_level is None:
        return DEFAULT_PRICE_RANGE
    return _PRICE_RANGES.get(PriceLevel(price_level), DEFAULT_PRICE_RANGE)


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

NYC_NEIGHBORHOODS = [
    "Tribeca", "TriBeCa", "SoHo", "NoHo", "NoLita", "Nolita",
    "Chelsea", "Flatiron", "Gramercy", "Murray Hill",
    "Midtown", "Hell's Kitchen", "Times Square", "Theater District",
    "Upper East Side", "Upper West Side", "UES", "UWS",
    "East Village", "West Village", "Greenwich Village",
    "Lower East Side", "LES", "Chinatown", "Little Italy",
    "Financial District", "FiDi", "Battery Park", "Seaport",
    "Meatpacking", "Meatpacking District", "Hudson Yards",
    "Harlem", "East Harlem", "Washington Heights", "Inwood",
    "Williamsburg", "DUMBO", "Brooklyn Heights", "Park Slope",
    "Greenpoint", "Bushwick", "Bed-Stuy", "Crown Heights",
    "Cobble Hill", "Carroll Gardens", "Boerum Hill", "Fort Greene",
    "Prospect Heights", "Clinton Hill", "Red Hook", "Gowanus",
    "Astoria", "Long Island City", "LIC", "Jackson Heights",
    "Flushing", "Forest Hills", "Sunnyside",
]

NYC_BOROUGHS = ["Manhattan", "Brooklyn", "Queens", "Bronx", "Staten Island"]

# Whole-word matches so short aliases like "LES" don't hit "Charles St"
_NEIGHBORHOOD_PATTERNS = [
    (name, re.compile(rf"\b{re.escape(name)}\b", re.I)) for name in NYC_NEIGHBORHOODS
]


def extract_neighborhood(address: Optional[str]) -> Optional[str]:
    """Find a known NYC neighborhood mentioned in a formatted address."""
    if not address:
        return None
    for neighborhood, pattern in _NEIGHBORHOOD_PATTERNS:
        if pattern.search(address):
            return neighborhood
    return None


def extract_borough(address: Optional[str]) -> Optional[str]:
    """Find the NYC borough in an address; bare "New York, NY" means Manhattan."""
    if not address:
        return None
    address_lower = address.lower()
    for borough in NYC_BOROUGHS:
        if borough.lower() in address_lower:
            return borough
    if "ny " in address_lower or "new york" in address_lower:
        return "Manhattan"
    return None


# ---------------------------------------------------------------------------
# Domains
# ---------------------------------------------------------------------------

# Domains that never belong to the venue itself
SKIP_EMAIL_DOMAINS = {
    # Social media
    "facebook.com", "instagram.com", "twitter.com", "x.com", "youtube.com",
    "tiktok.com", "linkedin.com",
    # Reservation platforms and aggregators
    "opentable.com", "resy.com", "yelp.com", "tripadvisor.com", "sevenrooms.com",
    "exploretock.com", "google.com",
    # Review sites
    "theinfatuation.com", "eater.com", "timeout.com", "nymag.com", "grubstreet.com",
}


def normalize_url(url: Optional[str]) -> str:
    """Ensure URL has https:// prefix."""
    url = (url or "").strip()
    if not url:
        return ""
    if url.startswith("//"):
        return "https:" + url
    if not url.startswith(("http://", "https://")):
        return "https://" + url
    return url


def extract_domain(url: Optional[str]) -> Optional[str]:
    """Host of a URL or bare domain, lowercased, without a www. prefix."""
    url = normalize_url(url)
    if not url:
        return None
    try:
        host = (urlparse(url).hostname or "").lower()
    except ValueError:
        return None
    if host.startswith("www."):
        host = host[4:]
    return host or None


def is_skipped_domain(domain: Optional[str]) -> bool:
    """True for social, aggregator and review domains (including subdomains)."""
    if not domain:
        return True
    for skip in SKIP_EMAIL_DOMAINS:
        if domain == skip or domain.endswith("." + skip):
            return True
    return False


# ---------------------------------------------------------------------------
# Batching
# ---------------------------------------------------------------------------


async def run_in_groups(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    concurrency: int = 5,
    pause_seconds: float = 0.2,
) -> list[R]:
    """Run ``fn`` over ``items`` in fixed-size concurrent groups.

    Groups run one after another with a short pause in between so that
    providers with per-second rate limits are not flooded. Results keep the
    input order.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    results: list[R] = []
    for start in range(0, len(items), concurrency):
        group = items[start:start + concurrency]
        results.extend(await asyncio.gather(*[fn(item) for item in group]))

        if start + concurrency < len(items) and pause_seconds > 0:
            await asyncio.sleep(pause_seconds)

    return results
