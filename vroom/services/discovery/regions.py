"""Search regions: which areas one discovery session fans out over.

The NYC neighborhood boxes are hand-drawn approximations of the
neighborhood polygons, good enough to bias Places searches but not exact
borders.
"""

import math
from typing import Optional

from vroom.services.discovery.models import Bounds, DiscoveryRequest, LatLng, Region


def _box(sw_lat: float, sw_lng: float, ne_lat: float, ne_lng: float) -> Bounds:
    return Bounds(
        southwest=LatLng(lat=sw_lat, lng=sw_lng),
        northeast=LatLng(lat=ne_lat, lng=ne_lng),
    )


NYC_NEIGHBORHOOD_BOUNDS: dict[str, Bounds] = {
    # Manhattan
    "Tribeca": _box(40.711372, -74.016390, 40.725744, -74.001886),
    "SoHo": _box(40.717977, -74.015204, 40.729832, -73.995395),
    "West Village": _box(40.728347, -74.014391, 40.742378, -73.996797),
    "East Village": _box(40.718589, -73.992604, 40.734782, -73.971629),
    "Chelsea": _box(40.737098, -74.012119, 40.757972, -73.987933),
    "Flatiron": _box(40.738311, -73.994211, 40.744763, -73.983381),
    "Gramercy": _box(40.731375, -73.991725, 40.739502, -73.978520),
    "Midtown": _box(40.741375, -73.993464, 40.768400, -73.958788),
    "Upper East Side": _box(40.758213, -73.973015, 40.787907, -73.942003),
    "Upper West Side": _box(40.768400, -73.990000, 40.800000, -73.958000),
    "Lower East Side": _box(40.710000, -73.995000, 40.726000, -73.975000),
    "Nolita": _box(40.717000, -74.000000, 40.726000, -73.990000),
    "Little Italy": _box(40.715000, -74.002000, 40.723000, -73.993000),
    "Chinatown": _box(40.710000, -74.005000, 40.720000, -73.990000),
    "Greenwich Village": _box(40.725000, -74.007000, 40.740000, -73.992000),
    "NoHo": _box(40.724000, -73.998000, 40.733000, -73.988000),
    "Murray Hill": _box(40.742000, -73.985000, 40.752000, -73.970000),
    "Kips Bay": _box(40.736000, -73.985000, 40.748000, -73.972000),
    "Financial District": _box(40.700000, -74.020000, 40.715000, -74.000000),
    "Hell's Kitchen": _box(40.755000, -74.000000, 40.772000, -73.982000),
    # Brooklyn
    "Williamsburg": _box(40.700000, -73.970000, 40.725000, -73.935000),
    "DUMBO": _box(40.698000, -73.995000, 40.708000, -73.980000),
    "Brooklyn Heights": _box(40.688000, -74.000000, 40.702000, -73.985000),
    "Greenpoint": _box(40.720000, -73.965000, 40.740000, -73.935000),
    "Fort Greene": _box(40.682000, -73.985000, 40.696000, -73.968000),
}

_BOUNDS_BY_LOWER = {name.lower(): bounds for name, bounds in NYC_NEIGHBORHOOD_BOUNDS.items()}


def get_neighborhood_bounds(neighborhood: str) -> Optional[Bounds]:
    """Bounding box for a known neighborhood (case-insensitive), else None."""
    return _BOUNDS_BY_LOWER.get(neighborhood.strip().lower())


def compute_regions(request: DiscoveryRequest) -> list[Region]:
    """Regions to search for a request, in search order.

    Explicit map bounds override any neighborhoods. Otherwise each
    neighborhood becomes a region, carrying its bounding box when known.
    With neither, a single city-wide region is returned.
    """
    if request.bounds is not None:
        return [Region(bounds=request.bounds)]

    neighborhoods = request.search_neighborhoods
    if neighborhoods:
        return [
            Region(neighborhood=hood, bounds=get_neighborhood_bounds(hood))
            for hood in neighborhoods
        ]

    return [Region()]


def per_region_limit(limit: int, region_count: int) -> int:
    """Share of the global limit requested from each provider per region."""
    if region_count <= 0:
        return limit
    return math.ceil(limit / region_count)
