"""Unit tests for search region planning."""

import pytest

from vroom.services.discovery.models import Bounds, DiscoveryRequest, LatLng
from vroom.services.discovery.regions import (
    NYC_NEIGHBORHOOD_BOUNDS,
    compute_regions,
    get_neighborhood_bounds,
    per_region_limit,
)


def _bounds() -> Bounds:
    return Bounds(
        southwest=LatLng(lat=40.70, lng=-74.02),
        northeast=LatLng(lat=40.73, lng=-73.99),
    )


@pytest.mark.unit
class TestNeighborhoodBounds:
    def test_lookup_is_case_insensitive(self):
        assert get_neighborhood_bounds("williamsburg") == NYC_NEIGHBORHOOD_BOUNDS["Williamsburg"]
        assert get_neighborhood_bounds("  SOHO ") == NYC_NEIGHBORHOOD_BOUNDS["SoHo"]

    def test_unknown_neighborhood(self):
        assert get_neighborhood_bounds("Atlantis") is None

    def test_boxes_are_well_formed(self):
        for name, box in NYC_NEIGHBORHOOD_BOUNDS.items():
            assert box.southwest.lat < box.northeast.lat, name
            assert box.southwest.lng < box.northeast.lng, name


@pytest.mark.unit
class TestComputeRegions:
    def test_citywide_when_nothing_given(self):
        regions = compute_regions(DiscoveryRequest())
        assert len(regions) == 1
        assert regions[0].neighborhood is None
        assert regions[0].bounds is None
        assert regions[0].label == "citywide"

    def test_one_region_per_neighborhood(self):
        regions = compute_regions(DiscoveryRequest(neighborhoods=["SoHo", "Atlantis"]))
        assert [r.neighborhood for r in regions] == ["SoHo", "Atlantis"]
        assert regions[0].bounds == NYC_NEIGHBORHOOD_BOUNDS["SoHo"]
        assert regions[1].bounds is None

    def test_legacy_single_neighborhood(self):
        regions = compute_regions(DiscoveryRequest(neighborhood="Tribeca"))
        assert [r.neighborhood for r in regions] == ["Tribeca"]

    def test_bounds_override_neighborhoods(self):
        bounds = _bounds()
        regions = compute_regions(
            DiscoveryRequest(neighborhoods=["SoHo", "Tribeca"], bounds=bounds)
        )
        assert len(regions) == 1
        assert regions[0].bounds == bounds
        assert regions[0].neighborhood is None
        assert regions[0].label.startswith("map area")


@pytest.mark.unit
class TestPerRegionLimit:
    def test_rounds_up(self):
        assert per_region_limit(10, 3) == 4
        assert per_region_limit(10, 1) == 10
        assert per_region_limit(0, 2) == 0

    def test_no_regions(self):
        assert per_region_limit(7, 0) == 7
