"""Unit tests for discovery helpers."""

import asyncio

import pytest

from vroom.services.discovery.models import PriceLevel
from vroom.services.discovery.utils import (
    DEFAULT_PRICE_RANGE,
    coerce_price_level,
    estimate_price_range,
    extract_borough,
    extract_domain,
    extract_neighborhood,
    is_skipped_domain,
    map_google_price_level,
    normalize_name,
    normalize_url,
    run_in_groups,
)


@pytest.mark.unit
class TestNormalizeName:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_name("Peter Luger Steak House") == "peterlugersteakhouse"
        assert normalize_name("L'Artusi") == "lartusi"

    def test_case_variants_share_a_key(self):
        assert normalize_name("Lilia") == normalize_name("lilia") == normalize_name("LILIA!")

    def test_does_not_truncate(self):
        long_name = "The Extremely Long Restaurant Name Of Lower Manhattan"
        assert len(normalize_name(long_name)) > 30

    def test_only_symbols(self):
        assert normalize_name("---") == ""
        assert normalize_name("") == ""


@pytest.mark.unit
class TestPrices:
    def test_map_google_price_level(self):
        assert map_google_price_level("PRICE_LEVEL_MODERATE") == PriceLevel.MODERATE
        assert map_google_price_level("PRICE_LEVEL_VERY_EXPENSIVE") == PriceLevel.VERY_EXPENSIVE
        assert map_google_price_level("PRICE_LEVEL_UNSPECIFIED") is None
        assert map_google_price_level(None) is None

    def test_coerce_price_level_clamps(self):
        assert coerce_price_level(3) == PriceLevel.EXPENSIVE
        assert coerce_price_level(7) == PriceLevel.VERY_EXPENSIVE
        assert coerce_price_level(-1) == PriceLevel.FREE
        assert coerce_price_level(None) is None

    def test_coerce_price_level_accepts_numeric_strings(self):
        assert coerce_price_level("3") == PriceLevel.EXPENSIVE
        assert coerce_price_level("12") == PriceLevel.VERY_EXPENSIVE
        assert coerce_price_level("pricey") is None

    def test_estimate_price_range(self):
        assert estimate_price_range(PriceLevel.INEXPENSIVE) == (30, 60)
        assert estimate_price_range(PriceLevel.MODERATE) == (60, 100)
        assert estimate_price_range(PriceLevel.EXPENSIVE) == (100, 175)
        assert estimate_price_range(PriceLevel.VERY_EXPENSIVE) == (150, 250)
        assert estimate_price_range(None) == DEFAULT_PRICE_RANGE


@pytest.mark.unit
class TestAddresses:
    def test_extract_neighborhood(self):
        assert extract_neighborhood("567 Union Ave, Williamsburg, Brooklyn, NY 11211") == "Williamsburg"
        assert extract_neighborhood("123 Main St, Springfield") is None
        assert extract_neighborhood(None) is None

    def test_extract_neighborhood_whole_words_only(self):
        assert extract_neighborhood("10 Charles St, New York, NY 10014") is None

    def test_extract_borough(self):
        assert extract_borough("178 Broadway, Brooklyn, NY 11211") == "Brooklyn"
        assert extract_borough("1 Main St, Queens, NY") == "Queens"
        assert extract_borough("60 E 65th St, New York, NY 10065") == "Manhattan"
        assert extract_borough("1 Main St, Chicago, IL") is None


@pytest.mark.unit
class TestDomains:
    def test_normalize_url(self):
        assert normalize_url("example.com") == "https://example.com"
        assert normalize_url("//example.com") == "https://example.com"
        assert normalize_url("http://example.com") == "http://example.com"
        assert normalize_url("  ") == ""

    def test_extract_domain(self):
        assert extract_domain("https://www.lilianewyork.com/private-events") == "lilianewyork.com"
        assert extract_domain("lilianewyork.com") == "lilianewyork.com"
        assert extract_domain(None) is None

    def test_is_skipped_domain(self):
        assert is_skipped_domain("resy.com")
        assert is_skipped_domain("ny.eater.com")
        assert is_skipped_domain("instagram.com")
        assert is_skipped_domain(None)
        assert not is_skipped_domain("lilianewyork.com")


@pytest.mark.unit
class TestRunInGroups:
    @pytest.mark.asyncio
    async def test_keeps_input_order(self):
        async def double(x):
            await asyncio.sleep(0.001 * (5 - x))
            return x * 2

        assert await run_in_groups([1, 2, 3, 4, 5], double, concurrency=2, pause_seconds=0) == [2, 4, 6, 8, 10]

    @pytest.mark.asyncio
    async def test_limits_concurrency(self):
        in_flight = 0
        peak = 0

        async def track(_):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1

        await run_in_groups(list(range(12)), track, concurrency=5, pause_seconds=0)
        assert peak == 5

    @pytest.mark.asyncio
    async def test_empty(self):
        async def never(_):
            raise AssertionError("should not be called")

        assert await run_in_groups([], never) == []

    @pytest.mark.asyncio
    async def test_rejects_zero_concurrency(self):
        async def noop(x):
            return x

        with pytest.raises(ValueError):
            await run_in_groups([1], noop, concurrency=0)
