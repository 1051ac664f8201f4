"""Unit tests for the OpenTable discovery source."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vroom.services.discovery.models import (
    PriceLevel,
    ProviderId,
    Region,
    ReservationPlatform,
    SearchFilters,
)
from vroom.services.discovery.sources.opentable import (
    OpenTableSource,
    extract_slug,
    get_metro_id,
    reservation_url,
)

CLIENT_PATH = "vroom.services.discovery.sources.opentable.httpx.AsyncClient"


def _restaurant(rid, name, link=None):
    return {
        "rid": rid,
        "name": name,
        "primaryCuisine": {"name": "Steakhouse"},
        "priceRange": 4,
        "statistics": {"reviews": {"ratings": {"overall": {"rating": 4.5}}, "count": 900}},
        "urls": {"profileLink": {"link": link}},
        "location": {
            "latitude": 40.7099,
            "longitude": -73.9623,
            "neighborhood": "Williamsburg",
            "address": "178 Broadway",
            "city": "Brooklyn",
        },
    }


def _mock_post(MockClient, status_code=200, restaurants=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = {"data": {"restaurantSearch": {"restaurants": restaurants or []}}}
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=resp)
    MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    MockClient.return_value.__aexit__ = AsyncMock(return_value=False)
    return mock_client


@pytest.mark.unit
class TestHelpers:
    def test_get_metro_id(self):
        assert get_metro_id("New York") == 4
        assert get_metro_id(" chicago ") == 3
        assert get_metro_id("Austin") == 40
        assert get_metro_id("Timbuktu") == 4

    def test_extract_slug(self):
        assert extract_slug("https://www.opentable.com/r/peter-luger-brooklyn?corrid=1") == "peter-luger-brooklyn"
        assert extract_slug("https://www.opentable.com/peter-luger") is None
        assert extract_slug(None) is None

    def test_reservation_url_with_slug(self):
        url = reservation_url(123, "peter-luger-brooklyn", party_size=20, search_date="2026-10-20")
        assert url == (
            "https://www.opentable.com/r/peter-luger-brooklyn"
            "?covers=20&dateTime=2026-10-20T19%3A00"
        )

    def test_reservation_url_without_slug(self):
        assert reservation_url(123) == "https://www.opentable.com/restref/client/?rid=123"
        assert reservation_url(123, party_size=8).endswith("?rid=123&covers=8")


@pytest.mark.unit
class TestOpenTableSource:
    @pytest.mark.asyncio
    async def test_search_maps_restaurants(self):
        source = OpenTableSource()
        filters = SearchFilters(city="New York", cuisine="steakhouse", party_size=12, limit=5)

        with patch(CLIENT_PATH) as MockClient:
            mock_client = _mock_post(
                MockClient,
                restaurants=[
                    _restaurant(1505, "Peter Luger", "https://www.opentable.com/r/peter-luger-brooklyn"),
                    {"rid": 9, "name": "  "},
                ],
            )
            results = await source.search(Region(neighborhood="Williamsburg"), filters)

        assert len(results) == 1
        venue = results[0]
        assert venue.provider == ProviderId.OPENTABLE
        assert venue.opentable_id == "1505"
        assert venue.cuisine == "Steakhouse"
        assert venue.rating == 4.5
        assert (venue.price_per_person_min, venue.price_per_person_max) == (120, 300)
        assert venue.reservation_platform == ReservationPlatform.OPENTABLE
        assert venue.reservation_url.startswith("https://www.opentable.com/r/peter-luger-brooklyn?covers=12")
        assert venue.website is None

        payload = mock_client.post.call_args.kwargs["json"]
        assert payload["operationName"] == "RestaurantSearch"
        assert payload["variables"]["metroId"] == 4
        assert payload["variables"]["covers"] == 12
        assert payload["variables"]["first"] == 5
        assert payload["variables"]["term"] == "steakhouse Williamsburg private dining"
        assert payload["variables"]["dateTime"].endswith("T19:00")

    @pytest.mark.asyncio
    async def test_http_error_returns_empty(self):
        source = OpenTableSource()

        with patch(CLIENT_PATH) as MockClient:
            _mock_post(MockClient, status_code=403)
            results = await source.search(Region(), SearchFilters(city="New York"))

        assert results == []

    @pytest.mark.asyncio
    async def test_malformed_payload_returns_empty(self):
        source = OpenTableSource()

        with patch(CLIENT_PATH) as MockClient:
            mock_client = _mock_post(MockClient)
            mock_client.post.return_value.json.side_effect = ValueError("not json")
            results = await source.search(Region(), SearchFilters(city="New York"))

        assert results == []

    @pytest.mark.asyncio
    async def test_price_range_is_coerced_before_estimating(self):
        source = OpenTableSource()
        string_range = _restaurant(1505, "Peter Luger")
        string_range["priceRange"] = "4"
        out_of_range = _restaurant(77, "Keens")
        out_of_range["priceRange"] = 12

        with patch(CLIENT_PATH) as MockClient:
            _mock_post(MockClient, restaurants=[string_range, out_of_range])
            results = await source.search(Region(), SearchFilters(city="New York"))

        assert [c.price_level for c in results] == [PriceLevel.VERY_EXPENSIVE, PriceLevel.VERY_EXPENSIVE]
        for venue in results:
            assert (venue.price_per_person_min, venue.price_per_person_max) == (120, 300)
