"""Unit tests for the geocode fallback."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from vroom.services.discovery.enrichment.geocode import GeocodeFallback, best_match
from vroom.services.discovery.models import PriceLevel

CLIENT_PATH = "vroom.services.discovery.enrichment.geocode.httpx.AsyncClient"

DON_ANGIE = {
    "id": "place-don-angie",
    "displayName": {"text": "Don Angie"},
    "formattedAddress": "103 Greenwich Ave, New York, NY 10014",
    "location": {"latitude": 40.7377, "longitude": -74.0017},
    "rating": 4.6,
    "nationalPhoneNumber": "(212) 889-8884",
    "websiteUri": "https://www.donangie.com/",
    "priceLevel": "PRICE_LEVEL_EXPENSIVE",
}


def _mock_post(MockClient, places=None, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = "error"
    resp.json.return_value = {"places": places or []}
    mock_client = AsyncMock()
    mock_client.post = AsyncMock(return_value=resp)
    MockClient.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    MockClient.return_value.__aexit__ = AsyncMock(return_value=False)
    return mock_client


@pytest.mark.unit
class TestBestMatch:
    def test_prefers_name_match(self):
        other = {"displayName": {"text": "Joe's Pizza"}}
        assert best_match("Don Angie", [other, DON_ANGIE]) is DON_ANGIE

    def test_falls_back_to_first(self):
        other = {"displayName": {"text": "Joe's Pizza"}}
        assert best_match("Don Angie", [other]) is other

    def test_empty(self):
        assert best_match("Don Angie", []) is None


@pytest.mark.unit
class TestGeocodeFallback:
    @pytest.mark.asyncio
    async def test_geocode(self):
        geocoder = GeocodeFallback(api_key="places-key")

        with patch(CLIENT_PATH) as MockClient:
            mock_client = _mock_post(MockClient, places=[DON_ANGIE])
            result = await geocoder.geocode("Don Angie", "New York")

        assert result.latitude == 40.7377
        assert result.longitude == -74.0017
        assert result.address == "103 Greenwich Ave, New York, NY 10014"
        assert result.google_place_id == "place-don-angie"
        assert result.price_level == PriceLevel.EXPENSIVE
        body = mock_client.post.call_args.kwargs["json"]
        assert body["textQuery"] == "Don Angie restaurant New York"
        assert body["maxResultCount"] == 3

    @pytest.mark.asyncio
    async def test_no_location(self):
        geocoder = GeocodeFallback(api_key="places-key")

        with patch(CLIENT_PATH) as MockClient:
            _mock_post(MockClient, places=[{"displayName": {"text": "Don Angie"}}])
            assert await geocoder.geocode("Don Angie", "New York") is None

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self):
        geocoder = GeocodeFallback(api_key="places-key")

        with patch(CLIENT_PATH) as MockClient:
            _mock_post(MockClient, status_code=500)
            assert await geocoder.geocode("Don Angie", "New York") is None

    @pytest.mark.asyncio
    async def test_missing_key(self):
        geocoder = GeocodeFallback(api_key=None)
        assert not geocoder.configured

        with patch(CLIENT_PATH) as MockClient:
            assert await geocoder.geocode("Don Angie", "New York") is None
            MockClient.assert_not_called()
