from unittest.mock import patch

import pytest
import typer
from typer.testing import CliRunner

from vroom.cli.commands import app, format_event, parse_bounds, parse_sources
from vroom.services.discovery.models import (
    Candidate,
    CandidateFoundEvent,
    EventLevel,
    LogEvent,
    ProviderId,
)
from vroom.services.discovery.resolver import entity_from_candidate
from vroom.services.discovery.service import DiscoverySession
from vroom.services.discovery.sources import SourceAdapter

runner = CliRunner()


class StaticSource(SourceAdapter):
    provider = ProviderId.GOOGLE_PLACES

    def __init__(self, names):
        super().__init__(timeout=5)
        self.names = names

    async def _search(self, region, filters, progress):
        return [Candidate(name=n, provider=self.provider) for n in self.names]


@pytest.mark.unit
class TestParsers:
    def test_parse_bounds(self):
        bounds = parse_bounds("40.70,-74.02,40.73,-73.99")
        assert bounds.southwest.lat == 40.70
        assert bounds.northeast.lng == -73.99
        assert parse_bounds(None) is None

    def test_parse_bounds_rejects_garbage(self):
        with pytest.raises(typer.BadParameter):
            parse_bounds("40.70,-74.02")

    def test_parse_sources(self):
        assert parse_sources(["resy", " EXA "]) == {ProviderId.RESY, ProviderId.EXA}
        with pytest.raises(typer.BadParameter):
            parse_sources(["yelp"])

    def test_format_event(self):
        entity = entity_from_candidate(Candidate(name="Lilia", provider=ProviderId.RESY))
        assert format_event(LogEvent(message="hello", level=EventLevel.WARN)) == "[warn] hello"
        assert format_event(CandidateFoundEvent(entity=entity)) == "  + Lilia (Resy)"


@pytest.mark.unit
class TestCommands:
    def test_neighborhoods(self):
        result = runner.invoke(app, ["neighborhoods"])

        assert result.exit_code == 0
        assert "Williamsburg" in result.output

    def test_discover_streams_and_lists_venues(self):
        with patch("vroom.cli.commands.Service") as MockService:
            MockService.return_value.create_session.side_effect = lambda request: DiscoverySession(
                request, [StaticSource(["Lilia", "Carbone"])]
            )
            result = runner.invoke(app, ["discover", "-s", "google_places", "-l", "5"])

        assert result.exit_code == 0
        assert "  + Lilia (Google Places)" in result.output
        assert "  1. Lilia [google_places]" in result.output
        assert "  2. Carbone [google_places]" in result.output

    def test_discover_exits_nonzero_on_failure(self):
        with patch("vroom.cli.commands.Service") as MockService:
            MockService.return_value.create_session.side_effect = lambda request: DiscoverySession(
                request, []
            )
            result = runner.invoke(app, ["discover", "-s", "resy"])

        assert result.exit_code == 1
        assert "[FAIL]" in result.output

    def test_discover_rejects_unknown_source(self):
        result = runner.invoke(app, ["discover", "-s", "yelp"])

        assert result.exit_code != 0
