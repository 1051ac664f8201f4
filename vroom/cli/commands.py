import asyncio
from typing import Optional

import typer

from vroom.config import settings
from vroom.services.discovery.models import (
    Bounds,
    DiscoveryRequest,
    EventLevel,
    LatLng,
    ProviderId,
    SessionState,
)
from vroom.services.discovery.regions import NYC_NEIGHBORHOOD_BOUNDS
from vroom.services.discovery.service import Service

app = typer.Typer()

_LEVEL_TAGS = {
    EventLevel.INFO: "info",
    EventLevel.SUCCESS: " ok ",
    EventLevel.WARN: "warn",
    EventLevel.ERROR: "FAIL",
}


def parse_bounds(value: Optional[str]) -> Optional[Bounds]:
    """"sw_lat,sw_lng,ne_lat,ne_lng" -> Bounds."""
    if not value:
        return None
    try:
        sw_lat, sw_lng, ne_lat, ne_lng = (float(p) for p in value.split(","))
    except ValueError:
        raise typer.BadParameter("expected four comma-separated numbers: sw_lat,sw_lng,ne_lat,ne_lng")
    return Bounds(
        southwest=LatLng(lat=sw_lat, lng=sw_lng),
        northeast=LatLng(lat=ne_lat, lng=ne_lng),
    )


def parse_sources(values: Optional[list[str]]) -> set[ProviderId]:
    names = values or settings.default_sources
    try:
        return {ProviderId(name.strip().lower()) for name in names}
    except ValueError:
        valid = ", ".join(p.value for p in ProviderId)
        raise typer.BadParameter(f"unknown source in {names}; choose from: {valid}")


def format_event(event) -> Optional[str]:
    if event.type == "log":
        return f"[{_LEVEL_TAGS[event.level]}] {event.message}"
    if event.type == "candidate_found":
        return f"  + {event.entity.name} ({event.entity.discovery_source.label})"
    if event.type == "candidate_updated":
        entity = event.entity
        details = ", ".join(
            d for d in (entity.email, entity.address) if d
        )
        return f"  ~ {entity.name}" + (f": {details}" if details else "")
    if event.type == "error":
        return f"[FAIL] {event.message}"
    return None


@app.command()
def discover(
    city: str = typer.Option(None, "--city", "-c", help="City to search (defaults to DEFAULT_CITY)"),
    neighborhood: list[str] = typer.Option(None, "--neighborhood", "-n", help="Neighborhood to search; repeatable"),
    bounds: str = typer.Option(None, "--bounds", "-b", help="Map area 'sw_lat,sw_lng,ne_lat,ne_lng'; overrides neighborhoods"),
    cuisine: str = typer.Option(None, "--cuisine", help="Cuisine filter, e.g. italian"),
    party_size: int = typer.Option(None, "--party-size", "-p", help="Group size"),
    source: list[str] = typer.Option(None, "--source", "-s", help="Provider id; repeatable (google_places, resy, opentable, beli, exa)"),
    limit: int = typer.Option(None, "--limit", "-l", help="Maximum venues to return"),
    as_json: bool = typer.Option(False, "--json", help="Print progress events as JSON lines"),
):
    """
    Discover private-dining venues and stream progress as it happens.

    Examples:
        # Citywide, default providers
        vroom discover

        # Two neighborhoods, every provider
        vroom discover -n Williamsburg -n SoHo -s google_places -s resy -s opentable -s exa

        # Map area
        vroom discover --bounds 40.70,-74.02,40.73,-73.99 --limit 10
    """
    request = DiscoveryRequest(
        city=city or settings.default_city,
        neighborhoods=neighborhood or [],
        bounds=parse_bounds(bounds),
        cuisine=cuisine,
        party_size=party_size or settings.default_party_size,
        sources=parse_sources(source),
        limit=settings.default_limit if limit is None else limit,
    )

    def print_event(event):
        if as_json:
            print(event.model_dump_json())
            return
        line = format_event(event)
        if line:
            print(line)

    async def run():
        session = Service(settings).create_session(request)
        async for event in session.stream():
            print_event(event)
        return session

    session = asyncio.run(run())

    result = session.result
    if not as_json and result is not None and result.state == SessionState.DONE:
        print()
        for i, entity in enumerate(result.entities, start=1):
            contact = entity.email or entity.website or "-"
            sources = "/".join(p.value for p in entity.sources)
            print(f"{i:>3}. {entity.name} [{sources}] {entity.neighborhood or ''} {contact}")

    if session.state == SessionState.FAILED:
        raise typer.Exit(code=1)


@app.command()
def neighborhoods():
    """List neighborhoods with a known bounding box."""
    for name, box in NYC_NEIGHBORHOOD_BOUNDS.items():
        sw, ne = box.southwest, box.northeast
        print(f"{name:<20} ({sw.lat:.4f},{sw.lng:.4f}) - ({ne.lat:.4f},{ne.lng:.4f})")
