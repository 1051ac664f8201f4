"""Prefect flows for venue discovery."""

from typing import Optional

from prefect import flow, task

from vroom.config import settings
from vroom.services.discovery.models import (
    Bounds,
    DiscoveryRequest,
    DiscoveryResult,
    ProviderId,
)
from vroom.services.discovery.service import Service


@task(log_prints=True)
async def run_discovery_task(request: DiscoveryRequest) -> DiscoveryResult:
    """Run one discovery session."""
    svc = Service(settings)
    return await svc.discover(request)


@flow(name="discover-venues", log_prints=True)
async def discover_venues_flow(
    city: Optional[str] = None,
    neighborhoods: Optional[list[str]] = None,
    bounds: Optional[dict] = None,
    cuisine: Optional[str] = None,
    party_size: Optional[int] = None,
    sources: Optional[list[str]] = None,
    limit: Optional[int] = None,
) -> dict:
    """Discover private-dining venues across the enabled providers.

    Args:
        city: City to search (defaults to DEFAULT_CITY).
        neighborhoods: Neighborhoods to search one after another.
        bounds: Map area ``{"southwest": {"lat", "lng"}, "northeast": {...}}``;
            overrides neighborhoods.
        cuisine: Optional cuisine filter (e.g. 'italian').
        party_size: Group size (defaults to DEFAULT_PARTY_SIZE).
        sources: Provider ids, e.g. ['google_places', 'resy'].
        limit: Maximum venues returned (defaults to DEFAULT_LIMIT).
    """
    request = DiscoveryRequest(
        city=city or settings.default_city,
        neighborhoods=neighborhoods or [],
        bounds=Bounds.model_validate(bounds) if bounds else None,
        cuisine=cuisine,
        party_size=party_size or settings.default_party_size,
        sources={ProviderId(s) for s in (sources or settings.default_sources)},
        limit=settings.default_limit if limit is None else limit,
    )

    result = await run_discovery_task(request)

    return {
        "state": result.state.value,
        "count": len(result.entities),
        "summary": result.summary.model_dump(mode="json"),
        "venues": [e.model_dump(mode="json") for e in result.entities],
    }
