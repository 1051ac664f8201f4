"""Discovery source adapters and the registry that builds them from settings."""

from typing import Iterable

from vroom.config import Settings
from vroom.services.discovery.models import ProviderId
from vroom.services.discovery.sources.base import SourceAdapter
from vroom.services.discovery.sources.clawdbot import BeliSource, ClawdbotClient
from vroom.services.discovery.sources.exa import ExaSource
from vroom.services.discovery.sources.google_places import GooglePlacesSource
from vroom.services.discovery.sources.opentable import OpenTableSource
from vroom.services.discovery.sources.resy import ResySource

# Extra headroom on top of Clawdbot's polling budget for scheduling the task
CLAWDBOT_TIMEOUT_MARGIN_SECONDS = 10.0


def build_source(provider: ProviderId, settings: Settings) -> SourceAdapter:
    timeout = settings.source_timeout_seconds
    http_timeout = settings.http_timeout_seconds

    if provider == ProviderId.GOOGLE_PLACES:
        return GooglePlacesSource(
            settings.google_places_api_key, timeout=timeout, http_timeout=http_timeout
        )
    if provider == ProviderId.RESY:
        return ResySource(settings.resy_api_key, timeout=timeout, http_timeout=http_timeout)
    if provider == ProviderId.OPENTABLE:
        return OpenTableSource(timeout=timeout, http_timeout=http_timeout)
    if provider == ProviderId.BELI:
        client = ClawdbotClient(
            settings.clawdbot_api_key,
            base_url=settings.clawdbot_api_url,
            http_timeout=http_timeout,
        )
        return BeliSource(
            client,
            timeout=max(
                timeout, settings.clawdbot_max_wait_seconds + CLAWDBOT_TIMEOUT_MARGIN_SECONDS
            ),
            max_wait_seconds=settings.clawdbot_max_wait_seconds,
            poll_interval_seconds=settings.clawdbot_poll_interval_seconds,
        )
    if provider == ProviderId.EXA:
        return ExaSource(settings.exa_api_key, timeout=timeout, http_timeout=http_timeout)
    raise ValueError(f"Unknown provider: {provider}")


def build_sources(settings: Settings, enabled: Iterable[ProviderId]) -> list[SourceAdapter]:
    """Adapters for the enabled providers, in provider declaration order."""
    wanted = set(enabled)
    return [build_source(p, settings) for p in ProviderId if p in wanted]


__all__ = [
    "SourceAdapter",
    "GooglePlacesSource",
    "ResySource",
    "OpenTableSource",
    "BeliSource",
    "ClawdbotClient",
    "ExaSource",
    "build_source",
    "build_sources",
]
