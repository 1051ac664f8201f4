"""Discovery service: runs one venue discovery session per request.

A session walks INIT -> SEARCHING (once per region) -> ENRICHING -> DONE,
or FAILED when nothing can run or an unexpected fault occurs. Adapters run
concurrently within a region; regions run one after another so that the
resolver and the running result list have a single writer.
"""

import asyncio
import contextlib
import inspect
import uuid
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional, Sequence

from loguru import logger

from vroom.config import Settings
from vroom.core.logging import log_execution_time, session_id_var
from vroom.services.discovery.enrichment.geocode import GeocodeFallback
from vroom.services.discovery.enrichment.hunter import HunterClient
from vroom.services.discovery.errors import DiscoveryError
from vroom.services.discovery.models import (
    Candidate,
    DiscoveryRequest,
    DiscoveryResult,
    DiscoverySummary,
    MergedEntity,
    ProviderId,
    Region,
    SearchFilters,
    SessionState,
)
from vroom.services.discovery.progress import ProgressChannel
from vroom.services.discovery.regions import compute_regions, per_region_limit
from vroom.services.discovery.resolver import IdentityResolver
from vroom.services.discovery.scheduler import interleave_by_provider
from vroom.services.discovery.sources import SourceAdapter, build_sources
from vroom.services.discovery.utils import extract_domain, is_skipped_domain, run_in_groups

_STREAM_END = object()


def build_summary(entities: Sequence[MergedEntity]) -> DiscoverySummary:
    by_provider: dict[ProviderId, int] = {}
    for entity in entities:
        by_provider[entity.discovery_source] = by_provider.get(entity.discovery_source, 0) + 1
    return DiscoverySummary(
        total=len(entities),
        by_provider={p: by_provider[p] for p in ProviderId if p in by_provider},
        with_private_dining=sum(1 for e in entities if e.has_private_dining),
        with_verified_email=sum(1 for e in entities if e.has_verified_email),
        with_coordinates=sum(1 for e in entities if e.has_coordinates),
    )


def format_summary(summary: DiscoverySummary) -> str:
    providers = ", ".join(f"{p.label}: {n}" for p, n in summary.by_provider.items()) or "none"
    return (
        f"Discovery complete: {summary.total} venues ({providers}) | "
        f"{summary.with_private_dining} with private dining | "
        f"{summary.with_verified_email} with verified email"
    )


class DiscoverySession:
    """One request-to-result discovery run. Single use."""

    def __init__(
        self,
        request: DiscoveryRequest,
        sources: Sequence[SourceAdapter],
        email_finder: Optional[HunterClient] = None,
        geocoder: Optional[GeocodeFallback] = None,
        enrichment_concurrency: int = 5,
        enrichment_pause_seconds: float = 0.2,
        session_id: Optional[str] = None,
    ):
        self.request = request
        self.sources = list(sources)
        self.email_finder = email_finder
        self.geocoder = geocoder
        self.enrichment_concurrency = enrichment_concurrency
        self.enrichment_pause_seconds = enrichment_pause_seconds
        self.session_id = session_id or uuid.uuid4().hex[:8]

        self.state = SessionState.INIT
        self.current_region: Optional[Region] = None
        self.resolver = IdentityResolver()
        self.result: Optional[DiscoveryResult] = None
        self._keys: list[str] = []
        self._listeners: list = []
        self._started = False

    @property
    def entities(self) -> list[MergedEntity]:
        """Running result list in discovery order (not yet truncated)."""
        return [self.resolver.get(key) for key in self._keys]

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @log_execution_time
    async def run(self) -> DiscoveryResult:
        """Run the session to completion.

        Never raises for provider, enrichment or configuration problems;
        those end in DONE (possibly empty) or FAILED with a single error
        event. Cancellation propagates and stops all further events.
        """
        if self._started:
            raise DiscoveryError("A discovery session can only be run once")
        self._started = True

        token = session_id_var.set(self.session_id)
        try:
            async with ProgressChannel(self._dispatch) as progress:
                try:
                    self.result = await self._run(progress)
                except asyncio.CancelledError:
                    self.state = SessionState.FAILED
                    raise
                except Exception as e:
                    logger.exception(f"Discovery session {self.session_id} failed")
                    self.result = self._fail(progress, f"Discovery failed: {e}")
        finally:
            session_id_var.reset(token)
        return self.result

    async def stream(self) -> AsyncIterator:
        """Run the session and yield its progress events as they are delivered.

        Closing the iterator early (e.g. ``break`` inside ``aclosing``)
        cancels the session.
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._listeners.append(queue.put_nowait)
        task = asyncio.create_task(self.run())
        task.add_done_callback(lambda _: queue.put_nowait(_STREAM_END))
        try:
            while True:
                event = await queue.get()
                if event is _STREAM_END:
                    break
                yield event
            await task
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _run(self, progress: ProgressChannel) -> DiscoveryResult:
        request = self.request
        regions = compute_regions(request)
        adapters = [s for s in self.sources if s.provider in request.sources]

        progress.info(
            f"Starting discovery in {request.city}: "
            f"sources={', '.join(s.provider.label for s in adapters) or 'none'}, "
            f"regions={', '.join(r.label for r in regions)}, "
            f"cuisine={request.cuisine or 'any'}, party size={request.party_size}"
        )

        if not adapters:
            progress.warn("No discovery sources enabled")
            return self._fail(progress, "No discovery sources enabled")

        for adapter in adapters:
            if not adapter.configured:
                progress.warn(f"{adapter.provider.label} is not configured, skipping")
        adapters = [a for a in adapters if a.configured]
        if not adapters:
            return self._fail(progress, "None of the enabled discovery sources are configured")

        self.state = SessionState.SEARCHING
        region_limit = per_region_limit(request.limit, len(regions))
        for index, region in enumerate(regions):
            self.current_region = region
            active = [a for a in adapters if a.region_scoped or index == 0]
            if len(regions) > 1:
                progress.info(f"Searching {region.label} ({index + 1}/{len(regions)})")
            results = await asyncio.gather(
                *[
                    a.search(region, self._filters(region_limit if a.region_scoped else request.limit), progress)
                    for a in active
                ]
            )
            self._aggregate({a.provider: r for a, r in zip(active, results)}, progress)
        self.current_region = None

        progress.info(f"Found {len(self._keys)} unique venues")

        self.state = SessionState.ENRICHING
        keys = self._keys[: request.limit]
        await self._geocode(keys, progress)
        await self._find_emails(keys, progress)

        final = [self.resolver.get(key) for key in keys]
        summary = build_summary(final)
        progress.success(format_summary(summary))
        self.state = SessionState.DONE
        progress.complete(final, summary)
        return DiscoveryResult(state=SessionState.DONE, entities=final, summary=summary)

    def _filters(self, limit: int) -> SearchFilters:
        return SearchFilters(
            city=self.request.city,
            cuisine=self.request.cuisine,
            party_size=self.request.party_size,
            limit=limit,
        )

    def _aggregate(
        self, results: dict[ProviderId, list[Candidate]], progress: ProgressChannel
    ) -> None:
        """Fold one region's results into the session and append its new venues."""
        new_keys: dict[ProviderId, list[str]] = {}
        for provider in ProviderId:
            if provider not in results:
                continue
            keys: list[str] = []
            for candidate in results[provider]:
                try:
                    entity, is_new = self.resolver.ingest(candidate)
                except ValueError as e:
                    logger.debug(f"[{provider.label}] Skipping candidate: {e}")
                    continue
                if is_new:
                    keys.append(entity.key)
            new_keys[provider] = keys

        for key in interleave_by_provider(new_keys):
            self._keys.append(key)
            progress.candidate_found(self.resolver.get(key))

    def _fail(self, progress: ProgressChannel, message: str) -> DiscoveryResult:
        self.state = SessionState.FAILED
        progress.error(message)
        return DiscoveryResult(state=SessionState.FAILED, error=message)

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _geocode(self, keys: list[str], progress: ProgressChannel) -> None:
        """Backfill coordinates for venues only the semantic search knew about."""
        targets = [
            key
            for key in keys
            if not self.resolver.get(key).has_coordinates
            and self.resolver.get(key).sources == [ProviderId.EXA]
        ]
        if not targets:
            return
        if self.geocoder is None or not self.geocoder.configured:
            progress.info(f"Geocoding unavailable, {len(targets)} venues left without coordinates")
            return

        progress.info(f"Geocoding {len(targets)} venues")

        async def lookup(key: str):
            entity = self.resolver.get(key)
            try:
                return await self.geocoder.geocode(entity.name, entity.city or self.request.city)
            except Exception as e:
                logger.info(f"[Geocode] Lookup failed for {entity.name}: {e}")
                return None

        results = await run_in_groups(
            targets,
            lookup,
            concurrency=self.enrichment_concurrency,
            pause_seconds=self.enrichment_pause_seconds,
        )

        located = 0
        for key, result in zip(targets, results):
            if result is None:
                continue
            updated = self.resolver.apply_geocode(key, result)
            if updated is not None:
                located += 1
                progress.candidate_updated(updated)
        progress.info(f"Geocoded {located} of {len(targets)} venues")

    async def _find_emails(self, keys: list[str], progress: ProgressChannel) -> None:
        """Look up contact emails for venues with a website but no email."""
        targets: list[tuple[str, str]] = []
        for key in keys:
            entity = self.resolver.get(key)
            if entity.email or not entity.website:
                continue
            domain = extract_domain(entity.website)
            if domain and not is_skipped_domain(domain):
                targets.append((key, domain))
        if not targets:
            return
        if self.email_finder is None or not self.email_finder.configured:
            progress.info("Email lookup unavailable, skipping email enrichment")
            return

        domains = list(dict.fromkeys(domain for _, domain in targets))
        progress.info(f"Looking up contact emails for {len(domains)} domains")
        try:
            found = await self.email_finder.find_emails_batch(
                domains,
                concurrency=self.enrichment_concurrency,
                pause_seconds=self.enrichment_pause_seconds,
            )
        except Exception as e:
            progress.info(f"Email lookup failed: {e}")
            return

        verified = 0
        for key, domain in targets:
            result = found.get(domain)
            if result is None:
                continue
            updated = self.resolver.apply_email(key, result)
            if updated is not None:
                verified += 1
                progress.candidate_updated(updated)

        if verified:
            progress.success(f"Found {verified} verified emails")
        else:
            progress.info("No verified emails found")

    # ------------------------------------------------------------------
    # Event fan-out
    # ------------------------------------------------------------------

    async def _dispatch(self, event) -> None:
        for listener in self._listeners:
            listener(event)
        if self.request.progress_sink is not None:
            result = self.request.progress_sink(event)
            if inspect.isawaitable(result):
                await result


class IService(ABC):
    """Interface for the discovery service."""

    @abstractmethod
    def create_session(self, request: DiscoveryRequest) -> DiscoverySession: ...

    @abstractmethod
    async def discover(self, request: DiscoveryRequest) -> DiscoveryResult: ...


class Service(IService):
    """Discovery service: builds sessions wired to the configured providers."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def create_session(self, request: DiscoveryRequest) -> DiscoverySession:
        s = self.settings
        return DiscoverySession(
            request,
            build_sources(s, request.sources),
            email_finder=HunterClient(
                s.hunter_api_key,
                min_confidence=s.min_email_confidence,
                http_timeout=s.http_timeout_seconds,
            ),
            geocoder=GeocodeFallback(s.google_places_api_key, http_timeout=s.http_timeout_seconds),
            enrichment_concurrency=s.enrichment_concurrency,
            enrichment_pause_seconds=s.enrichment_group_pause_seconds,
        )

    async def discover(self, request: DiscoveryRequest) -> DiscoveryResult:
        """Run a fresh session for ``request`` and return its result."""
        return await self.create_session(request).run()
