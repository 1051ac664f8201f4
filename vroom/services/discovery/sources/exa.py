"""Exa semantic web search source.

Two query strategies run per session: one for restaurants' own websites,
one restricted to review sites. Candidates carry a name and website only;
location data is filled in later by the geocode fallback.
"""

import math
import re
from typing import Optional

import httpx
from loguru import logger
from pydantic import BaseModel

from vroom.core.logging import log_http_request
from vroom.services.discovery.errors import ConfigurationError, ProviderError
from vroom.services.discovery.models import Candidate, ProviderId, Region, SearchFilters
from vroom.services.discovery.progress import ProgressChannel
from vroom.services.discovery.sources.base import DEFAULT_SOURCE_TIMEOUT, SourceAdapter
from vroom.services.discovery.utils import extract_domain, normalize_name

EXA_API_URL = "https://api.exa.ai/search"

REVIEW_SITE_DOMAINS = [
    "theinfatuation.com",
    "eater.com",
    "timeout.com",
    "ny.eater.com",
    "nymag.com",
]

_PAGE_PREFIX = re.compile(
    r"^(home|about|menu|contact|faq|experience|private dining|private events|"
    r"groups & events|book|reservations?)\s*[-|–—:]\s*",
    re.I,
)
_WELCOME_PREFIX = re.compile(r"^(official website of|welcome to)\s*", re.I)
_DASH_SUFFIX = re.compile(
    r"\s*[-|–—]\s*(private dining|private events|events|menu|home|reservations?|about|"
    r"contact|nyc?|new york.*|opentable|yelp|resy).*$",
    re.I,
)
_PIPE_SUFFIX = re.compile(
    r"\s*\|\s*(private dining|private events|events|menu|home|reservations?|about|"
    r"contact|nyc?|new york.*|opentable|yelp|resy|restaurant|modern.*restaurant).*$",
    re.I,
)
_IN_NEW_YORK = re.compile(r"\s+in\s+new\s+york.*$", re.I)
_RESTAURANT_SUFFIX = re.compile(r"\s+(restaurant|restaurants)$", re.I)
_SINGLE_REVIEW = re.compile(r"^(?:review[:\s]+)?([^|–—]+?)(?:\s+review)?$", re.I)

GENERIC_PAGE_PATTERNS = [
    re.compile(p, re.I)
    for p in (
        r"^home$",
        r"^private dining$",
        r"^private events$",
        r"^group dining$",
        r"^events$",
        r"^contact$",
        r"^about$",
        r"^menu$",
        r"^faq$",
        r"^experience$",
        r"^reservations?$",
        r"^book$",
        r"^groups?$",
        r"^\d+ best",
        r"^the \d+ best",
        r"^where to",
        r"^guide to",
    )
]
LIST_URL_MARKERS = ("/best-", "/top-", "/guide")


class ExaResult(BaseModel):
    url: str
    title: Optional[str] = None
    text: Optional[str] = None


def build_direct_query(city: str, cuisine: Optional[str] = None) -> str:
    parts = ["private dining room", "restaurant", cuisine, city]
    return " ".join(p for p in parts if p)


def build_review_query(city: str, cuisine: Optional[str] = None) -> str:
    parts = ["best private dining", "group dinner", cuisine, city]
    return " ".join(p for p in parts if p)


def is_generic_page(name: str, url: str) -> bool:
    """Section pages and list articles rather than a single venue."""
    if any(p.search(name) for p in GENERIC_PAGE_PATTERNS):
        return True
    return any(marker in url for marker in LIST_URL_MARKERS)


def clean_title(title: str) -> str:
    """Pull a venue name out of a page title like "Name | Private Dining"."""
    name = _PAGE_PREFIX.sub("", title)
    name = _WELCOME_PREFIX.sub("", name)
    name = _DASH_SUFFIX.sub("", name)
    name = _PIPE_SUFFIX.sub("", name)
    name = _IN_NEW_YORK.sub("", name)
    name = _RESTAURANT_SUFFIX.sub("", name)
    return re.sub(r"\s+", " ", name).strip()


def parse_direct_result(result: ExaResult) -> Optional[str]:
    name = clean_title(result.title or "")
    if len(name) < 2 or is_generic_page(name, result.url):
        return None
    return name


def parse_review_result(result: ExaResult) -> Optional[str]:
    """Venue name from a single-restaurant review; list articles are skipped."""
    match = _SINGLE_REVIEW.match((result.title or "").strip())
    if not match:
        return None
    name = match.group(1).strip()
    if len(name) <= 2 or is_generic_page(name, result.url):
        return None
    return name


class ExaSource(SourceAdapter):
    """Discover venues through Exa's semantic search. Runs once per session."""

    provider = ProviderId.EXA
    region_scoped = False

    def __init__(
        self,
        api_key: Optional[str],
        timeout: float = DEFAULT_SOURCE_TIMEOUT,
        http_timeout: float = 30.0,
    ):
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.http_timeout = http_timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _search(
        self,
        region: Region,
        filters: SearchFilters,
        progress: Optional[ProgressChannel],
    ) -> list[Candidate]:
        if not self.api_key:
            raise ConfigurationError("EXA_API_KEY not set")
        if filters.limit <= 0:
            return []

        per_query = math.ceil(filters.limit / 2)
        seen_urls: set[str] = set()
        seen_domains: set[str] = set()
        seen_names: set[str] = set()
        candidates: list[Candidate] = []

        def accept(name: str, url: str) -> None:
            key = normalize_name(name)
            if not key or key in seen_names:
                return
            seen_names.add(key)
            candidates.append(
                Candidate(name=name, provider=ProviderId.EXA, website=url, city=filters.city)
            )

        errors: list[Exception] = []

        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            direct_query = build_direct_query(filters.city, filters.cuisine)
            self._info(progress, f'[Exa] Searching direct: "{direct_query}"')
            for result in await self._query(client, direct_query, per_query, errors):
                if result.url in seen_urls:
                    continue
                seen_urls.add(result.url)
                name = parse_direct_result(result)
                if not name:
                    continue
                domain = extract_domain(result.url) or result.url
                if domain in seen_domains:
                    continue
                seen_domains.add(domain)
                accept(name, result.url)

            review_query = build_review_query(filters.city, filters.cuisine)
            self._info(progress, f'[Exa] Searching reviews: "{review_query}"')
            for result in await self._query(
                client, review_query, per_query, errors, include_domains=REVIEW_SITE_DOMAINS
            ):
                if result.url in seen_urls:
                    continue
                seen_urls.add(result.url)
                name = parse_review_result(result)
                if name:
                    accept(name, result.url)

        # Either strategy may fail alone; both failing is a provider failure
        if len(errors) == 2:
            raise errors[-1]

        self._info(progress, f"[Exa] Total venues found: {len(candidates)}")
        return candidates[: filters.limit]

    async def _query(
        self,
        client: httpx.AsyncClient,
        query: str,
        num_results: int,
        errors: list[Exception],
        include_domains: Optional[list[str]] = None,
    ) -> list[ExaResult]:
        """One Exa query; a failure is recorded in ``errors`` and yields no results."""
        try:
            return await self.exa_search(client, query, num_results, include_domains)
        except (ProviderError, httpx.HTTPError) as e:
            logger.info(f"[Exa] Query '{query}' failed: {e}")
            errors.append(e)
            return []

    async def exa_search(
        self,
        client: httpx.AsyncClient,
        query: str,
        num_results: int,
        include_domains: Optional[list[str]] = None,
    ) -> list[ExaResult]:
        body: dict = {
            "query": query,
            "numResults": num_results,
            "type": "auto",
            "contents": {"text": True},
        }
        if include_domains:
            body["includeDomains"] = include_domains

        resp = await client.post(
            EXA_API_URL,
            headers={"Content-Type": "application/json", "x-api-key": self.api_key},
            json=body,
        )
        log_http_request("POST", EXA_API_URL, resp.status_code, provider=self.provider.value)
        if resp.status_code != 200:
            raise ProviderError(
                self.provider,
                f"HTTP {resp.status_code} - {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return [ExaResult.model_validate(r) for r in (resp.json() or {}).get("results") or []]
