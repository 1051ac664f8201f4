"""Clawdbot browser-automation client and the Beli rankings source.

Clawdbot runs browser skills against sites with no public API. Work is
scheduled as a task, then polled until it completes or fails.
"""

import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from vroom.core.logging import log_http_request
from vroom.services.discovery.errors import ConfigurationError, ProviderError
from vroom.services.discovery.models import Candidate, ProviderId, Region, SearchFilters
from vroom.services.discovery.progress import ProgressChannel
from vroom.services.discovery.sources.base import DEFAULT_SOURCE_TIMEOUT, SourceAdapter

DEFAULT_CLAWDBOT_URL = "http://localhost:3001"


class ClawdbotTaskType(str, Enum):
    OPENTABLE_PRIVATE_DINING = "opentable_private_dining"
    BELI_RANKINGS = "beli_rankings"
    CONTACT_DISCOVERY = "contact_discovery"
    RESTAURANT_DETAILS = "restaurant_details"

    @property
    def skill(self) -> str:
        return f"vroom-{self.value.replace('_', '-')}"


class ClawdbotTaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def finished(self) -> bool:
        return self in (ClawdbotTaskStatus.COMPLETED, ClawdbotTaskStatus.FAILED)


class DiscoveredRestaurant(BaseModel):
    """A venue as reported by a Clawdbot skill (camelCase on the wire)."""

    name: str
    city: Optional[str] = None
    neighborhood: Optional[str] = None
    cuisine: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    contact_email: Optional[str] = Field(default=None, alias="contactEmail")
    has_private_dining: Optional[bool] = Field(default=None, alias="hasPrivateDining")
    private_dining_capacity_min: Optional[int] = Field(default=None, alias="privateDiningCapacityMin")
    private_dining_capacity_max: Optional[int] = Field(default=None, alias="privateDiningCapacityMax")
    private_dining_minimum: Optional[int] = Field(default=None, alias="privateDiningMinimum")
    opentable_id: Optional[str] = Field(default=None, alias="opentableId")
    beli_rank: Optional[int] = Field(default=None, alias="beliRank")

    model_config = {"populate_by_name": True}


class ClawdbotTask(BaseModel):
    id: str
    type: ClawdbotTaskType
    status: ClawdbotTaskStatus
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    params: dict[str, Any] = Field(default_factory=dict)
    results: list[DiscoveredRestaurant] = Field(default_factory=list)
    error: Optional[str] = None

    model_config = {"populate_by_name": True}


class ClawdbotClient:
    """Schedules and polls Clawdbot tasks over its REST API."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_CLAWDBOT_URL,
        http_timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http_timeout = http_timeout

    @property
    def headers(self) -> dict:
        if not self.api_key:
            raise ConfigurationError("CLAWDBOT_API_KEY not set")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def schedule_task(
        self, task_type: ClawdbotTaskType, params: dict[str, Any]
    ) -> ClawdbotTask:
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            resp = await client.post(
                f"{self.base_url}/api/tasks",
                headers=self.headers,
                json={"type": task_type.value, "params": params, "skill": task_type.skill},
            )
        log_http_request("POST", f"{self.base_url}/api/tasks", resp.status_code, provider=ProviderId.BELI.value)

        if resp.status_code not in (200, 201):
            raise ProviderError(
                ProviderId.BELI,
                f"failed to schedule {task_type.value} task: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        task = ClawdbotTask.model_validate(resp.json())
        logger.debug(f"[Clawdbot] Scheduled task {task.id} ({task_type.skill})")
        return task

    async def get_task(self, task_id: str) -> ClawdbotTask:
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            resp = await client.get(f"{self.base_url}/api/tasks/{task_id}", headers=self.headers)
        log_http_request("GET", f"{self.base_url}/api/tasks/{task_id}", resp.status_code, provider=ProviderId.BELI.value)

        if resp.status_code != 200:
            raise ProviderError(
                ProviderId.BELI,
                f"failed to get task {task_id}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return ClawdbotTask.model_validate(resp.json())

    async def wait_for_task(
        self,
        task: ClawdbotTask,
        max_wait_seconds: float = 120.0,
        poll_interval_seconds: float = 5.0,
    ) -> ClawdbotTask:
        """Poll until the task finishes; a task still running at the deadline counts as failed."""
        deadline = time.monotonic() + max_wait_seconds
        current = task
        while time.monotonic() < deadline:
            current = await self.get_task(task.id)
            if current.status.finished:
                return current
            await asyncio.sleep(poll_interval_seconds)

        logger.warning(f"[Clawdbot] Task {task.id} timed out after {max_wait_seconds:g}s")
        return current.model_copy(
            update={
                "status": ClawdbotTaskStatus.FAILED,
                "error": "Task timed out",
                "completed_at": datetime.now(timezone.utc),
            }
        )

    async def run_task(
        self,
        task_type: ClawdbotTaskType,
        params: dict[str, Any],
        max_wait_seconds: float = 120.0,
        poll_interval_seconds: float = 5.0,
    ) -> list[DiscoveredRestaurant]:
        """Schedule, wait, and return results; a failed task raises ProviderError."""
        task = await self.schedule_task(task_type, params)
        if not task.status.finished:
            task = await self.wait_for_task(task, max_wait_seconds, poll_interval_seconds)
        if task.status == ClawdbotTaskStatus.FAILED:
            raise ProviderError(ProviderId.BELI, f"task {task.id} failed: {task.error or 'unknown error'}")
        return task.results


class BeliSource(SourceAdapter):
    """Top-ranked venues from Beli, scraped by a Clawdbot skill.

    Beli rankings are city-wide, so the source runs once per session.
    """

    provider = ProviderId.BELI
    region_scoped = False

    def __init__(
        self,
        client: ClawdbotClient,
        timeout: float = DEFAULT_SOURCE_TIMEOUT,
        max_wait_seconds: float = 120.0,
        poll_interval_seconds: float = 5.0,
    ):
        super().__init__(timeout=timeout)
        self.client = client
        self.max_wait_seconds = max_wait_seconds
        self.poll_interval_seconds = poll_interval_seconds

    @property
    def configured(self) -> bool:
        return bool(self.client.api_key)

    async def _search(
        self,
        region: Region,
        filters: SearchFilters,
        progress: Optional[ProgressChannel],
    ) -> list[Candidate]:
        if not self.configured:
            raise ConfigurationError("CLAWDBOT_API_KEY not set")
        if filters.limit <= 0:
            return []

        self._info(progress, f"[Beli] Requesting rankings for {filters.city}")
        results = await self.client.run_task(
            ClawdbotTaskType.BELI_RANKINGS,
            {"city": filters.city, "limit": filters.limit},
            max_wait_seconds=self.max_wait_seconds,
            poll_interval_seconds=self.poll_interval_seconds,
        )

        candidates = [to_candidate(r, filters) for r in results if r.name.strip()]
        self._info(progress, f"[Beli] Found {len(candidates)} ranked venues")
        return candidates[: filters.limit]


def to_candidate(restaurant: DiscoveredRestaurant, filters: SearchFilters) -> Candidate:
    return Candidate(
        name=restaurant.name.strip(),
        provider=ProviderId.BELI,
        website=restaurant.website,
        phone=restaurant.phone,
        email=restaurant.contact_email,
        latitude=restaurant.latitude,
        longitude=restaurant.longitude,
        address=restaurant.address,
        neighborhood=restaurant.neighborhood,
        city=restaurant.city or filters.city,
        cuisine=restaurant.cuisine,
        opentable_id=restaurant.opentable_id,
        beli_rank=restaurant.beli_rank,
        has_private_dining=restaurant.has_private_dining,
        private_dining_capacity_min=restaurant.private_dining_capacity_min,
        private_dining_capacity_max=restaurant.private_dining_capacity_max,
        private_dining_minimum=restaurant.private_dining_minimum,
    )
