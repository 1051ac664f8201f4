"""Abstract base class for venue discovery sources."""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger

from vroom.core.logging import provider_var
from vroom.services.discovery.models import Candidate, ProviderId, Region, SearchFilters
from vroom.services.discovery.progress import ProgressChannel

DEFAULT_SOURCE_TIMEOUT = 30.0


class SourceAdapter(ABC):
    """Base class for venue discovery sources.

    Implementations: GooglePlacesSource, ResySource, OpenTableSource,
    BeliSource (Clawdbot task queue), ExaSource.

    ``search`` is the fault boundary: it never raises. Timeouts, HTTP
    errors, malformed payloads and missing credentials are reported on the
    session's progress channel at warn level and produce an empty list.
    """

    provider: ProviderId
    # Sources that ignore the region run once per session, in the first region.
    region_scoped: bool = True

    def __init__(self, timeout: float = DEFAULT_SOURCE_TIMEOUT):
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        """Whether the source has the credentials it needs."""
        return True

    async def search(
        self,
        region: Region,
        filters: SearchFilters,
        progress: Optional[ProgressChannel] = None,
    ) -> list[Candidate]:
        """Search one region and return normalized candidates."""
        token = provider_var.set(self.provider.value)
        try:
            return await asyncio.wait_for(
                self._search(region, filters, progress), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            self._warn(
                progress,
                f"{self.provider.label} search timed out after {self.timeout:g}s ({region.label})",
            )
            return []
        except Exception as e:
            self._warn(progress, f"{self.provider.label} search failed ({region.label}): {e}")
            return []
        finally:
            provider_var.reset(token)

    @abstractmethod
    async def _search(
        self,
        region: Region,
        filters: SearchFilters,
        progress: Optional[ProgressChannel],
    ) -> list[Candidate]:
        """Provider-specific search; may raise."""
        ...

    @staticmethod
    def _info(progress: Optional[ProgressChannel], message: str) -> None:
        if progress is not None:
            progress.info(message)
        else:
            logger.info(message)

    @staticmethod
    def _warn(progress: Optional[ProgressChannel], message: str) -> None:
        if progress is not None:
            progress.warn(message)
        else:
            logger.warning(message)
