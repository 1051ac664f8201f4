"""Exceptions raised inside the discovery service."""

from typing import Optional

from vroom.services.discovery.models import ProviderId


class DiscoveryError(Exception):
    """Base class for discovery failures."""


class ProviderError(DiscoveryError):
    """A provider call failed. Never escapes the source adapter boundary."""

    def __init__(self, provider: ProviderId, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider.label}: {message}")


class ConfigurationError(DiscoveryError):
    """The session cannot search at all, e.g. no providers are enabled."""
