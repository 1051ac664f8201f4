"""Pydantic models for the discovery service."""

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderId(str, Enum):
    """Discovery providers, in declaration order.

    Declaration order is the round-robin order used when interleaving
    per-provider results.
    """

    GOOGLE_PLACES = "google_places"
    RESY = "resy"
    OPENTABLE = "opentable"
    BELI = "beli"
    EXA = "exa"

    @property
    def label(self) -> str:
        return _PROVIDER_LABELS[self]


_PROVIDER_LABELS = {
    ProviderId.GOOGLE_PLACES: "Google Places",
    ProviderId.RESY: "Resy",
    ProviderId.OPENTABLE: "OpenTable",
    ProviderId.BELI: "Beli",
    ProviderId.EXA: "Exa",
}


class PriceLevel(IntEnum):
    """Normalized 0-4 price tier shared by every provider."""

    FREE = 0
    INEXPENSIVE = 1
    MODERATE = 2
    EXPENSIVE = 3
    VERY_EXPENSIVE = 4


class ReservationPlatform(str, Enum):
    RESY = "resy"
    OPENTABLE = "opentable"
    DIRECT = "direct"


class LatLng(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Bounds(BaseModel):
    """Rectangular search area."""

    model_config = ConfigDict(frozen=True)

    southwest: LatLng
    northeast: LatLng

    @model_validator(mode="after")
    def validate_corners(self) -> "Bounds":
        if self.southwest.lat > self.northeast.lat:
            raise ValueError("southwest latitude must not exceed northeast latitude")
        return self

    @property
    def center(self) -> LatLng:
        return LatLng(
            lat=(self.southwest.lat + self.northeast.lat) / 2,
            lng=(self.southwest.lng + self.northeast.lng) / 2,
        )

    def contains(self, lat: float, lng: float) -> bool:
        return (
            self.southwest.lat <= lat <= self.northeast.lat
            and self.southwest.lng <= lng <= self.northeast.lng
        )


class VenueFields(BaseModel):
    """Fields shared by a single provider's view and the merged view."""

    name: str = Field(min_length=1)
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    email_confidence: Optional[int] = Field(default=None, ge=0, le=100)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    borough: Optional[str] = None
    city: Optional[str] = None
    cuisine: Optional[str] = None
    price_level: Optional[PriceLevel] = None
    price_per_person_min: Optional[int] = None
    price_per_person_max: Optional[int] = None
    rating: Optional[float] = None

    # Provider identifiers
    google_place_id: Optional[str] = None
    resy_venue_id: Optional[str] = None
    opentable_id: Optional[str] = None
    beli_rank: Optional[int] = None

    # Private dining
    has_private_dining: Optional[bool] = None
    private_dining_capacity_min: Optional[int] = None
    private_dining_capacity_max: Optional[int] = None
    private_dining_minimum: Optional[int] = None

    # Reservations
    reservation_platform: Optional[ReservationPlatform] = None
    reservation_url: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class Candidate(VenueFields):
    """One provider's un-merged view of one venue."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderId


class MergedEntity(VenueFields):
    """Deduplicated, cross-provider record for one venue within a session."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    sources: list[ProviderId] = Field(min_length=1)

    @property
    def discovery_source(self) -> ProviderId:
        return self.sources[0]

    @property
    def has_verified_email(self) -> bool:
        return self.email is not None and self.email_confidence is not None


class SearchFilters(BaseModel):
    """Provider-independent filters applied to one fan-out pass."""

    city: str
    cuisine: Optional[str] = None
    party_size: int = 20
    limit: int = 20


class Region(BaseModel):
    """A neighborhood and/or bounding box scoping one fan-out pass.

    A region with neither is a city-wide search.
    """

    model_config = ConfigDict(frozen=True)

    neighborhood: Optional[str] = None
    bounds: Optional[Bounds] = None

    @property
    def label(self) -> str:
        if self.neighborhood:
            return self.neighborhood
        if self.bounds:
            sw, ne = self.bounds.southwest, self.bounds.northeast
            return f"map area ({sw.lat:.4f},{sw.lng:.4f})-({ne.lat:.4f},{ne.lng:.4f})"
        return "citywide"


class EmailType(str, Enum):
    GENERIC = "generic"
    PERSONAL = "personal"


class EmailResult(BaseModel):
    """Best contact email found for a domain."""

    email: str
    confidence: int = Field(ge=0, le=100)
    type: EmailType = EmailType.GENERIC
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None


class GeocodeResult(BaseModel):
    """Structured location data for a venue looked up by name."""

    name: str
    latitude: float
    longitude: float
    address: Optional[str] = None
    phone: Optional[str] = None
    rating: Optional[float] = None
    website: Optional[str] = None
    google_place_id: Optional[str] = None
    price_level: Optional[PriceLevel] = None


class SessionState(str, Enum):
    INIT = "init"
    SEARCHING = "searching"
    ENRICHING = "enriching"
    DONE = "done"
    FAILED = "failed"


class DiscoverySummary(BaseModel):
    """Counts reported when a session completes."""

    total: int = 0
    by_provider: dict[ProviderId, int] = Field(default_factory=dict)
    with_private_dining: int = 0
    with_verified_email: int = 0
    with_coordinates: int = 0


# ---------------------------------------------------------------------------
# Progress events
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)


class LogEvent(_Event):
    type: Literal["log"] = "log"
    message: str
    level: EventLevel = EventLevel.INFO


class CandidateFoundEvent(_Event):
    type: Literal["candidate_found"] = "candidate_found"
    entity: MergedEntity


class CandidateUpdatedEvent(_Event):
    type: Literal["candidate_updated"] = "candidate_updated"
    entity: MergedEntity


class CompleteEvent(_Event):
    type: Literal["complete"] = "complete"
    entities: list[MergedEntity]
    summary: DiscoverySummary


class ErrorEvent(_Event):
    type: Literal["error"] = "error"
    message: str


ProgressEvent = Annotated[
    Union[LogEvent, CandidateFoundEvent, CandidateUpdatedEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

ProgressSink = Callable[[Any], Any]


class DiscoveryRequest(BaseModel):
    """Parameters for one discovery session."""

    city: str = "New York"
    neighborhood: Optional[str] = None  # single neighborhood (legacy)
    neighborhoods: list[str] = Field(default_factory=list)
    bounds: Optional[Bounds] = None
    cuisine: Optional[str] = None
    party_size: int = Field(default=20, ge=1)
    sources: set[ProviderId] = Field(
        default_factory=lambda: {ProviderId.GOOGLE_PLACES, ProviderId.RESY}
    )
    limit: int = Field(default=30, ge=0)
    progress_sink: Optional[ProgressSink] = Field(default=None, exclude=True)

    @property
    def search_neighborhoods(self) -> list[str]:
        if self.neighborhoods:
            return list(self.neighborhoods)
        if self.neighborhood:
            return [self.neighborhood]
        return []


class DiscoveryResult(BaseModel):
    """Outcome of a discovery session."""

    state: SessionState
    entities: list[MergedEntity] = Field(default_factory=list)
    summary: DiscoverySummary = Field(default_factory=DiscoverySummary)
    error: Optional[str] = None
