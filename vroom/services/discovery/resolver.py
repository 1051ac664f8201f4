"""Identity resolution: name-based dedup and field-level merging.

Merge precedence when a venue is seen again:

    identifiers and descriptive fields   fill if missing, never overwritten
    private dining facts                 fill as a block; False never erases True
    email / email_confidence             replaced only by strictly higher confidence
    sources                              union, first-seen order

The merge functions are pure and return a new MergedEntity; the resolver
swaps the stored record.
"""

from typing import Iterator, Optional

from vroom.services.discovery.models import (
    Candidate,
    EmailResult,
    GeocodeResult,
    MergedEntity,
)
from vroom.services.discovery.utils import normalize_name

_PRIVATE_DINING_FIELDS = (
    "private_dining_capacity_min",
    "private_dining_capacity_max",
    "private_dining_minimum",
)

_SPECIAL_FIELDS = {"name", "email", "email_confidence", "has_private_dining", *_PRIVATE_DINING_FIELDS}

_FILL_IF_MISSING_FIELDS = tuple(
    field for field in Candidate.model_fields if field not in _SPECIAL_FIELDS and field != "provider"
)

_GEOCODE_FIELDS = (
    "latitude",
    "longitude",
    "address",
    "phone",
    "rating",
    "website",
    "google_place_id",
    "price_level",
)


def entity_from_candidate(candidate: Candidate, key: Optional[str] = None) -> MergedEntity:
    """First sighting: build the merged record straight from the candidate."""
    data = candidate.model_dump(exclude={"provider"})
    return MergedEntity(
        **data,
        key=key or normalize_name(candidate.name),
        sources=[candidate.provider],
    )


def _merge_email(
    entity: MergedEntity, email: Optional[str], confidence: Optional[int]
) -> dict:
    if not email:
        return {}
    if confidence is not None and (
        entity.email_confidence is None or confidence > entity.email_confidence
    ):
        return {"email": email, "email_confidence": confidence}
    if entity.email is None and confidence is None:
        return {"email": email}
    return {}


def _merge_private_dining(entity: MergedEntity, candidate: Candidate) -> dict:
    updates: dict = {}
    if candidate.has_private_dining:
        if not entity.has_private_dining:
            updates["has_private_dining"] = True
            for field in _PRIVATE_DINING_FIELDS:
                value = getattr(candidate, field)
                updates[field] = value if value is not None else getattr(entity, field)
        else:
            for field in _PRIVATE_DINING_FIELDS:
                if getattr(entity, field) is None and getattr(candidate, field) is not None:
                    updates[field] = getattr(candidate, field)
    elif candidate.has_private_dining is False and entity.has_private_dining is None:
        updates["has_private_dining"] = False
    return updates


def merge_candidate(entity: MergedEntity, candidate: Candidate) -> MergedEntity:
    """Fold a repeat sighting into an existing record."""
    updates: dict = {}

    for field in _FILL_IF_MISSING_FIELDS:
        if getattr(entity, field) is None:
            value = getattr(candidate, field)
            if value is not None:
                updates[field] = value

    updates.update(_merge_private_dining(entity, candidate))
    updates.update(_merge_email(entity, candidate.email, candidate.email_confidence))

    if candidate.provider not in entity.sources:
        updates["sources"] = [*entity.sources, candidate.provider]

    if not updates:
        return entity
    return entity.model_copy(update=updates)


def merge_email_result(entity: MergedEntity, result: EmailResult) -> MergedEntity:
    """Apply an email-finder hit with the same precedence as a candidate email."""
    updates = _merge_email(entity, result.email, result.confidence)
    return entity.model_copy(update=updates) if updates else entity


def merge_geocode_result(entity: MergedEntity, result: GeocodeResult) -> MergedEntity:
    """Backfill location fields the entity is missing."""
    updates = {}
    for field in _GEOCODE_FIELDS:
        if getattr(entity, field) is None and getattr(result, field) is not None:
            updates[field] = getattr(result, field)
    return entity.model_copy(update=updates) if updates else entity


class IdentityResolver:
    """Session-scoped seen-set of merged venues keyed by normalized name.

    Not safe for concurrent writers; the orchestrator calls it from its
    single aggregation step.
    """

    def __init__(self):
        self._entities: dict[str, MergedEntity] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, key: str) -> bool:
        return key in self._entities

    def __iter__(self) -> Iterator[MergedEntity]:
        return iter(self._entities.values())

    @staticmethod
    def key_for(candidate: Candidate) -> str:
        return normalize_name(candidate.name)

    def get(self, key: str) -> Optional[MergedEntity]:
        return self._entities.get(key)

    def ingest(self, candidate: Candidate) -> tuple[MergedEntity, bool]:
        """Record a candidate. Returns the merged entity and whether it is new."""
        key = self.key_for(candidate)
        if not key:
            raise ValueError(f"Candidate name {candidate.name!r} has no alphanumeric characters")

        existing = self._entities.get(key)
        if existing is None:
            entity = entity_from_candidate(candidate, key)
            self._entities[key] = entity
            return entity, True

        merged = merge_candidate(existing, candidate)
        self._entities[key] = merged
        return merged, False

    def apply_email(self, key: str, result: EmailResult) -> Optional[MergedEntity]:
        """Apply an email hit; returns the entity only if it changed."""
        return self._apply(key, merge_email_result, result)

    def apply_geocode(self, key: str, result: GeocodeResult) -> Optional[MergedEntity]:
        """Apply a geocode hit; returns the entity only if it changed."""
        return self._apply(key, merge_geocode_result, result)

    def _apply(self, key, merge_fn, result) -> Optional[MergedEntity]:
        existing = self._entities.get(key)
        if existing is None:
            return None
        updated = merge_fn(existing, result)
        if updated is existing:
            return None
        self._entities[key] = updated
        return updated
