"""Round-robin interleaving of per-provider result lists."""

from typing import Mapping, Sequence, TypeVar

from vroom.services.discovery.models import ProviderId

T = TypeVar("T")


def interleave(lists: Sequence[Sequence[T]]) -> list[T]:
    """Take item ``i`` from every list in order, then ``i + 1``, until all run out.

    If the combined output is later truncated, each list is represented in
    proportion to what it yielded rather than by its position.
    """
    result: list[T] = []
    longest = max((len(items) for items in lists), default=0)
    for i in range(longest):
        for items in lists:
            if i < len(items):
                result.append(items[i])
    return result


def interleave_by_provider(per_provider: Mapping[ProviderId, Sequence[T]]) -> list[T]:
    """Interleave using provider declaration order, whatever the mapping order."""
    ordered = [per_provider[p] for p in ProviderId if p in per_provider]
    return interleave(ordered)
