"""Deterministic marker lifecycle policy.

Pure helpers deciding staleness, expiry and eviction order.  The store owns
the table; this module only looks at snapshots.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from omnicot.models.marker import Marker, MarkerState


def idle_for(now: datetime, marker: Marker) -> timedelta:
    return now - marker.last_update


def should_mark_stale(marker: Marker, now: datetime, freshness_window: timedelta) -> bool:
    """Only active markers go stale; the transition happens once."""
    return marker.state == MarkerState.ACTIVE and idle_for(now, marker) > freshness_window


def should_expire(marker: Marker, now: datetime, max_idle: timedelta) -> bool:
    return idle_for(now, marker) > max_idle


def eviction_rank(marker: Marker) -> tuple[int, datetime]:
    """Lower ranks are evicted first: stale before active, then oldest update."""
    return (0 if marker.state == MarkerState.STALE else 1, marker.last_update)


def eviction_order(markers: Iterable[Marker]) -> list[Marker]:
    """Order *markers* for eviction.

    The sort is stable, so markers with equal rank keep the order of the
    input, which is the table's insertion order.
    """
    return sorted(markers, key=eviction_rank)


def select_evictions(markers: Iterable[Marker], capacity: int) -> list[Marker]:
    """Return the markers to drop so that at most *capacity* remain."""
    ordered = eviction_order(markers)
    excess = len(ordered) - capacity
    if excess <= 0:
        return []
    return ordered[:excess]
