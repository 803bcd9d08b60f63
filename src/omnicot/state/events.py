"""Marker lifecycle events.

Every change to the marker table is announced to subscribers as a
:class:`MarkerLifecycleEvent`.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from pydantic import model_validator

from omnicot.models._base import CotBaseModel, CotEnum
from omnicot.models.marker import Marker


class MarkerEvent(CotEnum):
    CREATED = "created"
    UPDATED = "updated"
    STALE = "stale"
    REMOVED = "removed"


class RemovalReason(CotEnum):
    EXPIRED = "expired"
    EVICTED = "evicted"
    MANUAL = "manual"


class MarkerLifecycleEvent(CotBaseModel):
    """A single transition of one marker.

    ``marker`` is the snapshot after the transition; for ``REMOVED`` it is
    the last snapshot the table held.  ``reason`` is set for ``REMOVED``
    only.
    """

    kind: MarkerEvent
    marker: Marker
    occurred_at: datetime
    reason: RemovalReason | None = None

    @model_validator(mode="after")
    def _reason_matches_kind(self) -> MarkerLifecycleEvent:
        if (self.kind == MarkerEvent.REMOVED) != (self.reason is not None):
            raise ValueError("reason is required for removed events and forbidden otherwise")
        return self

    @property
    def uid(self) -> str:
        return self.marker.uid


MarkerCallback = Callable[[MarkerLifecycleEvent], None]
Unsubscribe = Callable[[], None]
