"""Tracked-entity records held by the marker store."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, model_validator

from omnicot.models._base import CotBaseModel, CotEnum


class Affiliation(CotEnum):
    """Tactical standing derived from the second type-code token."""

    FRIENDLY = "friendly"
    HOSTILE = "hostile"
    NEUTRAL = "neutral"
    UNKNOWN = "unknown"


class MarkerColor(CotEnum):
    """Display color of an affiliation (ATAK convention)."""

    CYAN = "cyan"
    RED = "red"
    GREEN = "green"
    YELLOW = "yellow"

    @property
    def hex(self) -> str:
        return _COLOR_HEX[self]


_COLOR_HEX: dict[MarkerColor, str] = {
    MarkerColor.CYAN: "#00FFFF",
    MarkerColor.RED: "#FF0000",
    MarkerColor.GREEN: "#00FF00",
    MarkerColor.YELLOW: "#FFFF00",
}


class MarkerState(CotEnum):
    ACTIVE = "active"
    STALE = "stale"


class Marker(CotBaseModel):
    """Snapshot of one tracked entity.

    The store replaces a marker's snapshot on every change; a ``Marker``
    instance handed out never changes afterwards.
    """

    uid: str = Field(..., min_length=1)
    cot_type: str
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)
    hae: float
    ce: float
    le: float
    affiliation: Affiliation
    color: MarkerColor
    callsign: str
    team: str | None = None
    course: float | None = None
    speed: float | None = None
    first_seen: datetime
    last_update: datetime
    state: MarkerState = MarkerState.ACTIVE

    @model_validator(mode="after")
    def _check_timeline(self) -> Marker:
        if self.last_update < self.first_seen:
            raise ValueError("last_update must not precede first_seen")
        return self

    @property
    def is_stale(self) -> bool:
        return self.state == MarkerState.STALE


class MarkerStats(CotBaseModel):
    """Partition of the live table at query time."""

    total: int = 0
    active: int = 0
    stale: int = 0
