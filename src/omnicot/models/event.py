"""Decoded CoT event records."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator

from omnicot._constants import DEFAULT_CE, DEFAULT_HAE, DEFAULT_LE
from omnicot.ingestion.normalize import safe_str
from omnicot.models._base import CotBaseModel, CotTimestamp, utcnow


class CotPoint(CotBaseModel):
    """Position of a CoT event.

    Parameters
    ----------
    lat : float
        Latitude in degrees, within [-90, 90].
    lon : float
        Longitude in degrees, within [-180, 180].
    hae : float
        Height above ellipsoid in metres.
    ce : float
        Circular (horizontal) error in metres.
    le : float
        Linear (vertical) error in metres.
    """

    lat: float = Field(..., ge=-90.0, le=90.0, allow_inf_nan=False)
    lon: float = Field(..., ge=-180.0, le=180.0, allow_inf_nan=False)
    hae: float = Field(default=DEFAULT_HAE, allow_inf_nan=False)
    ce: float = Field(default=DEFAULT_CE, allow_inf_nan=False)
    le: float = Field(default=DEFAULT_LE, allow_inf_nan=False)


class CotDetail(CotBaseModel):
    """The load-bearing part of a CoT ``<detail>`` block.

    ``callsign`` is ``None`` only until the owning :class:`CotEvent` fills it
    in from the event ``uid``.
    """

    callsign: str | None = None
    team: str | None = None
    course: float | None = Field(default=None, allow_inf_nan=False)
    speed: float | None = Field(default=None, allow_inf_nan=False)

    @field_validator("callsign", "team", mode="before")
    @classmethod
    def _strip_text(cls, value: object) -> str | None:
        return safe_str(value)


class CotEvent(CotBaseModel):
    """A decoded CoT event.

    Parameters
    ----------
    uid : str
        Identity of the reporting entity.
    type : str
        Hierarchical type code, e.g. ``"a-f-G-U-C"``.
    time : datetime
        Event time from the message, or the decode time when absent.
    stale : datetime or None
        Sender-declared stale time.  Carried, not interpreted.
    how : str or None
        How the position was derived.  Carried, not interpreted.
    point : CotPoint
        Position.
    detail : CotDetail
        Callsign, team and motion.  ``detail.callsign`` defaults to ``uid``.
    """

    uid: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    time: CotTimestamp = Field(default_factory=utcnow)
    stale: CotTimestamp | None = None
    how: str | None = None
    point: CotPoint
    detail: CotDetail = Field(default_factory=CotDetail)

    @field_validator("uid", "type", mode="before")
    @classmethod
    def _strip_required(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()
        return value

    @model_validator(mode="after")
    def _default_callsign(self) -> CotEvent:
        if self.detail.callsign is None:
            object.__setattr__(self, "detail", self.detail.model_copy(update={"callsign": self.uid}))
        return self

    @property
    def callsign(self) -> str:
        return self.detail.callsign or self.uid
