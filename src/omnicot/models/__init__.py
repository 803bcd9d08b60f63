"""Pydantic models for omnicot records."""

from omnicot.models._base import CotBaseModel, CotEnum, CotTimestamp
from omnicot.models.event import CotDetail, CotEvent, CotPoint
from omnicot.models.marker import Affiliation, Marker, MarkerColor, MarkerState, MarkerStats

__all__ = [
    "Affiliation",
    "CotBaseModel",
    "CotDetail",
    "CotEnum",
    "CotEvent",
    "CotPoint",
    "CotTimestamp",
    "Marker",
    "MarkerColor",
    "MarkerState",
    "MarkerStats",
]
