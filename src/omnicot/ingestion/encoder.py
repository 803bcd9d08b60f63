"""CoT encoder.

Renders :class:`~omnicot.models.event.CotEvent` records back to the wire
form read by :mod:`omnicot.ingestion.decoder`.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from lxml import etree

from omnicot._constants import (
    COT_TIME_FORMAT,
    COT_VERSION,
    DEFAULT_CE,
    DEFAULT_HAE,
    DEFAULT_HOW,
    DEFAULT_LE,
    DEFAULT_REPORT_STALE_AFTER,
    SELF_REPORT_TYPE,
)
from omnicot.models.event import CotDetail, CotEvent, CotPoint


def format_cot_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(COT_TIME_FORMAT)


def _number(value: float) -> str:
    return repr(float(value))


def encode(
    event: CotEvent,
    *,
    stale_after: timedelta = DEFAULT_REPORT_STALE_AFTER,
    how: str | None = None,
) -> str:
    """Serialize *event* as a CoT ``<event>`` element.

    ``stale`` is taken from the event when set, otherwise ``time +
    stale_after``.  ``how`` falls back to the event's own value, then to
    ``"m-g"`` (machine, GPS-derived).
    """
    time_text = format_cot_time(event.time)
    stale = event.stale if event.stale is not None else event.time + stale_after

    root = etree.Element("event")
    root.set("version", COT_VERSION)
    root.set("uid", event.uid)
    root.set("type", event.type)
    root.set("how", how or event.how or DEFAULT_HOW)
    root.set("time", time_text)
    root.set("start", time_text)
    root.set("stale", format_cot_time(stale))

    etree.SubElement(
        root,
        "point",
        attrib={
            "lat": _number(event.point.lat),
            "lon": _number(event.point.lon),
            "hae": _number(event.point.hae),
            "ce": _number(event.point.ce),
            "le": _number(event.point.le),
        },
    )

    detail = etree.SubElement(root, "detail")
    etree.SubElement(detail, "contact", attrib={"callsign": event.callsign})
    if event.detail.team is not None:
        etree.SubElement(detail, "__group", attrib={"name": event.detail.team, "role": "Team Member"})
    track: dict[str, str] = {}
    if event.detail.course is not None:
        track["course"] = _number(event.detail.course)
    if event.detail.speed is not None:
        track["speed"] = _number(event.detail.speed)
    if track:
        etree.SubElement(detail, "track", attrib=track)

    return etree.tostring(root, encoding="unicode")


def position_report(
    uid: str,
    *,
    lat: float,
    lon: float,
    callsign: str,
    cot_type: str = SELF_REPORT_TYPE,
    hae: float = DEFAULT_HAE,
    ce: float = DEFAULT_CE,
    le: float = DEFAULT_LE,
    team: str | None = None,
    course: float | None = None,
    speed: float | None = None,
    time: datetime | None = None,
    stale_after: timedelta = DEFAULT_REPORT_STALE_AFTER,
) -> str:
    """Build an own-position broadcast.

    Raises :class:`pydantic.ValidationError` if the position is out of range.
    """
    fields: dict[str, object] = {
        "uid": uid,
        "type": cot_type,
        "how": DEFAULT_HOW,
        "point": CotPoint(lat=lat, lon=lon, hae=hae, ce=ce, le=le),
        "detail": CotDetail(callsign=callsign, team=team, course=course, speed=speed),
    }
    if time is not None:
        fields["time"] = time
    return encode(CotEvent.model_validate(fields), stale_after=stale_after)
