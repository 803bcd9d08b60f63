"""CoT decoder.

Turns one raw CoT message into a :class:`~omnicot.models.event.CotEvent`.
The decoder is a small structural reader over lxml, not a schema validator:
it reads exactly the fields listed below and ignores everything else.

Required
    ``event@uid``, ``event@type`` and ``event/point@lat``/``@lon`` as finite,
    in-range numbers.

Optional (with defaults)
    ``point@hae`` (0), ``point@ce`` (10), ``point@le`` (10),
    ``detail/contact@callsign`` (the uid), ``detail/__group@name``,
    ``detail/track@course``, ``detail/track@speed``, ``event@time``
    (decode time), ``event@stale``, ``event@how``.

When an element appears more than once, the first one in document order is
used.  Messages carrying a DOCTYPE are rejected outright.  Any failure
yields ``None``; :func:`decode` never raises.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from lxml import etree
from pydantic import ValidationError

from omnicot._constants import DEFAULT_CE, DEFAULT_HAE, DEFAULT_LE
from omnicot.ingestion.normalize import clip_for_log, parse_cot_time, safe_float, safe_str
from omnicot.models.event import CotEvent

_logger = logging.getLogger(__name__)

# lxml parser instances must not be shared between threads.
_local = threading.local()


def _parser() -> etree.XMLParser:
    parser: etree.XMLParser | None = getattr(_local, "parser", None)
    if parser is None:
        parser = etree.XMLParser(
            resolve_entities=False,
            no_network=True,
            load_dtd=False,
            huge_tree=False,
            remove_comments=True,
            remove_pis=True,
        )
        _local.parser = parser
    return parser


def _local_name(element: Any) -> str | None:
    tag = element.tag
    if not isinstance(tag, str):
        return None
    return etree.QName(tag).localname


def _child(parent: Any, name: str) -> Any | None:
    """First direct child element called *name*, ignoring namespaces."""
    if parent is None:
        return None
    for child in parent:
        if _local_name(child) == name:
            return child
    return None


def _parse_root(raw: str | bytes) -> Any | None:
    if isinstance(raw, str):
        data = raw.lstrip("\ufeff").strip().encode("utf-8")
    elif isinstance(raw, (bytes, bytearray)):
        data = bytes(raw).strip()
    else:
        return None
    if not data:
        return None
    try:
        root = etree.fromstring(data, parser=_parser())
    except (etree.XMLSyntaxError, ValueError):
        return None
    # libxml2 still expands internal entities in attribute values.
    docinfo = root.getroottree().docinfo
    if docinfo.doctype or docinfo.internalDTD is not None:
        return None
    return root


def _optional_float(element: Any, attribute: str, default: float | None) -> float | None:
    if element is None:
        return default
    value = safe_float(element.get(attribute))
    return default if value is None else value


def _reject(reason: str, raw: Any) -> None:
    _logger.debug("Dropping CoT message (%s): %s", reason, clip_for_log(raw))


def decode(raw: str | bytes) -> CotEvent | None:
    """Decode a raw CoT message.

    Parameters
    ----------
    raw : str or bytes
        One serialized ``<event>`` element, optionally preceded by an XML
        declaration and surrounded by whitespace.

    Returns
    -------
    CotEvent or None
        The decoded event, or ``None`` when the message is malformed or a
        required field is missing or unparseable.
    """
    root = _parse_root(raw)
    if root is None:
        _reject("not well-formed XML or has a DOCTYPE", raw)
        return None
    if _local_name(root) != "event":
        _reject("root element is not <event>", raw)
        return None

    uid = safe_str(root.get("uid"))
    cot_type = safe_str(root.get("type"))
    if uid is None or cot_type is None:
        _reject("missing uid or type", raw)
        return None

    point = _child(root, "point")
    if point is None:
        _reject("missing <point>", raw)
        return None
    lat = safe_float(point.get("lat"))
    lon = safe_float(point.get("lon"))
    if lat is None or lon is None:
        _reject("missing or unparseable lat/lon", raw)
        return None

    detail = _child(root, "detail")
    contact = _child(detail, "contact")
    group = _child(detail, "__group")
    track = _child(detail, "track")

    fields: dict[str, Any] = {
        "uid": uid,
        "type": cot_type,
        "how": safe_str(root.get("how")),
        "stale": parse_cot_time(root.get("stale")),
        "point": {
            "lat": lat,
            "lon": lon,
            "hae": _optional_float(point, "hae", DEFAULT_HAE),
            "ce": _optional_float(point, "ce", DEFAULT_CE),
            "le": _optional_float(point, "le", DEFAULT_LE),
        },
        "detail": {
            "callsign": contact.get("callsign") if contact is not None else None,
            "team": group.get("name") if group is not None else None,
            "course": _optional_float(track, "course", None),
            "speed": _optional_float(track, "speed", None),
        },
    }
    event_time = parse_cot_time(root.get("time"))
    if event_time is not None:
        fields["time"] = event_time

    try:
        return CotEvent.model_validate(fields)
    except ValidationError as exc:
        _reject(f"{exc.error_count()} validation error(s)", raw)
        return None
