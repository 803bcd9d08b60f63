"""Normalization helpers.

Centralizes defensive parsing of CoT attribute values.  Every helper returns
``None`` instead of raising, so the decoder can fall back to defaults.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime
from typing import Any

from omnicot._constants import LOG_CLIP_CHARS

# Plain decimal or exponent notation only; float() would also take "1_0" or "infinity".
_NUMBER_RE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not _NUMBER_RE.fullmatch(value):
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    """Return *value* stripped, or ``None`` when empty."""
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def parse_cot_time(value: Any) -> datetime | None:
    """Parse a CoT ``time``/``stale`` attribute into an aware UTC datetime.

    CoT timestamps are ISO 8601 with a trailing ``Z``; offsets are accepted
    too and naive values are assumed to be UTC.
    """
    text = safe_str(value)
    if text is None:
        return None
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def clip_for_log(raw: Any, *, max_chars: int = LOG_CLIP_CHARS) -> str:
    """Return a single-line, length-limited copy of *raw* for debug logs."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = " ".join(str(raw).split())
    if len(text) > max_chars:
        return f"{text[:max_chars]}…<truncated>"
    return text
