"""Affiliation classifier.

Maps a CoT type code (``a-f-G-U-C``) to a tactical standing and its display
color.  The second hyphen-delimited token selects the affiliation; the third
is the battle dimension used by the symbol renderer.
"""

from __future__ import annotations

from typing import NamedTuple

from omnicot.models.marker import Affiliation, MarkerColor

AFFILIATION_COLORS: dict[Affiliation, MarkerColor] = {
    Affiliation.FRIENDLY: MarkerColor.CYAN,
    Affiliation.HOSTILE: MarkerColor.RED,
    Affiliation.NEUTRAL: MarkerColor.GREEN,
    Affiliation.UNKNOWN: MarkerColor.YELLOW,
}

_AFFILIATION_TOKENS: dict[str, Affiliation] = {
    "f": Affiliation.FRIENDLY,
    "h": Affiliation.HOSTILE,
    "n": Affiliation.NEUTRAL,
}


class Classification(NamedTuple):
    affiliation: Affiliation
    color: MarkerColor


def _token(cot_type: str | None, index: int) -> str | None:
    if not isinstance(cot_type, str):
        return None
    tokens = cot_type.strip().split("-")
    if len(tokens) <= index:
        return None
    token = tokens[index].strip()
    return token or None


def affiliation_of(cot_type: str | None) -> Affiliation:
    """Return the affiliation encoded in *cot_type*; ``UNKNOWN`` when absent or malformed."""
    token = _token(cot_type, 1)
    if token is None:
        return Affiliation.UNKNOWN
    return _AFFILIATION_TOKENS.get(token.lower(), Affiliation.UNKNOWN)


def color_for(affiliation: Affiliation) -> MarkerColor:
    return AFFILIATION_COLORS[affiliation]


def classify(cot_type: str | None) -> Classification:
    """Classify a type code into affiliation and display color.

    >>> classify("a-f-G")
    Classification(affiliation=<Affiliation.FRIENDLY: 'friendly'>, color=<MarkerColor.CYAN: 'cyan'>)
    """
    affiliation = affiliation_of(cot_type)
    return Classification(affiliation=affiliation, color=color_for(affiliation))


def category(cot_type: str | None) -> str | None:
    """Return the battle-dimension token (third token) upper-cased, if any."""
    token = _token(cot_type, 2)
    return token.upper() if token is not None else None
