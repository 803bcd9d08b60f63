"""Symbol renderer.

Pure lookup from a marker's ``(affiliation, category)`` to glyph sizing and an
icon identifier.  Presentation code calls this; the marker store never does.
"""

from __future__ import annotations

from typing import NamedTuple

from omnicot.classifier import category as type_category
from omnicot.models.marker import Affiliation, Marker

GENERIC_CATEGORY = "generic"

# Battle dimension token -> icon category.
_CATEGORIES: dict[str, str] = {
    "P": "space",
    "A": "air",
    "G": "ground",
    "S": "sea",
    "U": "subsurface",
    "F": "sof",
}

# Frame size in pixels per category.  Hostile frames are diamonds and need a
# larger box to show the same glyph; unknown frames are quatrefoils.
_BASE_SIZES: dict[str, tuple[int, int]] = {
    "space": (32, 32),
    "air": (32, 36),
    "ground": (36, 32),
    "sea": (36, 36),
    "subsurface": (36, 36),
    "sof": (32, 32),
    GENERIC_CATEGORY: (32, 32),
}

_AFFILIATION_PADDING: dict[Affiliation, int] = {
    Affiliation.FRIENDLY: 0,
    Affiliation.NEUTRAL: 0,
    Affiliation.HOSTILE: 8,
    Affiliation.UNKNOWN: 4,
}


class RenderedSymbol(NamedTuple):
    width: int
    height: int
    icon_id: str


def symbol_category(cot_type: str | None) -> str:
    token = type_category(cot_type)
    if token is None:
        return GENERIC_CATEGORY
    return _CATEGORIES.get(token, GENERIC_CATEGORY)


def render_for(affiliation: Affiliation, symbol_cat: str) -> RenderedSymbol:
    width, height = _BASE_SIZES.get(symbol_cat, _BASE_SIZES[GENERIC_CATEGORY])
    if symbol_cat not in _BASE_SIZES:
        symbol_cat = GENERIC_CATEGORY
    padding = _AFFILIATION_PADDING[affiliation]
    return RenderedSymbol(
        width=width + padding,
        height=height + padding,
        icon_id=f"{affiliation.value}-{symbol_cat}",
    )


def render(marker: Marker) -> RenderedSymbol:
    """Return display metadata for *marker*."""
    return render_for(marker.affiliation, symbol_category(marker.cot_type))


class SymbolRenderer:
    """Object wrapper around :func:`render` for presentation code."""

    def render_symbol(self, marker: Marker) -> RenderedSymbol:
        return render(marker)
