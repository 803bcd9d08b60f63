"""omnicot - Cursor-on-Target ingestion and marker lifecycle engine."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("omnicot")
except PackageNotFoundError:
    __version__ = "0+local"
from omnicot.classifier import AFFILIATION_COLORS, Classification, classify
from omnicot.config import MarkerStoreConfig
from omnicot.exceptions import CotConfigError, CotError, MarkerStoreClosedError
from omnicot.ingestion.decoder import decode
from omnicot.ingestion.encoder import encode, position_report
from omnicot.ingestion.feed import CotFeed, CotTransport, FeedContext
from omnicot.models import (
    Affiliation,
    CotDetail,
    CotEvent,
    CotPoint,
    Marker,
    MarkerColor,
    MarkerState,
    MarkerStats,
)
from omnicot.state.events import MarkerEvent, MarkerLifecycleEvent, RemovalReason
from omnicot.state.store import MarkerStore, SweepResult
from omnicot.symbols import RenderedSymbol, SymbolRenderer, render

__all__ = [
    "__version__",
    "AFFILIATION_COLORS",
    "Affiliation",
    "Classification",
    "CotConfigError",
    "CotDetail",
    "CotError",
    "CotEvent",
    "CotFeed",
    "CotPoint",
    "CotTransport",
    "FeedContext",
    "Marker",
    "MarkerColor",
    "MarkerEvent",
    "MarkerLifecycleEvent",
    "MarkerState",
    "MarkerStats",
    "MarkerStore",
    "MarkerStoreClosedError",
    "MarkerStoreConfig",
    "RemovalReason",
    "RenderedSymbol",
    "SweepResult",
    "SymbolRenderer",
    "classify",
    "decode",
    "encode",
    "position_report",
    "render",
]
