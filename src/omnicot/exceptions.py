"""Custom exception hierarchy for omnicot."""

from __future__ import annotations


class CotError(Exception):
    """Base exception for all omnicot errors."""


class CotConfigError(CotError, ValueError):
    """Invalid or missing configuration.

    Raised when a :class:`~omnicot.config.MarkerStoreConfig` is built with a
    non-positive capacity, non-positive intervals, or a removal age that does
    not exceed the staleness window.  Values are never clamped.
    """


class MarkerStoreClosedError(CotError):
    """The marker store was destroyed and no longer accepts events."""

    def __init__(self, message: str = "marker store has been destroyed", *, uid: str | None = None) -> None:
        self.uid = uid
        super().__init__(message)
