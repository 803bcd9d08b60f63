"""Marker store configuration for omnicot."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from omnicot._constants import (
    DEFAULT_AUTO_REMOVE_STALE_AFTER_MS,
    DEFAULT_MAX_MARKERS,
    DEFAULT_STALE_CHECK_INTERVAL_MS,
)
from omnicot.exceptions import CotConfigError


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as exc:
        raise CotConfigError(f"{key} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MarkerStoreConfig:
    """Marker store configuration.

    Parameters
    ----------
    stale_check_interval : timedelta
        Sweep period and freshness window.  An active marker idle for longer
        than this is demoted to stale on the next sweep.
    auto_remove_stale_after : timedelta
        Idle age after which a marker (active or stale) is removed.  Must be
        strictly greater than ``stale_check_interval``.
    max_markers : int
        Hard capacity of the store.  Must be positive.

    Raises
    ------
    CotConfigError
        If any value is out of range.  Nothing is clamped.
    """

    stale_check_interval: timedelta
    auto_remove_stale_after: timedelta
    max_markers: int

    def __post_init__(self) -> None:
        if not isinstance(self.stale_check_interval, timedelta):
            raise CotConfigError("stale_check_interval must be a timedelta")
        if not isinstance(self.auto_remove_stale_after, timedelta):
            raise CotConfigError("auto_remove_stale_after must be a timedelta")
        if isinstance(self.max_markers, bool) or not isinstance(self.max_markers, int):
            raise CotConfigError("max_markers must be an integer")
        if self.max_markers <= 0:
            raise CotConfigError(f"max_markers must be positive, got {self.max_markers}")
        if self.stale_check_interval <= timedelta(0):
            raise CotConfigError("stale_check_interval must be positive")
        if self.stale_check_interval >= self.auto_remove_stale_after:
            raise CotConfigError(
                "auto_remove_stale_after must exceed stale_check_interval "
                f"({self.auto_remove_stale_after} <= {self.stale_check_interval})"
            )

    @classmethod
    def from_millis(
        cls,
        *,
        stale_check_interval_ms: int,
        auto_remove_stale_after_ms: int,
        max_markers: int,
    ) -> MarkerStoreConfig:
        """Build a config from millisecond intervals."""
        return cls(
            stale_check_interval=timedelta(milliseconds=stale_check_interval_ms),
            auto_remove_stale_after=timedelta(milliseconds=auto_remove_stale_after_ms),
            max_markers=max_markers,
        )

    @classmethod
    def from_env(cls, **overrides: Any) -> MarkerStoreConfig:
        """Create configuration from environment variables.

        Reads ``OMNICOT_STALE_CHECK_INTERVAL_MS``,
        ``OMNICOT_AUTO_REMOVE_STALE_AFTER_MS`` and ``OMNICOT_MAX_MARKERS``.
        Unset variables fall back to the mobile client defaults (5 s, 60 s,
        10000 markers).  Explicit keyword arguments override environment
        values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        MarkerStoreConfig
            Populated, validated configuration.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {
            "stale_check_interval": timedelta(
                milliseconds=_env_int(env, "OMNICOT_STALE_CHECK_INTERVAL_MS", DEFAULT_STALE_CHECK_INTERVAL_MS)
            ),
            "auto_remove_stale_after": timedelta(
                milliseconds=_env_int(env, "OMNICOT_AUTO_REMOVE_STALE_AFTER_MS", DEFAULT_AUTO_REMOVE_STALE_AFTER_MS)
            ),
            "max_markers": _env_int(env, "OMNICOT_MAX_MARKERS", DEFAULT_MAX_MARKERS),
        }
        config_kwargs.update(overrides)

        return cls(**config_kwargs)
