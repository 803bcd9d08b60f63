"""In-memory marker store.

This is the only component allowed to mutate the marker table.  Every
mutation (ingestion, sweep ticks, eviction, explicit removal) runs under one
re-entrant lock, so the store may be fed from a network thread while the
sweeper runs on an asyncio loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from omnicot.classifier import classify
from omnicot.config import MarkerStoreConfig
from omnicot.exceptions import MarkerStoreClosedError
from omnicot.models.event import CotEvent
from omnicot.models.marker import Affiliation, Marker, MarkerState, MarkerStats
from omnicot.state.events import (
    MarkerCallback,
    MarkerEvent,
    MarkerLifecycleEvent,
    RemovalReason,
    Unsubscribe,
)
from omnicot.state.policy import select_evictions, should_expire, should_mark_stale

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, slots=True)
class _Subscription:
    """One registered callback.  Identity, not equality, tells subscriptions apart."""

    callback: MarkerCallback


@dataclass(frozen=True)
class SweepResult:
    """Markers touched by one sweep tick."""

    staled: tuple[Marker, ...] = ()
    removed: tuple[Marker, ...] = ()
    skipped: bool = False


@dataclass
class _SweepState:
    task: asyncio.Task[None] | None = None
    loop: asyncio.AbstractEventLoop | None = None
    ticks: int = 0
    skipped: int = 0
    last_tick: datetime | None = None


class MarkerStore:
    """Bounded, time-decaying table of tracked entities keyed by ``uid``.

    Usage::

        async with MarkerStore(MarkerStoreConfig.from_env()) as store:
            store.on(MarkerEvent.CREATED, handle_created)
            store.process_cot(event)
    """

    def __init__(
        self,
        config: MarkerStoreConfig,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._clock = clock
        self._markers: dict[str, Marker] = {}
        self._subscribers: dict[MarkerEvent, list[_Subscription]] = {kind: [] for kind in MarkerEvent}
        self._lock = threading.RLock()
        self._sweep_guard = threading.Lock()
        self._sweep = _SweepState()
        self._closed = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> MarkerStore:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    @property
    def config(self) -> MarkerStoreConfig:
        return self._config

    @property
    def closed(self) -> bool:
        """Whether :meth:`destroy` has been called."""
        return self._closed

    @property
    def is_running(self) -> bool:
        """Whether the autonomous sweeper task is scheduled."""
        task = self._sweep.task
        return task is not None and not task.done()

    def start(self) -> None:
        """Schedule the periodic sweep on the running asyncio loop.

        Calling ``start`` again while the sweeper runs is a no-op.
        """
        if self._closed:
            raise MarkerStoreClosedError()
        if self.is_running:
            return
        loop = asyncio.get_running_loop()
        self._sweep.loop = loop
        self._sweep.task = loop.create_task(self._run_sweeper(), name="omnicot-marker-sweep")
        _logger.info(
            "Marker sweeper started interval=%s remove_after=%s max_markers=%d",
            self._config.stale_check_interval,
            self._config.auto_remove_stale_after,
            self._config.max_markers,
        )

    async def _run_sweeper(self) -> None:
        interval = self._config.stale_check_interval.total_seconds()
        while not self._closed:
            await asyncio.sleep(interval)
            if self._closed:
                break
            try:
                self.sweep()
            except Exception:
                _logger.exception("Marker sweep tick failed")

    def destroy(self) -> None:
        """Stop the sweeper, drop all subscriptions and reject further events.

        Reads keep working on the table as it was.  Calling ``destroy`` twice
        is a no-op.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for subscriptions in self._subscribers.values():
                subscriptions.clear()
            retained = len(self._markers)

        task = self._sweep.task
        loop = self._sweep.loop
        if task is not None and not task.done():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop or loop is None:
                task.cancel()
            elif not loop.is_closed():
                loop.call_soon_threadsafe(task.cancel)
        _logger.info("Marker store destroyed (%d markers retained)", retained)

    async def aclose(self) -> None:
        """Destroy the store and wait for the sweeper task to finish."""
        self.destroy()
        task = self._sweep.task
        self._sweep.task = None
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on(self, kind: MarkerEvent | str, callback: MarkerCallback) -> Unsubscribe:
        """Subscribe *callback* to lifecycle events of *kind*.

        Callbacks run synchronously, in subscription order, inside the call
        that caused the transition.  A failing callback is logged and does
        not affect other callbacks.  Returns a function that removes the
        subscription; calling it more than once is harmless.
        """
        event_kind = MarkerEvent(kind)
        subscription = _Subscription(callback)
        with self._lock:
            if self._closed:
                raise MarkerStoreClosedError()
            self._subscribers[event_kind].append(subscription)

        def unsubscribe() -> None:
            with self._lock, contextlib.suppress(ValueError):
                self._subscribers[event_kind].remove(subscription)

        return unsubscribe

    def _emit(
        self,
        kind: MarkerEvent,
        marker: Marker,
        now: datetime,
        reason: RemovalReason | None = None,
    ) -> None:
        subscriptions = tuple(self._subscribers[kind])
        if not subscriptions:
            return
        event = MarkerLifecycleEvent(kind=kind, marker=marker, occurred_at=now, reason=reason)
        for subscription in subscriptions:
            try:
                subscription.callback(event)
            except Exception:
                _logger.warning(
                    "Marker %s callback %r failed for uid=%s",
                    kind,
                    subscription.callback,
                    marker.uid,
                    exc_info=True,
                )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=UTC)
        return now

    def process_cot(self, event: CotEvent) -> Marker:
        """Merge a decoded event into the table.

        Creates the marker on first sight of ``event.uid`` (emits
        ``CREATED``), otherwise refreshes position, callsign, team, motion and
        affiliation, resets the state to active (emits ``UPDATED``).

        Raises
        ------
        MarkerStoreClosedError
            If the store has been destroyed.
        """
        with self._lock:
            if self._closed:
                raise MarkerStoreClosedError(uid=event.uid)

            now = self._now()
            classification = classify(event.type)
            existing = self._markers.get(event.uid)

            if existing is None:
                marker = Marker(
                    uid=event.uid,
                    cot_type=event.type,
                    lat=event.point.lat,
                    lon=event.point.lon,
                    hae=event.point.hae,
                    ce=event.point.ce,
                    le=event.point.le,
                    affiliation=classification.affiliation,
                    color=classification.color,
                    callsign=event.callsign,
                    team=event.detail.team,
                    course=event.detail.course,
                    speed=event.detail.speed,
                    first_seen=now,
                    last_update=now,
                    state=MarkerState.ACTIVE,
                )
                self._markers[event.uid] = marker
                _logger.debug(
                    "Marker created uid=%s type=%s affiliation=%s",
                    marker.uid,
                    marker.cot_type,
                    marker.affiliation,
                )
                self._emit(MarkerEvent.CREATED, marker, now)
                self._enforce_capacity(now, keep=marker.uid)
                return marker

            # Never move last_update backwards, even if the clock does.
            marker = existing.model_copy(
                update={
                    "cot_type": event.type,
                    "lat": event.point.lat,
                    "lon": event.point.lon,
                    "hae": event.point.hae,
                    "ce": event.point.ce,
                    "le": event.point.le,
                    "affiliation": classification.affiliation,
                    "color": classification.color,
                    "callsign": event.callsign,
                    "team": event.detail.team,
                    "course": event.detail.course,
                    "speed": event.detail.speed,
                    "last_update": max(existing.last_update, now),
                    "state": MarkerState.ACTIVE,
                }
            )
            self._markers[event.uid] = marker
            self._emit(MarkerEvent.UPDATED, marker, now)
            return marker

    def _enforce_capacity(self, now: datetime, *, keep: str) -> None:
        # The marker just created is never its own victim, even if the clock stepped back.
        candidates = [marker for uid, marker in self._markers.items() if uid != keep]
        reserved = 1 if keep in self._markers else 0
        victims = select_evictions(candidates, self._config.max_markers - reserved)
        for victim in victims:
            del self._markers[victim.uid]
        if victims:
            _logger.debug(
                "Evicted %d marker(s) over capacity max_markers=%d",
                len(victims),
                self._config.max_markers,
            )
        for victim in victims:
            self._emit(MarkerEvent.REMOVED, victim, now, RemovalReason.EVICTED)

    def sweep(self) -> SweepResult:
        """Run one staleness/expiry pass over the table.

        Active markers idle longer than ``stale_check_interval`` become stale
        (``STALE`` emitted once per transition); markers idle longer than
        ``auto_remove_stale_after`` are removed (``REMOVED``, reason
        ``EXPIRED``).  A call made while another tick is still running is
        skipped.
        """
        if not self._sweep_guard.acquire(blocking=False):
            self._sweep.skipped += 1
            _logger.debug("Marker sweep already in progress; tick skipped")
            return SweepResult(skipped=True)
        try:
            with self._lock:
                if self._closed:
                    return SweepResult()
                now = self._now()
                staled: list[Marker] = []
                removed: list[Marker] = []
                for uid, marker in list(self._markers.items()):
                    if should_expire(marker, now, self._config.auto_remove_stale_after):
                        del self._markers[uid]
                        removed.append(marker)
                    elif should_mark_stale(marker, now, self._config.stale_check_interval):
                        demoted = marker.model_copy(update={"state": MarkerState.STALE})
                        self._markers[uid] = demoted
                        staled.append(demoted)

                self._sweep.ticks += 1
                self._sweep.last_tick = now
                if staled or removed:
                    _logger.debug(
                        "Marker sweep staled=%d removed=%d remaining=%d",
                        len(staled),
                        len(removed),
                        len(self._markers),
                    )

                for marker in staled:
                    self._emit(MarkerEvent.STALE, marker, now)
                for marker in removed:
                    self._emit(MarkerEvent.REMOVED, marker, now, RemovalReason.EXPIRED)
                return SweepResult(staled=tuple(staled), removed=tuple(removed))
        finally:
            self._sweep_guard.release()

    def remove_marker(self, uid: str) -> Marker | None:
        """Remove one marker explicitly; returns it, or ``None`` if unknown."""
        with self._lock:
            if self._closed:
                raise MarkerStoreClosedError(uid=uid)
            marker = self._markers.pop(uid, None)
            if marker is not None:
                self._emit(MarkerEvent.REMOVED, marker, self._now(), RemovalReason.MANUAL)
            return marker

    def clear(self) -> int:
        """Remove every marker; returns how many were removed."""
        with self._lock:
            if self._closed:
                raise MarkerStoreClosedError()
            removed = list(self._markers.values())
            self._markers.clear()
            now = self._now()
            for marker in removed:
                self._emit(MarkerEvent.REMOVED, marker, now, RemovalReason.MANUAL)
            return len(removed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_stats(self) -> MarkerStats:
        """Count the live table.  Derived on every call, never cached."""
        with self._lock:
            stale = sum(1 for marker in self._markers.values() if marker.state == MarkerState.STALE)
            total = len(self._markers)
        return MarkerStats(total=total, active=total - stale, stale=stale)

    def get_marker(self, uid: str) -> Marker | None:
        with self._lock:
            return self._markers.get(uid)

    def get_markers(
        self,
        *,
        affiliation: Affiliation | str | None = None,
        state: MarkerState | str | None = None,
    ) -> list[Marker]:
        """Snapshot of the table in insertion order, optionally filtered.

        Raises ``ValueError`` for a filter value that names no affiliation or
        state; unlike decoding, filters do not fall back to ``UNKNOWN``.
        """
        wanted_affiliation = Affiliation.strict(affiliation) if affiliation is not None else None
        wanted_state = MarkerState.strict(state) if state is not None else None
        with self._lock:
            markers = list(self._markers.values())
        return [
            marker
            for marker in markers
            if (wanted_affiliation is None or marker.affiliation == wanted_affiliation)
            and (wanted_state is None or marker.state == wanted_state)
        ]

    @property
    def sweep_ticks(self) -> int:
        return self._sweep.ticks

    @property
    def skipped_sweeps(self) -> int:
        return self._sweep.skipped

    def __len__(self) -> int:
        with self._lock:
            return len(self._markers)

    def __contains__(self, uid: object) -> bool:
        with self._lock:
            return uid in self._markers
