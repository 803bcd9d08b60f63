"""Feed bridge between a TAK transport and the marker store.

The transport is an external collaborator: it owns sockets, TLS and
reconnection, and hands each received message to a callback.  The bridge only
decodes and forwards.  The transport reaches the bridge through an explicit
:class:`FeedContext` built once at application assembly, never through a
module-level singleton.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from omnicot.exceptions import MarkerStoreClosedError
from omnicot.ingestion.decoder import decode
from omnicot.ingestion.normalize import clip_for_log
from omnicot.models.event import CotEvent
from omnicot.models.marker import Marker
from omnicot.state.store import MarkerStore

_logger = logging.getLogger(__name__)


class CotTransport(Protocol):
    """What the bridge needs from a transport."""

    def on_received(self, connection_id: int, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register *callback* for raw messages on *connection_id*; returns an unsubscribe function."""
        ...


@dataclass(frozen=True)
class FeedContext:
    """Shared services handed to every feed of one application."""

    transport: CotTransport


@dataclass(frozen=True)
class FeedStats:
    received: int = 0
    processed: int = 0
    dropped: int = 0


class CotFeed:
    """Decode messages from one transport connection into a marker store."""

    def __init__(
        self,
        context: FeedContext,
        store: MarkerStore,
        *,
        decoder: Callable[[str | bytes], CotEvent | None] = decode,
    ) -> None:
        self._context = context
        self._store = store
        self._decoder = decoder
        self._counter_lock = threading.Lock()
        self._received = 0
        self._processed = 0
        self._dropped = 0
        self._connection_id: int | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def connection_id(self) -> int | None:
        return self._connection_id

    @property
    def is_attached(self) -> bool:
        return self._unsubscribe is not None

    @property
    def stats(self) -> FeedStats:
        with self._counter_lock:
            return FeedStats(received=self._received, processed=self._processed, dropped=self._dropped)

    def attach(self, connection_id: int) -> None:
        """Start receiving from *connection_id*, replacing any previous attachment."""
        self.detach()
        self._unsubscribe = self._context.transport.on_received(connection_id, self.handle_message)
        self._connection_id = connection_id
        _logger.debug("CoT feed attached connection_id=%s", connection_id)

    def detach(self) -> None:
        """Stop receiving.  Safe to call when not attached."""
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is None:
            return
        connection_id = self._connection_id
        self._connection_id = None
        unsubscribe()
        _logger.debug("CoT feed detached connection_id=%s", connection_id)

    def _count(self, *, processed: bool) -> None:
        with self._counter_lock:
            self._received += 1
            if processed:
                self._processed += 1
            else:
                self._dropped += 1

    def handle_message(self, raw: str | bytes) -> Marker | None:
        """Decode *raw* and merge it into the store.

        Malformed messages are dropped; a later broadcast from the same
        entity supersedes them.  Nothing raised by external input leaves
        this method.
        """
        event = self._decoder(raw)
        if event is None:
            self._count(processed=False)
            return None
        try:
            marker = self._store.process_cot(event)
        except MarkerStoreClosedError:
            self._count(processed=False)
            _logger.info("Marker store closed; detaching CoT feed connection_id=%s", self._connection_id)
            self.detach()
            return None
        except Exception:
            self._count(processed=False)
            _logger.debug("CoT message ingestion failed: %s", clip_for_log(raw), exc_info=True)
            return None
        self._count(processed=True)
        return marker
