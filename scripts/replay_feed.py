#!/usr/bin/env python3
"""Replay a capture of CoT messages through a marker store.

Reads a file with one ``<event>`` per line (blank lines and lines starting
with ``#`` are skipped), pushes every message through the same feed bridge a
live transport would use, and prints the resulting marker table.

Use this to check how a capture decodes, how many messages are dropped, and
how capacity and staleness settings shape the table.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from omnicot import CotFeed, FeedContext, MarkerEvent, MarkerStore, MarkerStoreConfig  # noqa: E402
from omnicot.symbols import render  # noqa: E402


class _ReplayTransport:
    """In-process transport that delivers lines from a capture file."""

    def __init__(self) -> None:
        self._callbacks: dict[int, Callable[[str], None]] = {}

    def on_received(self, connection_id: int, callback: Callable[[str], None]) -> Callable[[], None]:
        self._callbacks[connection_id] = callback

        def unsubscribe() -> None:
            self._callbacks.pop(connection_id, None)

        return unsubscribe

    def deliver(self, connection_id: int, raw: str) -> bool:
        callback = self._callbacks.get(connection_id)
        if callback is None:
            return False
        callback(raw)
        return True


def _read_messages(path: Path) -> list[str]:
    messages: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        messages.append(text)
    return messages


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Replay a CoT capture through the omnicot marker store.",
    )
    parser.add_argument("capture", type=Path, help="File with one CoT <event> per line")
    parser.add_argument(
        "--interval-ms",
        type=float,
        default=0.0,
        help="Delay between messages in milliseconds (default: 0)",
    )
    parser.add_argument(
        "--max-markers",
        type=int,
        default=None,
        help="Override the store capacity",
    )
    parser.add_argument(
        "--stale-after-ms",
        type=int,
        default=None,
        help="Override the freshness window / sweep period",
    )
    parser.add_argument(
        "--remove-after-ms",
        type=int,
        default=None,
        help="Override the removal age",
    )
    parser.add_argument(
        "--sweep",
        action="store_true",
        help="Run one sweep pass after the replay finishes",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the final table as JSON",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


def _build_config(args: argparse.Namespace) -> MarkerStoreConfig:
    overrides: dict[str, object] = {}
    if args.max_markers is not None:
        overrides["max_markers"] = args.max_markers
    if args.stale_after_ms is not None:
        overrides["stale_check_interval"] = timedelta(milliseconds=args.stale_after_ms)
    if args.remove_after_ms is not None:
        overrides["auto_remove_stale_after"] = timedelta(milliseconds=args.remove_after_ms)
    return MarkerStoreConfig.from_env(**overrides)


async def _replay(args: argparse.Namespace, config: MarkerStoreConfig, messages: list[str]) -> int:
    transport = _ReplayTransport()
    removed: list[str] = []

    async with MarkerStore(config) as store:
        store.on(MarkerEvent.REMOVED, lambda event: removed.append(f"{event.uid} ({event.reason})"))
        feed = CotFeed(FeedContext(transport=transport), store)
        feed.attach(1)
        for raw in messages:
            transport.deliver(1, raw)
            if args.interval_ms > 0:
                await asyncio.sleep(args.interval_ms / 1000.0)
        if args.sweep:
            store.sweep()

        stats = store.get_stats()
        feed_stats = feed.stats
        markers = store.get_markers()
        feed.detach()

    if args.json:
        payload = {
            "feed": {
                "received": feed_stats.received,
                "processed": feed_stats.processed,
                "dropped": feed_stats.dropped,
            },
            "stats": stats.model_dump(),
            "removed": removed,
            "markers": [marker.model_dump(mode="json") for marker in markers],
        }
        print(json.dumps(payload, indent=2))
        return 0

    print(
        f"[replay] received={feed_stats.received} processed={feed_stats.processed} "
        f"dropped={feed_stats.dropped}"
    )
    print(f"[replay] markers total={stats.total} active={stats.active} stale={stats.stale}")
    for marker in markers:
        symbol = render(marker)
        print(
            f"  {marker.uid:<24} {marker.callsign:<16} {marker.affiliation.value:<8} "
            f"{marker.state.value:<6} {marker.lat:>10.5f} {marker.lon:>11.5f} {symbol.icon_id}"
        )
    for line in removed:
        print(f"[replay] removed {line}")
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _build_config(args)
    except ValueError as exc:
        print(f"[replay] Invalid configuration: {exc}", file=sys.stderr)
        return 2
    try:
        messages = _read_messages(args.capture)
    except OSError as exc:
        print(f"[replay] Cannot read {args.capture}: {exc}", file=sys.stderr)
        return 2
    return asyncio.run(_replay(args, config, messages))


if __name__ == "__main__":
    raise SystemExit(_main())
