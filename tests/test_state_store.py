from __future__ import annotations

import logging
from datetime import timedelta

import pytest

from _support import T0, FakeClock, default_config, make_event
from omnicot.exceptions import MarkerStoreClosedError
from omnicot.models.marker import Affiliation, MarkerColor, MarkerState
from omnicot.state.events import MarkerEvent, MarkerLifecycleEvent, RemovalReason
from omnicot.state.store import MarkerStore


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MarkerStore:
    return MarkerStore(default_config(), clock=clock)


def _record(store: MarkerStore, *kinds: MarkerEvent) -> list[MarkerLifecycleEvent]:
    seen: list[MarkerLifecycleEvent] = []
    for kind in kinds:
        store.on(kind, seen.append)
    return seen


# ------------------------------------------------------------------
# process_cot
# ------------------------------------------------------------------


def test_new_uid_creates_active_friendly_marker(store: MarkerStore) -> None:
    marker = store.process_cot(make_event("ALPHA-1", "a-f-G", lat=38.8977, lon=-77.0365))

    assert marker.uid == "ALPHA-1"
    assert marker.affiliation == Affiliation.FRIENDLY
    assert marker.color == MarkerColor.CYAN
    assert marker.lat == pytest.approx(38.8977)
    assert marker.lon == pytest.approx(-77.0365)
    assert marker.callsign == "ALPHA-1"
    assert marker.state == MarkerState.ACTIVE
    assert marker.first_seen == marker.last_update == T0
    assert store.get_marker("ALPHA-1") == marker


def test_repeated_uid_keeps_one_marker_with_last_update_of_last_call(store: MarkerStore, clock: FakeClock) -> None:
    events = _record(store, MarkerEvent.CREATED, MarkerEvent.UPDATED)

    for i in range(5):
        store.process_cot(make_event("A", lat=float(i), lon=float(i)))
        clock.advance(seconds=1)
    last_call = T0 + timedelta(seconds=4)

    marker = store.get_marker("A")
    assert len(store) == 1
    assert marker is not None
    assert marker.first_seen == T0
    assert marker.last_update == last_call
    assert marker.lat == 4.0
    assert [e.kind for e in events] == [MarkerEvent.CREATED] + [MarkerEvent.UPDATED] * 4


def test_update_overwrites_fields_and_reclassifies(store: MarkerStore, clock: FakeClock) -> None:
    store.process_cot(make_event("A", "a-f-G", callsign="Viper", course=10.0, speed=1.0, team="Cyan"))
    clock.advance(seconds=2)

    marker = store.process_cot(make_event("A", "a-h-G", lat=5.0, lon=6.0, callsign="Cobra"))

    assert marker.affiliation == Affiliation.HOSTILE
    assert marker.color == MarkerColor.RED
    assert marker.cot_type == "a-h-G"
    assert (marker.lat, marker.lon) == (5.0, 6.0)
    assert marker.callsign == "Cobra"
    assert marker.course is None
    assert marker.speed is None
    assert marker.team is None


def test_returned_snapshot_is_not_mutated_by_later_updates(store: MarkerStore, clock: FakeClock) -> None:
    first = store.process_cot(make_event("A", lat=1.0, lon=1.0))
    clock.advance(seconds=1)
    store.process_cot(make_event("A", lat=2.0, lon=2.0))

    assert first.lat == 1.0
    assert store.get_marker("A").lat == 2.0  # type: ignore[union-attr]


def test_last_update_never_moves_backwards(store: MarkerStore, clock: FakeClock) -> None:
    store.process_cot(make_event("A"))
    clock.advance(seconds=-30)

    marker = store.process_cot(make_event("A", lat=1.0))

    assert marker.last_update == T0
    assert marker.lat == 1.0


def test_update_resets_stale_marker_to_active(store: MarkerStore, clock: FakeClock) -> None:
    store.process_cot(make_event("A"))
    clock.advance(seconds=6)
    store.sweep()
    assert store.get_marker("A").state == MarkerState.STALE  # type: ignore[union-attr]

    marker = store.process_cot(make_event("A"))

    assert marker.state == MarkerState.ACTIVE
    assert marker.last_update == clock.now


# ------------------------------------------------------------------
# Stats and reads
# ------------------------------------------------------------------


def test_stats_partition_live_table(store: MarkerStore, clock: FakeClock) -> None:
    assert store.get_stats().model_dump() == {"total": 0, "active": 0, "stale": 0}

    store.process_cot(make_event("A"))
    store.process_cot(make_event("B"))
    clock.advance(seconds=6)
    store.process_cot(make_event("C"))
    store.sweep()

    stats = store.get_stats()
    assert stats.total == stats.active + stats.stale == len(store) == 3
    assert stats.stale == 2
    assert stats.active == 1


def test_get_markers_filters_and_keeps_insertion_order(store: MarkerStore, clock: FakeClock) -> None:
    store.process_cot(make_event("H1", "a-h-G"))
    store.process_cot(make_event("F1", "a-f-G"))
    clock.advance(seconds=6)
    store.process_cot(make_event("F2", "a-f-A"))
    store.process_cot(make_event("H1", "a-h-G"))
    store.sweep()

    assert [m.uid for m in store.get_markers()] == ["H1", "F1", "F2"]
    assert [m.uid for m in store.get_markers(affiliation=Affiliation.FRIENDLY)] == ["F1", "F2"]
    assert [m.uid for m in store.get_markers(state="stale")] == ["F1"]
    assert [m.uid for m in store.get_markers(affiliation="hostile", state=MarkerState.ACTIVE)] == ["H1"]
    assert "F2" in store
    assert "nope" not in store
    assert store.get_marker("nope") is None


def test_get_markers_rejects_unknown_filter_values(store: MarkerStore) -> None:
    store.process_cot(make_event("U1", "a-u-G"))

    assert [m.uid for m in store.get_markers(affiliation="Unknown")] == ["U1"]
    with pytest.raises(ValueError, match="Affiliation"):
        store.get_markers(affiliation="bogus")
    with pytest.raises(ValueError, match="MarkerState"):
        store.get_markers(state="expired")


# ------------------------------------------------------------------
# Subscriptions
# ------------------------------------------------------------------


def test_subscribers_called_in_subscription_order(store: MarkerStore) -> None:
    calls: list[str] = []
    store.on(MarkerEvent.CREATED, lambda event: calls.append(f"first:{event.uid}"))
    store.on("created", lambda event: calls.append(f"second:{event.uid}"))

    store.process_cot(make_event("A"))

    assert calls == ["first:A", "second:A"]


def test_failing_subscriber_is_isolated_and_logged(store: MarkerStore, caplog: pytest.LogCaptureFixture) -> None:
    calls: list[str] = []

    def broken(_event: MarkerLifecycleEvent) -> None:
        raise RuntimeError("render failed")

    store.on(MarkerEvent.CREATED, broken)
    store.on(MarkerEvent.CREATED, lambda event: calls.append(event.uid))

    with caplog.at_level(logging.WARNING, logger="omnicot.state.store"):
        marker = store.process_cot(make_event("A"))

    assert marker.uid == "A"
    assert calls == ["A"]
    assert any("callback" in record.getMessage() and record.exc_info for record in caplog.records)


def test_unsubscribe_stops_delivery_and_is_idempotent(store: MarkerStore) -> None:
    calls: list[str] = []
    unsubscribe = store.on(MarkerEvent.CREATED, lambda event: calls.append(event.uid))

    store.process_cot(make_event("A"))
    unsubscribe()
    unsubscribe()
    store.process_cot(make_event("B"))

    assert calls == ["A"]


def test_same_callback_subscribed_twice_is_delivered_twice(store: MarkerStore) -> None:
    calls: list[str] = []

    def callback(event: MarkerLifecycleEvent) -> None:
        calls.append(event.uid)

    first = store.on(MarkerEvent.CREATED, callback)
    store.on(MarkerEvent.CREATED, callback)
    store.process_cot(make_event("A"))
    first()
    store.process_cot(make_event("B"))

    assert calls == ["A", "A", "B"]


def test_subscriber_can_query_store_during_delivery(store: MarkerStore) -> None:
    totals: list[int] = []
    store.on(MarkerEvent.CREATED, lambda _event: totals.append(store.get_stats().total))

    store.process_cot(make_event("A"))
    store.process_cot(make_event("B"))

    assert totals == [1, 2]


def test_unknown_event_kind_rejected(store: MarkerStore) -> None:
    with pytest.raises(ValueError):
        store.on("moved", lambda _event: None)


# ------------------------------------------------------------------
# Explicit removal
# ------------------------------------------------------------------


def test_remove_marker_emits_manual_removal_once(store: MarkerStore) -> None:
    events = _record(store, MarkerEvent.REMOVED)
    store.process_cot(make_event("A"))

    removed = store.remove_marker("A")

    assert removed is not None and removed.uid == "A"
    assert store.remove_marker("A") is None
    assert len(events) == 1
    assert events[0].reason == RemovalReason.MANUAL
    assert "A" not in store


def test_clear_removes_everything(store: MarkerStore) -> None:
    events = _record(store, MarkerEvent.REMOVED)
    for uid in ("A", "B", "C"):
        store.process_cot(make_event(uid))

    assert store.clear() == 3
    assert len(store) == 0
    assert [e.uid for e in events] == ["A", "B", "C"]


# ------------------------------------------------------------------
# destroy
# ------------------------------------------------------------------


def test_destroy_rejects_further_events_and_drops_subscriptions(store: MarkerStore) -> None:
    calls: list[str] = []
    store.on(MarkerEvent.CREATED, lambda event: calls.append(event.uid))
    store.process_cot(make_event("A"))

    store.destroy()
    store.destroy()

    assert store.closed
    with pytest.raises(MarkerStoreClosedError) as exc_info:
        store.process_cot(make_event("B"))
    assert exc_info.value.uid == "B"
    with pytest.raises(MarkerStoreClosedError):
        store.on(MarkerEvent.CREATED, lambda _event: None)
    with pytest.raises(MarkerStoreClosedError):
        store.remove_marker("A")
    assert calls == ["A"]
    assert store.get_stats().total == 1
    assert store.sweep().removed == ()
