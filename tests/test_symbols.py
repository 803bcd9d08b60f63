from __future__ import annotations

from datetime import timedelta

import pytest

from _support import FakeClock, default_config, make_event
from omnicot.models.marker import Affiliation
from omnicot.state.store import MarkerStore
from omnicot.symbols import RenderedSymbol, SymbolRenderer, render, render_for, symbol_category


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MarkerStore:
    return MarkerStore(default_config(), clock=clock)


def test_friendly_ground(store: MarkerStore) -> None:
    marker = store.process_cot(make_event("A", "a-f-G-U-C"))

    assert render(marker) == RenderedSymbol(width=36, height=32, icon_id="friendly-ground")


def test_hostile_air_frame_is_padded(store: MarkerStore) -> None:
    marker = store.process_cot(make_event("A", "a-h-A"))

    assert render(marker) == RenderedSymbol(width=40, height=44, icon_id="hostile-air")


def test_unrecognized_dimension_is_generic(store: MarkerStore) -> None:
    marker = store.process_cot(make_event("A", "b-t"))

    assert render(marker).icon_id == "unknown-generic"
    assert symbol_category(None) == "generic"
    assert symbol_category("a-f-Z") == "generic"


def test_render_depends_only_on_affiliation_and_category(store: MarkerStore) -> None:
    first = store.process_cot(make_event("A", "a-n-S", lat=10.0, lon=10.0, callsign="one"))
    second = store.process_cot(make_event("B", "a-n-S-X", lat=-5.0, lon=3.0, callsign="two"))

    assert render(first) == render(second) == render_for(Affiliation.NEUTRAL, "sea")


def test_render_ignores_marker_state(store: MarkerStore, clock: FakeClock) -> None:
    fresh = store.process_cot(make_event("A", "a-u-G"))
    clock.advance(seconds=6)
    store.sweep()
    stale = store.get_marker("A")

    assert stale is not None and stale.is_stale
    assert render(stale) == render(fresh)
    assert store.config.stale_check_interval == timedelta(seconds=5)


def test_symbol_renderer_object(store: MarkerStore) -> None:
    marker = store.process_cot(make_event("A", "a-f-P"))

    assert SymbolRenderer().render_symbol(marker) == render(marker)
    assert render(marker).icon_id == "friendly-space"
