"""
Tests for the store layer: push ids, MemoryBackend / MemoryRemoteStore semantics.
"""

import random

import pytest

from pickup_core import ManualClock
from pickup_core.store import (
    InvalidPathError,
    MemoryBackend,
    PushIdGenerator,
    StoreError,
    StoreUnavailableError,
)


# --- Push ids ---


def test_push_ids_sort_in_creation_order():
    clock = ManualClock(1_700_000_000_000)
    gen = PushIdGenerator(clock, random.Random(7))
    ids = []
    for _ in range(5):
        ids.append(gen())  # same millisecond
    clock.advance(1)
    ids.append(gen())
    clock.advance(10_000)
    ids.append(gen())
    assert all(len(i) == 20 for i in ids)
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_push_ids_stay_ordered_if_clock_steps_back():
    times = iter([5_000, 4_000, 6_000])
    gen = PushIdGenerator(lambda: next(times), random.Random(1))
    ids = [gen(), gen(), gen()]
    assert ids == sorted(ids)


# --- Reads and writes ---


def test_set_get_and_remove_prunes_empty_parents():
    backend = MemoryBackend(ManualClock(0))
    store = backend.connect()
    store.set("rooms/A/orders/x", {"number": 1})
    assert store.get("rooms/A/orders") == {"x": {"number": 1}}
    store.remove("rooms/A/orders/x")
    assert store.get("rooms/A/orders/x") is None
    assert store.get("rooms/A") is None


def test_remove_missing_path_is_harmless():
    store = MemoryBackend(ManualClock(0)).connect()
    store.remove("rooms/A/orders/nope")
    assert store.get("rooms") is None


def test_get_returns_a_copy():
    store = MemoryBackend(ManualClock(0)).connect()
    store.set("a/b", {"n": 1})
    got = store.get("a/b")
    got["n"] = 99
    assert store.get("a/b") == {"n": 1}


def test_push_returns_sortable_keys():
    clock = ManualClock(1_000)
    store = MemoryBackend(clock).connect()
    k1 = store.push("rooms/A/orders", {"number": 1})
    clock.advance(5)
    k2 = store.push("rooms/A/orders", {"number": 2})
    assert k1 < k2
    assert set(store.get("rooms/A/orders")) == {k1, k2}


@pytest.mark.parametrize("path", ["", "/", "rooms//orders"])
def test_invalid_paths_raise(path):
    store = MemoryBackend(ManualClock(0)).connect()
    with pytest.raises(InvalidPathError):
        store.set(path, 1)


# --- Connectivity and failures ---


def test_disconnected_store_fails_fast():
    store = MemoryBackend(ManualClock(0)).connect()
    store.set_connected(False)
    with pytest.raises(StoreUnavailableError):
        store.push("rooms/A/orders", {"number": 1})
    with pytest.raises(StoreUnavailableError):
        store.get("rooms/A/orders")
    assert isinstance(StoreUnavailableError("x"), StoreError)


def test_fail_writes_raises_configured_error():
    store = MemoryBackend(ManualClock(0)).connect()
    store.fail_writes(StoreError("permission denied"))
    with pytest.raises(StoreError, match="permission denied"):
        store.set("a", 1)
    store.fail_writes(None)
    store.set("a", 1)
    assert store.get("a") == 1


def test_on_connected_reports_current_and_changes():
    store = MemoryBackend(ManualClock(0)).connect()
    seen = []
    store.on_connected(seen.append)
    store.set_connected(False)
    store.set_connected(False)
    store.set_connected(True)
    assert seen == [True, False, True]


def test_emit_error_reaches_subscriptions():
    store = MemoryBackend(ManualClock(0)).connect()
    errors = []
    store.on_value("a", lambda v: None, errors.append)
    boom = StoreError("permission denied")
    store.emit_error(boom)
    assert errors == [boom]


# --- Value subscriptions ---


def test_on_value_delivers_initial_none_and_changes_only():
    store = MemoryBackend(ManualClock(0)).connect()
    seen = []
    store.on_value("rooms/A/orders", seen.append)
    store.set("rooms/A/config/ttl", 1)  # elsewhere: no delivery
    store.set("rooms/A/orders/x", {"number": 1})
    assert seen == [None, {"x": {"number": 1}}]


def test_unsubscribe_stops_delivery():
    store = MemoryBackend(ManualClock(0)).connect()
    seen = []
    unsubscribe = store.on_value("a", seen.append)
    unsubscribe()
    store.set("a", 1)
    assert seen == [None]


def test_reconnect_resyncs_subscriptions():
    backend = MemoryBackend(ManualClock(0))
    writer = backend.connect()
    reader = backend.connect()
    seen = []
    reader.on_value("a", seen.append)
    reader.set_connected(False)
    writer.set("a", 1)
    assert seen == [None]
    reader.set_connected(True)
    assert seen == [None, 1]


# --- Child-added subscriptions ---


def test_child_added_reports_existing_then_new():
    clock = ManualClock(0)
    store = MemoryBackend(clock).connect()
    k1 = store.push("o", {"number": 1})
    added = []
    store.on_child_added("o", lambda key, value: added.append((key, value["number"])))
    clock.advance(1)
    k2 = store.push("o", {"number": 2})
    assert added == [(k1, 1), (k2, 2)]


def test_child_added_window_refires_when_child_reenters():
    clock = ManualClock(0)
    store = MemoryBackend(clock).connect()
    added = []
    store.on_child_added("o", lambda key, value: added.append(value["number"]), limit_to_last=2)
    keys = []
    for n in (1, 2, 3):
        keys.append(store.push("o", {"number": n}))
        clock.advance(1)
    assert added == [1, 2, 3]
    store.remove(f"o/{keys[2]}")
    # Child 1 is back inside the last-2 window.
    assert added == [1, 2, 3, 1]


def test_child_events_are_delivered_before_value_events():
    store = MemoryBackend(ManualClock(0)).connect()
    log = []
    store.on_value("o", lambda v: log.append("value"))
    store.on_child_added("o", lambda k, v: log.append("child"))
    log.clear()
    store.push("o", {"number": 1})
    assert log == ["child", "value"]


# --- Propagation ---


def test_deferred_backend_delivers_on_flush():
    backend = MemoryBackend(ManualClock(0), deferred=True)
    writer = backend.connect()
    reader = backend.connect()
    writer_seen, reader_seen = [], []
    writer.on_value("a", writer_seen.append)
    reader.on_value("a", reader_seen.append)
    writer.set("a", 1)
    assert writer_seen == [None, 1]
    assert reader_seen == [None]
    assert backend.flush() == 1
    assert reader_seen == [None, 1]
    assert backend.flush() == 0


def test_server_time_offset_listener():
    store = MemoryBackend(ManualClock(0)).connect(server_time_offset=120)
    seen = []
    store.on_server_time_offset(seen.append)
    store.set_server_time_offset(-40)
    assert seen == [120, -40]
