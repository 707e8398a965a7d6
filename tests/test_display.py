"""
Tests for the display side: feed, arrival detection, highlights, sound, expiry sweep.
"""

import json

from pickup_core import DisplayClient, EventLoop, ManualClock
from pickup_core.arrival import ArrivalDetector
from pickup_core.config import order_path, orders_path
from pickup_core.feed import RemoteOrderFeed
from pickup_core.highlight import HighlightTracker
from pickup_core.order import new_order_payload
from pickup_core.sound import DebouncedCue, SoundPreference
from pickup_core.store import MemoryBackend

ROOM = "CAFE01"
START = 1_700_000_000_000


class CountingCue:
    def __init__(self):
        self.plays = 0

    def __call__(self):
        self.plays += 1


def make_room():
    clock = ManualClock(START)
    loop = EventLoop(clock)
    backend = MemoryBackend(clock)
    staff = backend.connect()
    return clock, loop, backend, staff


def add_order(staff, clock, number, ttl_ms=300_000):
    return staff.push(orders_path(ROOM), new_order_payload(number, clock(), ttl_ms))


# --- RemoteOrderFeed ---


def test_feed_orders_newest_first_and_latch_on_empty():
    clock, loop, backend, staff = make_room()
    feed = RemoteOrderFeed(backend.connect(), ROOM)
    loaded = []
    feed.on_initial_load(loaded.append)
    feed.start()
    assert feed.initial_loaded
    assert loaded == [frozenset()]
    add_order(staff, clock, 10)
    clock.advance(1)
    add_order(staff, clock, 11)
    assert feed.numbers() == [11, 10]
    assert feed.latest().number == 11


def test_feed_skips_non_mapping_children():
    clock, loop, backend, staff = make_room()
    staff.set(order_path(ROOM, "bad"), "garbage")
    staff.set(order_path(ROOM, "ok"), {"number": 3, "createdAt": 1})
    feed = RemoteOrderFeed(backend.connect(), ROOM)
    feed.start()
    assert feed.numbers() == [3]
    assert feed.get("ok").expires_at is None


def test_feed_discard_drops_locally_and_notifies():
    clock, loop, backend, staff = make_room()
    key = add_order(staff, clock, 10)
    feed = RemoteOrderFeed(backend.connect(), ROOM)
    snapshots = []
    feed.add_listener(snapshots.append)
    feed.start()
    feed.discard([key])
    assert feed.orders == ()
    assert len(snapshots) == 2
    assert staff.get(order_path(ROOM, key)) is not None


# --- ArrivalDetector ---


def test_events_before_initial_load_are_ignored():
    clock, loop, backend, staff = make_room()
    feed = RemoteOrderFeed(backend.connect(), ROOM)
    detector = ArrivalDetector(feed)
    arrivals = []
    detector.on_arrival.set(arrivals.append)
    assert detector.handle(("k1", {"number": 1})) is False
    assert detector.ignored == 1
    assert detector.arrivals == 0
    assert arrivals == []


def test_each_id_arrives_at_most_once():
    clock, loop, backend, staff = make_room()
    feed = RemoteOrderFeed(backend.connect(), ROOM)
    detector = ArrivalDetector(feed)
    arrivals = []
    detector.on_arrival.set(arrivals.append)
    detector.attach()
    feed.start()
    assert detector.handle(("k1", {"number": 1})) is True
    assert detector.handle(("k1", {"number": 1})) is False
    assert detector.handle(("", {"number": 2})) is False
    assert detector.handle(("k2", None)) is False
    assert [a.number for a in arrivals] == [1]
    assert detector.arrivals == 1
    assert detector.ignored == 0


def test_child_reentering_tail_window_is_not_a_new_arrival():
    clock, loop, backend, staff = make_room()
    feed = RemoteOrderFeed(backend.connect(), ROOM, tail=2)
    detector = ArrivalDetector(feed)
    arrivals = []
    detector.on_arrival.set(arrivals.append)
    detector.attach()
    feed.start()
    keys = []
    for n in (1, 2, 3):
        keys.append(add_order(staff, clock, n))
        clock.advance(1)
    staff.remove(order_path(ROOM, keys[2]))
    assert [a.number for a in arrivals] == [1, 2, 3]


# --- DisplayClient: highlights ---


def test_initial_orders_are_not_highlighted_sixth_is():
    clock, loop, backend, staff = make_room()
    for n in range(1, 6):
        add_order(staff, clock, n)
        clock.advance(1)
    cue = CountingCue()
    display = DisplayClient(backend.connect(), ROOM, loop, cue=cue)
    display.start()
    assert len(display.orders) == 5
    assert display.highlights.state == {}
    assert cue.plays == 0

    key = add_order(staff, clock, 6)
    assert set(display.highlights.state) == {key}
    assert cue.plays == 1
    board = display.board()
    assert board[0].order.number == 6
    assert board[0].is_new and board[0].is_latest
    assert not any(e.is_new for e in board[1:])


def test_highlight_ends_between_five_and_six_seconds():
    clock, loop, backend, staff = make_room()
    display = DisplayClient(backend.connect(), ROOM, loop)
    display.start()
    key = add_order(staff, clock, 42)
    loop.advance(4_999)
    assert display.highlights.is_highlighted(key)
    loop.advance(1_001)
    assert not display.highlights.is_highlighted(key)
    assert display.feed.get(key) is not None


def test_sound_off_still_highlights(tmp_path):
    clock, loop, backend, staff = make_room()
    pref = SoundPreference(tmp_path / "settings.json")
    pref.load()
    pref.set_enabled(False)
    cue = CountingCue()
    display = DisplayClient(backend.connect(), ROOM, loop, sound=pref, cue=cue)
    display.start()
    key = add_order(staff, clock, 1)
    assert display.highlights.is_highlighted(key)
    assert cue.plays == 0
    assert display.toggle_sound() is True
    add_order(staff, clock, 2)
    assert cue.plays == 1


def test_cue_failure_does_not_break_highlight():
    def broken():
        raise RuntimeError("no audio device")

    tracker = HighlightTracker(clock=ManualClock(0), cue=broken)
    tracker.kick("k1")
    assert tracker.is_highlighted("k1")


def test_swapping_arrival_handler_takes_effect_immediately():
    clock, loop, backend, staff = make_room()
    display = DisplayClient(backend.connect(), ROOM, loop)
    display.start()
    seen = []
    display.detector.on_arrival.set(lambda a: seen.append(a.number))
    key = add_order(staff, clock, 9)
    assert seen == [9]
    assert not display.highlights.is_highlighted(key)


# --- DisplayClient: expiry ---


def test_reaper_removes_past_keeps_future_and_unset():
    clock, loop, backend, staff = make_room()
    past = staff.push(orders_path(ROOM), {"number": 1, "createdAt": START - 10, "expiresAt": START - 1})
    future = staff.push(orders_path(ROOM), {"number": 2, "createdAt": START, "expiresAt": START + 60_000})
    unset = staff.push(orders_path(ROOM), {"number": 3, "createdAt": START})
    display = DisplayClient(backend.connect(), ROOM, loop)
    display.start()
    assert len(display.orders) == 3

    loop.advance(10_000)
    assert staff.get(order_path(ROOM, past)) is None
    assert {o.id for o in display.orders} == {future, unset}
    assert display.reaper.removed == 1

    loop.advance(60_000)
    assert [o.id for o in display.orders] == [unset]


def test_reaper_uses_server_time():
    clock, loop, backend, staff = make_room()
    key = add_order(staff, clock, 5, ttl_ms=30_000)
    display = DisplayClient(backend.connect(server_time_offset=60_000), ROOM, loop)
    display.start()
    loop.advance(10_000)
    assert staff.get(order_path(ROOM, key)) is None


def test_reaper_failure_is_logged_not_retried():
    clock, loop, backend, staff = make_room()
    add_order(staff, clock, 5, ttl_ms=1_000)
    store = backend.connect()
    display = DisplayClient(store, ROOM, loop)
    display.start()
    store.set_connected(False)
    loop.advance(10_000)
    assert display.reaper.failed == 1
    assert display.orders == ()
    loop.advance(10_000)
    assert display.reaper.failed == 1


def test_two_displays_sweeping_the_same_order():
    clock, loop, backend, staff = make_room()
    key = add_order(staff, clock, 5, ttl_ms=1_000)
    a = DisplayClient(backend.connect(), ROOM, loop)
    b = DisplayClient(backend.connect(), ROOM, loop)
    a.start()
    b.start()
    loop.advance(10_000)
    assert staff.get(order_path(ROOM, key)) is None
    assert a.orders == () and b.orders == ()
    assert a.reaper.failed == 0 and b.reaper.failed == 0


def test_close_cancels_timers_and_subscriptions():
    clock, loop, backend, staff = make_room()
    display = DisplayClient(backend.connect(), ROOM, loop)
    display.start()
    display.close()
    assert loop.next_due() is None
    add_order(staff, clock, 1)
    assert display.orders == ()


# --- Sound preference ---


def test_sound_preference_first_run_writes_default(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    pref = SoundPreference(path)
    assert pref.load() is True
    assert json.loads(path.read_text()) == {"pickupDisplaySoundEnabled": True}


def test_sound_preference_persists_across_loads(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"other": 1}))
    pref = SoundPreference(path)
    pref.load()
    assert pref.toggle() is False
    again = SoundPreference(path)
    assert again.load() is False
    assert json.loads(path.read_text())["other"] == 1


def test_sound_preference_corrupt_file_falls_back(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json")
    pref = SoundPreference(path)
    assert pref.load() is True


def test_debounced_cue_skips_while_playing():
    clock = ManualClock(0)
    played = []
    cue = DebouncedCue(lambda: played.append(clock()), duration_ms=400, clock=clock)
    cue()
    clock.advance(100)
    cue()
    clock.advance(300)
    cue()
    assert played == [0, 400]
    assert cue.plays == 2
