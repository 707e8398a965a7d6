"""
Display demo: one controller and one display sharing an in-memory room.

Shows: submit with validators/observers hooks, duplicate rejection, highlight
and chime on arrival, delete + undo, TTL change, and the expiry sweep, all on
a simulated clock so the demo runs instantly.
"""

from __future__ import annotations

import logging

from pickup_core import ActionResult, Controller, DisplayClient, EventLoop, ManualClock, Settings
from pickup_core.config import TTL_OPTIONS_MINUTES
from pickup_core.sound import DebouncedCue, SoundPreference
from pickup_core.store import MemoryBackend


# --- Example validator and observer (same signatures the controller accepts) ---


def three_digit_validator(number: int) -> str | None:
    """Validator: this counter only hands out tickets up to 999."""
    if number > 999:
        return "Tickets at this counter go up to 999."
    return None


def print_result_observer(result: ActionResult) -> None:
    """Observer: show every staff action outcome (e.g. a toast in a UI)."""
    print(f"  [{result.kind.value:>8}] {result.action}: {result.message}")


def show_board(display: DisplayClient) -> None:
    entries = display.board()
    if not entries:
        print("  (board empty)")
    for entry in entries:
        flags = []
        if entry.is_latest:
            flags.append("latest")
        if entry.is_new:
            flags.append("NEW")
        print(f"  #{entry.order.number:<6} {' '.join(flags)}")


def main() -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    clock = ManualClock(1_700_000_000_000)
    loop = EventLoop(clock)
    backend = MemoryBackend(clock)
    settings = Settings.from_env()
    room = settings.default_room

    controller = Controller(
        backend.connect(),
        room,
        settings=settings,
        local_clock=clock,
        validators=[three_digit_validator],
        observers=[print_result_observer],
    )
    sound = SoundPreference(settings.settings_path)
    sound.load()
    chime = DebouncedCue(lambda: print("  *ding*"), duration_ms=settings.cue_ms, clock=clock)
    display = DisplayClient(backend.connect(), room, loop, settings=settings, sound=sound, cue=chime)

    controller.start()
    controller.submit("41")
    display.start()

    print("--- Display joins: existing order is not highlighted ---")
    show_board(display)

    print("\n--- Staff adds orders ---")
    controller.submit("42")
    loop.advance(1_000)
    controller.select_recommendation(controller.recommendations()[0])
    controller.submit("42")
    controller.submit("1200")
    show_board(display)

    print("\n--- 6 s later: highlights are gone ---")
    loop.advance(6_000)
    show_board(display)

    print("\n--- Delete and undo ---")
    controller.delete_number(42)
    show_board(display)
    controller.undo()
    controller.undo()
    show_board(display)

    print("\n--- TTL change only affects new orders ---")
    shortest = TTL_OPTIONS_MINUTES[0]
    controller.set_ttl(shortest)
    controller.submit("50")
    loop.advance(shortest * 60_000 + settings.expiry_sweep_ms)
    print(f"  after {shortest} min:")
    show_board(display)
    loop.advance(2 * 60_000)
    print("  2 min later:")
    show_board(display)

    print("\n--- Rejected log ---")
    for entry in controller.get_rejected_log():
        print(f"  Rejected: action={entry.action}, number={entry.number}, reason={entry.reason}")

    display.close()
    controller.close()


if __name__ == "__main__":
    main()
