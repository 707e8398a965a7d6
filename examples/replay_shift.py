"""
Shift replay demo using the replay harness.

Demonstrates: load CSV script → controller actions → two displays highlight,
chime and sweep → metrics report.
"""

import logging
from pathlib import Path

from pickup_core import Settings
from replay import ReplayEngine, load_csv, print_report


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # Settings from PICKUP_* environment variables, defaults otherwise
    settings = Settings.from_env()

    # Path to sample script (relative to this file)
    data_dir = Path(__file__).resolve().parent / "data"
    script = load_csv(data_dir / "sample_shift.csv", room_id=settings.default_room)

    engine = ReplayEngine(
        settings,
        displays=2,
        seed_orders=(17, 18),  # already on the board when the displays come up
        room_id=script.attrs.get("room", settings.default_room),
    )
    result = engine.run(script)

    print_report(result)


if __name__ == "__main__":
    main()
