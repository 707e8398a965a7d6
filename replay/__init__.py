"""
Shift replays on top of pickup-core.

Runs a scripted sequence of staff actions through a controller and several
displays on a simulated clock; computes board metrics.
"""

from replay.engine import ReplayEngine, ReplayResult
from replay.script_loader import load_csv, load_dataframe
from replay.metrics import compute_metrics
from replay.report import print_report

__all__ = [
    "ReplayEngine",
    "ReplayResult",
    "load_csv",
    "load_dataframe",
    "compute_metrics",
    "print_report",
]
