"""
Shift report: print a summary from ReplayResult and ReplayMetrics.
"""

from __future__ import annotations

from replay.engine import ReplayResult
from replay.metrics import ReplayMetrics, compute_metrics


def print_report(result: ReplayResult) -> ReplayMetrics:
    """
    Compute metrics from a replay result and print a shift summary.

    Parameters
    ----------
    result : ReplayResult
        Output of ReplayEngine.run().

    Returns
    -------
    ReplayMetrics
        The computed metrics (e.g. for programmatic use).
    """
    metrics = compute_metrics(result)
    duration_s = (result.finished_at - result.started_at) / 1000.0
    print(f"--- Shift Replay: room {result.room_id} ---")
    print(f"Duration:        {duration_s:,.1f} s")
    print(f"Actions:         {metrics.actions}")
    print(f"Seeded:          {result.seeded}")
    print(f"Orders added:    {metrics.orders_created}")
    print(f"Restored (undo): {metrics.orders_restored}")
    print(f"Rejected:        {metrics.rejected}")
    print(f"Failed:          {metrics.failed}")
    print(f"Removed:         {metrics.removed_expired} expired, {metrics.removed_deleted} deleted")
    print(f"Left on board:   {metrics.orders_left}")
    print(f"Highlights:      {', '.join(str(h) for h in metrics.highlights_per_display)}")
    print(f"Chimes:          {', '.join(str(c) for c in metrics.chimes_per_display)}")
    print(f"Dwell:           mean {metrics.mean_dwell_s:.1f} s, max {metrics.max_dwell_s:.1f} s")
    print(f"Max expiry lag:  {metrics.max_expiry_lag_s:.1f} s")
    print("----------------------------------")
    return metrics
