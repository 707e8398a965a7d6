"""
Replay metrics: action outcomes, highlights per display, dwell time, expiry lag.

Dwell is removal time minus creation time; expiry lag is removal time minus
expiresAt for orders removed by the reaper. Times are reported in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from pickup_core.results import ActionKind
from replay.engine import ReplayResult


@dataclass
class ReplayMetrics:
    """Summary of one replayed shift."""

    actions: int
    orders_created: int
    orders_restored: int
    rejected: int
    failed: int
    removed_expired: int
    removed_deleted: int
    orders_left: int
    highlights_per_display: list[int] = field(default_factory=list)
    chimes_per_display: list[int] = field(default_factory=list)
    mean_dwell_s: float = 0.0
    max_dwell_s: float = 0.0
    max_expiry_lag_s: float = 0.0


def compute_metrics(result: ReplayResult) -> ReplayMetrics:
    """
    Compute metrics from a replay result.

    Parameters
    ----------
    result : ReplayResult
        Output of ReplayEngine.run().

    Returns
    -------
    ReplayMetrics
        Counts per outcome, highlights and chimes per display, dwell mean/max
        and the worst expiry lag.
    """
    accepted = [r for r in result.results if r.kind == ActionKind.ACCEPTED]
    highlights = np.bincount(
        np.array([a.display for a in result.arrivals], dtype=int),
        minlength=result.displays,
    )

    if result.removals:
        removed_at = np.array([r.removed_at for r in result.removals], dtype=float)
        created_at = np.array([r.created_at for r in result.removals], dtype=float)
        dwell_s = (removed_at - created_at) / 1000.0
        mean_dwell_s = float(np.mean(dwell_s))
        max_dwell_s = float(np.max(dwell_s))
    else:
        mean_dwell_s = max_dwell_s = 0.0

    lags = np.array(
        [r.removed_at - r.expires_at for r in result.removals if r.expired],
        dtype=float,
    )
    max_expiry_lag_s = float(np.max(lags)) / 1000.0 if lags.size else 0.0
    expired = int(lags.size)

    return ReplayMetrics(
        actions=len(result.results),
        orders_created=sum(1 for r in accepted if r.action == "submit"),
        orders_restored=sum(1 for r in accepted if r.action == "undo"),
        rejected=sum(1 for r in result.results if r.kind == ActionKind.REJECTED),
        failed=sum(1 for r in result.results if r.kind == ActionKind.FAILED),
        removed_expired=expired,
        removed_deleted=len(result.removals) - expired,
        orders_left=len(result.final_orders),
        highlights_per_display=[int(x) for x in highlights],
        chimes_per_display=list(result.chimes),
        mean_dwell_s=mean_dwell_s,
        max_dwell_s=max_dwell_s,
        max_expiry_lag_s=max_expiry_lag_s,
    )
