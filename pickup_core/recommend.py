"""
RecommendationEngine: likely next numbers after the most recent order.
"""

from __future__ import annotations

from collections.abc import Sequence

from pickup_core.config import RECOMMENDATION_CAP, RECOMMENDATION_COUNT
from pickup_core.order import Order


class RecommendationEngine:
    """
    Proposes last+1 .. last+count, dropping anything above cap. Candidates are
    not checked for duplicates; the submission path does that.
    """

    def __init__(self, *, count: int = RECOMMENDATION_COUNT, cap: int = RECOMMENDATION_CAP) -> None:
        self.count = count
        self.cap = cap

    def recommend(self, last_number: int | None) -> list[int]:
        if last_number is None or last_number <= 0:
            return []
        return [n for n in range(last_number + 1, last_number + 1 + self.count) if n <= self.cap]

    def from_orders(self, orders: Sequence[Order]) -> list[int]:
        """orders must be newest first, as RemoteOrderFeed provides them."""
        return self.recommend(orders[0].number if orders else None)

    @staticmethod
    def is_primary(candidate: int, last_number: int | None) -> bool:
        """The immediate successor is the suggestion most likely to be picked."""
        return last_number is not None and candidate == last_number + 1
