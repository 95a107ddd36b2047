"""Work-item classification: urgent drops, important laggards, and quick wins."""

import logging
from typing import Any, Iterable, Mapping, Optional

from localrank.models.scan import KeywordResult, ScanRecord
from localrank.modules.portfolio.policy import DEFAULT_POLICY, AnalyticsPolicy
from localrank.modules.portfolio.trends import BusinessTrend
from localrank.utils.helpers import format_rank, round_rank

logger = logging.getLogger(__name__)

OPPORTUNITY_HIGH = "High"
OPPORTUNITY_MEDIUM = "Medium"


class PriorityClassifier:
    """Bucket businesses and keywords into urgent, important, and quick-win items.

    Every work item belongs to exactly one bucket, although one business
    can yield items in several buckets (a big drop that also leaves the
    business ranking poorly is both urgent and important).
    """

    def __init__(self, policy: AnalyticsPolicy = DEFAULT_POLICY):
        self.policy = policy

    # ------------------------------------------------------------------
    # Business-level checks
    # ------------------------------------------------------------------

    def urgent_item(self, trend: BusinessTrend) -> Optional[dict[str, Any]]:
        if trend.delta is None or -trend.delta <= self.policy.urgent_drop_threshold:
            return None
        prev_rank = trend.previous.avg_rank
        latest_rank = trend.latest.avg_rank
        return {
            "client": trend.name,
            "task": "Investigate ranking drop",
            "reason": f"Dropped from {format_rank(prev_rank)} to {format_rank(latest_rank)}",
        }

    def important_item(self, trend: BusinessTrend) -> Optional[dict[str, Any]]:
        rank = trend.latest.avg_rank
        if rank is None or rank <= self.policy.important_rank_threshold:
            return None
        return {
            "client": trend.name,
            "task": "Improve rankings",
            "reason": f"Average rank is {format_rank(rank)}",
        }

    # ------------------------------------------------------------------
    # Keyword-level checks
    # ------------------------------------------------------------------

    def in_quick_win_range(self, rank: Optional[float], max_rank: Optional[float] = None) -> bool:
        """Closed interval check; *max_rank* defaults to the finder's upper bound."""
        if rank is None:
            return False
        upper = self.policy.quick_win_max_rank if max_rank is None else max_rank
        return self.policy.quick_win_min_rank <= rank <= upper

    def positions_to_page_one(self, rank: float) -> float:
        return round_rank(rank - self.policy.page_one_rank)

    def opportunity(self, rank: float) -> str:
        if rank <= self.policy.high_opportunity_max_rank:
            return OPPORTUNITY_HIGH
        return OPPORTUNITY_MEDIUM

    def daily_quick_win(self, name: str, detail: ScanRecord) -> Optional[dict[str, Any]]:
        """First keyword of the latest scan inside the narrow daily window."""
        for kw in detail.keyword_results:
            if self.in_quick_win_range(kw.avg_rank, self.policy.daily_quick_win_max_rank):
                return {
                    "client": name,
                    "keyword": kw.keyword,
                    "current_rank": round_rank(kw.avg_rank),
                    "positions_to_page_1": self.positions_to_page_one(kw.avg_rank),
                }
        return None

    def _quick_win_entry(self, name: str, kw: KeywordResult) -> dict[str, Any]:
        return {
            "business_name": name,
            "keyword": kw.keyword,
            "current_rank": round_rank(kw.avg_rank),
            "positions_to_page_1": self.positions_to_page_one(kw.avg_rank),
            "opportunity": self.opportunity(kw.avg_rank),
        }

    def find_quick_wins(self, latest_details: Mapping[str, ScanRecord]) -> list[dict[str, Any]]:
        """All keywords in the wide window across businesses, best rank first.

        The result is sorted but not truncated.
        """
        wins = [
            self._quick_win_entry(name, kw)
            for name, detail in latest_details.items()
            for kw in detail.keyword_results
            if self.in_quick_win_range(kw.avg_rank)
        ]
        wins.sort(key=lambda w: w["current_rank"])
        logger.info("Found %d quick-win keywords", len(wins))
        return wins

    # ------------------------------------------------------------------
    # Daily buckets
    # ------------------------------------------------------------------

    def classify(
        self,
        trends: Iterable[BusinessTrend],
        latest_details: Optional[Mapping[str, ScanRecord]] = None,
    ) -> dict[str, list[dict[str, Any]]]:
        """Build the urgent, important, and quick-win buckets in business order.

        Quick wins are only evaluated for businesses whose latest-scan
        detail is present in *latest_details*. Each bucket is truncated
        to ``daily_priority_limit`` after it is filled.
        """
        latest_details = latest_details or {}
        buckets: dict[str, list[dict[str, Any]]] = {
            "urgent": [],
            "important": [],
            "quick_wins": [],
        }
        for trend in trends:
            urgent = self.urgent_item(trend)
            if urgent:
                buckets["urgent"].append(urgent)
            important = self.important_item(trend)
            if important:
                buckets["important"].append(important)
            detail = latest_details.get(trend.name)
            if detail is not None:
                quick = self.daily_quick_win(trend.name, detail)
                if quick:
                    buckets["quick_wins"].append(quick)

        logger.info(
            "Priorities: %d urgent, %d important, %d quick wins (before limit %d)",
            len(buckets["urgent"]), len(buckets["important"]),
            len(buckets["quick_wins"]), self.policy.daily_priority_limit,
        )
        limit = self.policy.daily_priority_limit
        return {key: items[:limit] for key, items in buckets.items()}
