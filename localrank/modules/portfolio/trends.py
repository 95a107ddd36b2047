"""Trend analysis: latest-vs-previous deltas per business and per keyword.

Deltas use ``previous - latest`` so a positive value is an improvement
(the rank number went down). When no comparison is possible the delta is
``None``; it is never reported as zero.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from localrank.models.scan import KeywordResult, ScanRecord
from localrank.modules.portfolio.policy import DEFAULT_POLICY, AnalyticsPolicy
from localrank.utils.helpers import round_rank

logger = logging.getLogger(__name__)

STATUS_IMPROVING = "improving"
STATUS_DECLINING = "declining"
STATUS_STABLE = "stable"
STATUS_NEW = "new"

STATUS_ORDER = {
    STATUS_DECLINING: 0,
    STATUS_IMPROVING: 1,
    STATUS_STABLE: 2,
    STATUS_NEW: 3,
}


def rank_delta(previous: Optional[float], latest: Optional[float]) -> Optional[float]:
    if previous is None or latest is None:
        return None
    return previous - latest


@dataclass(frozen=True)
class BusinessTrend:
    """Latest/previous comparison for one business."""
    name: str
    scans: tuple[ScanRecord, ...]
    delta: Optional[float]
    status: str

    @property
    def latest(self) -> ScanRecord:
        return self.scans[0]

    @property
    def previous(self) -> Optional[ScanRecord]:
        return self.scans[1] if len(self.scans) > 1 else None

    @property
    def scan_count(self) -> int:
        return len(self.scans)


class TrendAnalyzer:
    """Compare each business's latest scan against the one before it.

    Usage::

        analyzer = TrendAnalyzer()
        trend = analyzer.analyze("Acme", grouped["Acme"])
        wins, drops = analyzer.keyword_changes(latest_detail, previous_detail)
    """

    def __init__(self, policy: AnalyticsPolicy = DEFAULT_POLICY):
        self.policy = policy

    def avg_rank_delta(self, scans: Sequence[ScanRecord]) -> Optional[float]:
        """Business-level delta; ``None`` with fewer than two scans or missing ranks."""
        if len(scans) < 2:
            return None
        return rank_delta(scans[1].avg_rank, scans[0].avg_rank)

    def classify(self, delta: Optional[float]) -> str:
        if delta is None:
            return STATUS_NEW
        if delta > self.policy.trend_threshold:
            return STATUS_IMPROVING
        if delta < -self.policy.trend_threshold:
            return STATUS_DECLINING
        return STATUS_STABLE

    def analyze(self, name: str, scans: Sequence[ScanRecord]) -> BusinessTrend:
        if not scans:
            raise ValueError("Cannot analyze a business without scans: " + repr(name))
        delta = self.avg_rank_delta(scans)
        return BusinessTrend(
            name=name,
            scans=tuple(scans),
            delta=delta,
            status=self.classify(delta),
        )

    def analyze_all(self, grouped: dict[str, list[ScanRecord]]) -> list[BusinessTrend]:
        trends = [self.analyze(name, scans) for name, scans in grouped.items()]
        logger.debug("Analyzed trends for %d businesses", len(trends))
        return trends

    @staticmethod
    def keyword_deltas(
        latest: Sequence[KeywordResult],
        previous: Sequence[KeywordResult],
    ) -> list[tuple[KeywordResult, float, float]]:
        """Return ``(latest_result, previous_rank, delta)`` for comparable keywords.

        Keywords missing from either scan, or without a rank in either,
        are skipped. Order follows *latest*.
        """
        prev_ranks: dict[str, Optional[float]] = {}
        for kw in previous:
            prev_ranks[kw.keyword] = kw.avg_rank

        deltas = []
        for kw in latest:
            prev = prev_ranks.get(kw.keyword)
            delta = rank_delta(prev, kw.avg_rank)
            if delta is None:
                continue
            deltas.append((kw, prev, delta))
        return deltas

    def keyword_changes(
        self,
        latest: Optional[ScanRecord],
        previous: Optional[ScanRecord],
    ) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
        """Split keyword deltas into wins and drops.

        Returns empty lists when either scan is missing.
        """
        wins: list[dict[str, Any]] = []
        drops: list[dict[str, Any]] = []
        if latest is None or previous is None:
            return wins, drops

        for kw, prev, delta in self.keyword_deltas(latest.keyword_results, previous.keyword_results):
            if delta > 0:
                wins.append({
                    "keyword": kw.keyword,
                    "from": prev,
                    "to": kw.avg_rank,
                    "improved_by": round_rank(delta),
                })
            elif delta < 0:
                drops.append({
                    "keyword": kw.keyword,
                    "from": prev,
                    "to": kw.avg_rank,
                    "dropped_by": round_rank(abs(delta)),
                })

        logger.debug("Keyword changes: %d wins, %d drops", len(wins), len(drops))
        return wins, drops
