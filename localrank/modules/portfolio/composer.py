"""Assemble portfolio analytics into the structured reports the CLI renders.

All methods are pure: they take scan snapshots (and, where needed,
keyword-level details already fetched by the caller) and return plain
dicts and lists. Missing numbers are ``None``; a missing share link drops
the ``view_url`` key entirely.
"""

import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

from localrank.models.scan import ScanRecord
from localrank.modules.portfolio.aggregator import group_by_business, sort_newest_first
from localrank.modules.portfolio.policy import DEFAULT_POLICY, AnalyticsPolicy
from localrank.modules.portfolio.priority import PriorityClassifier
from localrank.modules.portfolio.risk import RiskScorer
from localrank.modules.portfolio.trends import (
    STATUS_DECLINING,
    STATUS_IMPROVING,
    STATUS_NEW,
    STATUS_ORDER,
    STATUS_STABLE,
    TrendAnalyzer,
)
from localrank.utils.helpers import DEFAULT_SHARE_BASE, round_rank, share_url

logger = logging.getLogger(__name__)

PRIORITIES_TIP = "Start with urgent items, then quick wins for momentum"
QUICK_WINS_TIP = "These keywords are close to page 1. A little push could get them there."
AT_RISK_TIP = "Contact these clients before they churn"


def _with_warnings(report: dict[str, Any], warnings: Optional[Sequence[str]]) -> dict[str, Any]:
    if warnings:
        report["warnings"] = list(warnings)
    return report


class ReportComposer:
    """Build portfolio, client, priority, quick-win, and at-risk reports.

    Usage::

        composer = ReportComposer()
        summary = composer.portfolio_summary(scans)
        at_risk = composer.at_risk(scans)
    """

    def __init__(
        self,
        policy: AnalyticsPolicy = DEFAULT_POLICY,
        share_base: str = DEFAULT_SHARE_BASE,
    ):
        self.policy = policy
        self.share_base = share_base
        self.trends = TrendAnalyzer(policy)
        self.risk = RiskScorer(policy)
        self.priority = PriorityClassifier(policy)

    def _attach_view_url(self, entry: dict[str, Any], scan: ScanRecord) -> dict[str, Any]:
        url = share_url(scan.share_token, self.share_base)
        if url:
            entry["view_url"] = url
        return entry

    # ------------------------------------------------------------------
    # Portfolio summary
    # ------------------------------------------------------------------

    def portfolio_summary(self, scans: Iterable[ScanRecord]) -> dict[str, Any]:
        """Status counts, portfolio average rank, and per-client trend rows.

        Clients are sorted declining, improving, stable, new; order within a
        status follows the aggregator.
        """
        scans = list(scans)
        grouped = group_by_business(scans)
        trends = self.trends.analyze_all(grouped)

        counts = {STATUS_IMPROVING: 0, STATUS_DECLINING: 0, STATUS_STABLE: 0, STATUS_NEW: 0}
        ranks: list[float] = []
        clients: list[dict[str, Any]] = []

        for trend in trends:
            latest_rank = trend.latest.avg_rank
            if latest_rank is not None:
                ranks.append(latest_rank)
            counts[trend.status] += 1
            clients.append(self._attach_view_url({
                "name": trend.name,
                "status": trend.status,
                "avg_rank": round_rank(latest_rank),
                "change": round_rank(trend.delta),
            }, trend.latest))

        clients.sort(key=lambda c: STATUS_ORDER[c["status"]])
        portfolio_avg = round_rank(sum(ranks) / len(ranks)) if ranks else None

        logger.info(
            "Portfolio summary: %d clients, %d scans, avg rank %s",
            len(grouped), len(scans), portfolio_avg,
        )
        return {
            "total_clients": len(grouped),
            "total_scans": len(scans),
            "improving": counts[STATUS_IMPROVING],
            "declining": counts[STATUS_DECLINING],
            "stable": counts[STATUS_STABLE],
            "new": counts[STATUS_NEW],
            "avg_rank_across_portfolio": portfolio_avg,
            "clients": clients,
        }

    # ------------------------------------------------------------------
    # Single client
    # ------------------------------------------------------------------

    def client_report(
        self,
        business_scans: Sequence[ScanRecord],
        latest_detail: Optional[ScanRecord] = None,
        previous_detail: Optional[ScanRecord] = None,
        warnings: Optional[Sequence[str]] = None,
    ) -> Optional[dict[str, Any]]:
        """Latest-scan snapshot plus keyword wins and drops for one business.

        *latest_detail* / *previous_detail* carry keyword-level results; when
        a detail is missing the summary record stands in and keyword
        comparisons are skipped. Returns ``None`` when there are no scans.
        """
        if not business_scans:
            return None
        ordered = sort_newest_first(business_scans)
        latest = ordered[0]
        trend = self.trends.analyze(latest.business_name, ordered)
        snapshot = latest_detail or latest

        wins, drops = self.trends.keyword_changes(
            latest_detail,
            previous_detail if len(ordered) >= 2 else None,
        )

        report: dict[str, Any] = {
            "business_name": latest.business_name,
            "status": trend.status,
            "change": round_rank(trend.delta),
            "latest_scan": {
                "date": snapshot.created_at.isoformat() if snapshot.created_at else None,
                "avg_rank": snapshot.avg_rank,
                "keywords": [
                    {
                        "keyword": kw.keyword,
                        "avg_rank": kw.avg_rank,
                        "best_rank": kw.best_rank,
                    }
                    for kw in snapshot.keyword_results
                ],
            },
            "wins": wins,
            "drops": drops,
            "total_scans": len(ordered),
        }
        self._attach_view_url(report, snapshot)
        return _with_warnings(report, warnings)

    # ------------------------------------------------------------------
    # Daily priorities and quick wins
    # ------------------------------------------------------------------

    def prioritize_today(
        self,
        scans: Iterable[ScanRecord],
        latest_details: Optional[Mapping[str, ScanRecord]] = None,
        warnings: Optional[Sequence[str]] = None,
    ) -> dict[str, Any]:
        grouped = group_by_business(scans)
        trends = self.trends.analyze_all(grouped)
        priorities = self.priority.classify(trends, latest_details)
        return _with_warnings({"priorities": priorities, "tip": PRIORITIES_TIP}, warnings)

    def quick_wins(
        self,
        latest_details: Mapping[str, ScanRecord],
        warnings: Optional[Sequence[str]] = None,
    ) -> dict[str, Any]:
        wins = self.priority.find_quick_wins(latest_details)
        return _with_warnings({
            "quick_wins": wins[: self.policy.quick_win_limit],
            "total": len(wins),
            "tip": QUICK_WINS_TIP,
        }, warnings)

    # ------------------------------------------------------------------
    # At-risk clients
    # ------------------------------------------------------------------

    def at_risk(self, scans: Iterable[ScanRecord]) -> dict[str, Any]:
        grouped = group_by_business(scans)
        flagged = self.risk.at_risk(self.trends.analyze_all(grouped))
        return {
            "at_risk_clients": [a.to_dict() for a in flagged],
            "tip": AT_RISK_TIP,
        }

    # ------------------------------------------------------------------
    # Scan listings
    # ------------------------------------------------------------------

    def scan_summary(self, scan: ScanRecord) -> dict[str, Any]:
        return self._attach_view_url({
            "uuid": scan.uuid,
            "business_name": scan.business_name,
            "keywords": list(scan.keywords),
            "status": scan.status,
            "avg_rank": scan.avg_rank,
            "created_at": scan.created_at.isoformat() if scan.created_at else None,
        }, scan)

    def scan_detail(self, scan: ScanRecord) -> dict[str, Any]:
        return self._attach_view_url({
            "uuid": scan.uuid,
            "business_name": scan.business_name,
            "status": scan.status,
            "avg_rank": scan.avg_rank,
            "keywords": [
                {
                    "keyword": kw.keyword,
                    "avg_rank": kw.avg_rank,
                    "best_rank": kw.best_rank,
                    "found_count": kw.found_count,
                }
                for kw in scan.keyword_results
            ],
        }, scan)
