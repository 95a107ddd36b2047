"""Product recommendations and client-update fields for a single business."""

import logging
from typing import Any, Optional, Sequence

from localrank.models.scan import ScanRecord
from localrank.modules.portfolio.aggregator import sort_newest_first
from localrank.modules.portfolio.policy import DEFAULT_POLICY, AnalyticsPolicy
from localrank.modules.portfolio.trends import TrendAnalyzer
from localrank.utils.helpers import DEFAULT_SHARE_BASE, format_rank, round_rank, share_url

logger = logging.getLogger(__name__)

PRODUCT_SUPERBOOST = "SuperBoost"
PRODUCT_LOCALBOOST = "LocalBoost"
PRODUCT_RANK_TRACKER = "Rank Tracker"

DIRECTION_IMPROVED = "improved"
DIRECTION_DROPPED = "dropped"


class ClientAdvisor:
    """Suggest next steps for a client from its most recent scans.

    Usage::

        advisor = ClientAdvisor()
        recs = advisor.recommend(scans_for_client)
        fields = advisor.update_fields(scans_for_client)
    """

    def __init__(
        self,
        policy: AnalyticsPolicy = DEFAULT_POLICY,
        share_base: str = DEFAULT_SHARE_BASE,
    ):
        self.policy = policy
        self.share_base = share_base
        self._trends = TrendAnalyzer(policy)

    def recommend(self, business_scans: Sequence[ScanRecord]) -> dict[str, Any]:
        """Rule-based product recommendations from the latest scan.

        With no scans the only recommendation is to run a first scan.
        """
        if not business_scans:
            return {
                "recommendations": [
                    {"action": "Run first scan", "product": PRODUCT_RANK_TRACKER},
                ],
            }

        policy = self.policy
        latest = sort_newest_first(business_scans)[0]
        rank = latest.avg_rank
        recommendations: list[dict[str, str]] = []

        if rank is not None and rank > policy.superboost_min_rank:
            recommendations.append({
                "action": "Use SuperBoost",
                "product": PRODUCT_SUPERBOOST,
                "reason": (
                    f"Average rank is {format_rank(rank)}. "
                    "SuperBoost uses AI-powered GBP optimization."
                ),
            })

        if rank is not None and policy.localboost_min_rank < rank <= policy.superboost_min_rank:
            recommendations.append({
                "action": "Use LocalBoost",
                "product": PRODUCT_LOCALBOOST,
                "reason": (
                    f"Average rank is {format_rank(rank)}. "
                    "LocalBoost builds citations and backlinks."
                ),
            })

        if latest.keyword_count < policy.min_tracked_keywords:
            recommendations.append({
                "action": "Track more keywords",
                "product": PRODUCT_RANK_TRACKER,
                "reason": f"Only tracking {latest.keyword_count} keywords.",
            })

        if rank is not None and rank <= policy.localboost_min_rank and not recommendations:
            recommendations.append({
                "action": "Maintain with LocalBoost",
                "product": PRODUCT_LOCALBOOST,
                "reason": f"Great rankings (avg {format_rank(rank)})! Maintain authority.",
            })

        logger.debug(
            "%d recommendations for %r (rank=%s)",
            len(recommendations), latest.business_name, rank,
        )
        return {
            "business_name": latest.business_name,
            "current_avg_rank": round_rank(rank),
            "recommendations": recommendations,
        }

    def update_fields(self, business_scans: Sequence[ScanRecord]) -> Optional[dict[str, Any]]:
        """Structured fields for a monthly client update; ``None`` without scans.

        ``change`` is the rounded magnitude of the rank movement and
        ``direction`` says which way it went; both are ``None`` when there is
        no comparable previous scan or the rank did not move.
        """
        if not business_scans:
            return None
        ordered = sort_newest_first(business_scans)
        latest = ordered[0]
        delta = self._trends.avg_rank_delta(ordered)

        direction = None
        if delta is not None and delta > 0:
            direction = DIRECTION_IMPROVED
        elif delta is not None and delta < 0:
            direction = DIRECTION_DROPPED

        fields: dict[str, Any] = {
            "business_name": latest.business_name,
            "avg_rank": round_rank(latest.avg_rank),
            "keywords_tracked": latest.keyword_count,
            "change": round_rank(abs(delta)) if direction else None,
            "direction": direction,
        }
        url = share_url(latest.share_token, self.share_base)
        if url:
            fields["view_url"] = url
        return fields
