"""Churn-risk scoring from ranking trends and scan engagement."""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from localrank.modules.portfolio.policy import DEFAULT_POLICY, AnalyticsPolicy
from localrank.modules.portfolio.trends import BusinessTrend
from localrank.utils.helpers import format_rank

logger = logging.getLogger(__name__)

RISK_ACTION = "Reach out proactively"


@dataclass
class RiskAssessment:
    business_name: str
    risk_score: int = 0
    risk_factors: list[str] = field(default_factory=list)

    def add(self, weight: int, factor: str) -> None:
        self.risk_score += weight
        self.risk_factors.append(factor)

    def to_dict(self) -> dict[str, Any]:
        return {
            "business_name": self.business_name,
            "risk_score": self.risk_score,
            "risk_factors": list(self.risk_factors),
            "action": RISK_ACTION,
        }


class RiskScorer:
    """Additive weighted risk rules.

    ============  =====================================  ======
    Factor        Condition                              Weight
    ============  =====================================  ======
    Ranking drop  latest rank worse than previous by >2  3
    Visibility    latest average rank > 15               2
    Engagement    exactly one scan on record             1
    ============  =====================================  ======
    """

    def __init__(self, policy: AnalyticsPolicy = DEFAULT_POLICY):
        self.policy = policy

    def assess(self, trend: BusinessTrend) -> RiskAssessment:
        policy = self.policy
        assessment = RiskAssessment(business_name=trend.name)
        latest_rank = trend.latest.avg_rank

        if trend.delta is not None and trend.delta < -policy.risk_drop_threshold:
            prev_rank = trend.previous.avg_rank
            assessment.add(
                policy.drop_weight,
                f"Rankings dropped from {format_rank(prev_rank)} to {format_rank(latest_rank)}",
            )

        if latest_rank is not None and latest_rank > policy.poor_visibility_rank:
            assessment.add(
                policy.visibility_weight,
                f"Poor visibility (avg rank {format_rank(latest_rank)})",
            )

        if trend.scan_count == 1:
            assessment.add(policy.engagement_weight, "Only 1 scan - low engagement")

        return assessment

    def at_risk(self, trends: Iterable[BusinessTrend]) -> list[RiskAssessment]:
        """Businesses with a non-zero score, highest first; ties keep input order."""
        flagged = [a for a in (self.assess(t) for t in trends) if a.risk_score > 0]
        flagged.sort(key=lambda a: a.risk_score, reverse=True)
        logger.info("Risk scoring flagged %d businesses", len(flagged))
        return flagged
