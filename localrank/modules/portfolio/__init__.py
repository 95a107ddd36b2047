"""Portfolio analytics: grouping, trends, risk scoring, priorities, and reports."""

from localrank.modules.portfolio.aggregator import group_by_business, latest_per_business
from localrank.modules.portfolio.composer import ReportComposer
from localrank.modules.portfolio.policy import AnalyticsPolicy
from localrank.modules.portfolio.priority import PriorityClassifier
from localrank.modules.portfolio.risk import RiskScorer
from localrank.modules.portfolio.trends import TrendAnalyzer

__all__ = [
    "AnalyticsPolicy",
    "PriorityClassifier",
    "ReportComposer",
    "RiskScorer",
    "TrendAnalyzer",
    "group_by_business",
    "latest_per_business",
]
