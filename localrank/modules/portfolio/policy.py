"""Named thresholds and weights used by the portfolio analytics.

Ranks are "lower is better": 1-3 is the map pack, 4-10 page one, and
11-20 the near-page-one window where quick wins live.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsPolicy:
    # trend status
    trend_threshold: float = 0.5

    # risk scoring
    risk_drop_threshold: float = 2
    poor_visibility_rank: float = 15
    drop_weight: int = 3
    visibility_weight: int = 2
    engagement_weight: int = 1

    # daily priorities
    urgent_drop_threshold: float = 3
    important_rank_threshold: float = 12
    daily_priority_limit: int = 5

    # quick wins
    page_one_rank: float = 10
    quick_win_min_rank: float = 11
    daily_quick_win_max_rank: float = 15
    quick_win_max_rank: float = 20
    high_opportunity_max_rank: float = 15
    quick_win_limit: int = 20

    # advisor
    min_tracked_keywords: int = 5
    superboost_min_rank: float = 10
    localboost_min_rank: float = 5

    @classmethod
    def from_mapping(cls, data: Optional[dict[str, Any]]) -> "AnalyticsPolicy":
        """Build a policy from a settings mapping, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown analytics settings: %s", ", ".join(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


DEFAULT_POLICY = AnalyticsPolicy()
