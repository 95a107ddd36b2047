"""Google Business Profile audit records returned by the LocalRank API."""

from dataclasses import dataclass, field
from typing import Any, Optional

AUDIT_COMPLETED = "completed"


@dataclass(frozen=True)
class AuditSubmission:
    """Acknowledgement of a queued GMB audit."""
    audit_id: Optional[str]
    status: Optional[str]
    share_url: Optional[str] = None
    credits_deducted: Optional[int] = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "AuditSubmission":
        return cls(
            audit_id=payload.get("audit_id"),
            status=payload.get("status"),
            share_url=payload.get("share_url"),
            credits_deducted=payload.get("credits_deducted"),
        )


@dataclass(frozen=True)
class AuditResult:
    """State of a GMB audit; score and issues are only set once completed."""
    audit_id: Optional[str]
    status: Optional[str]
    business_name: Optional[str] = None
    audit_score: Optional[float] = None
    review_stats: Optional[dict[str, Any]] = None
    revenue_impact: Optional[Any] = None
    issues_identified: list[Any] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status == AUDIT_COMPLETED

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "AuditResult":
        return cls(
            audit_id=payload.get("audit_id"),
            status=payload.get("status"),
            business_name=payload.get("business_name"),
            audit_score=payload.get("audit_score"),
            review_stats=payload.get("review_stats"),
            revenue_impact=payload.get("revenue_impact"),
            issues_identified=list(payload.get("issues_identified") or []),
        )
