"""Shape GMB audit submissions and results for output."""

from typing import Any

from localrank.models.audit import AuditResult, AuditSubmission

MAX_ISSUES = 10
SUBMISSION_TIP = "Use audit:get to check results once completed"


def submission_view(submission: AuditSubmission) -> dict[str, Any]:
    return {
        "audit_id": submission.audit_id,
        "status": submission.status,
        "share_url": submission.share_url,
        "credits_deducted": submission.credits_deducted,
        "tip": SUBMISSION_TIP,
    }


def audit_view(result: AuditResult, max_issues: int = MAX_ISSUES) -> dict[str, Any]:
    """Audit status; score, reviews, impact, and top issues only once completed."""
    view: dict[str, Any] = {
        "audit_id": result.audit_id,
        "status": result.status,
        "business_name": result.business_name,
    }
    if result.is_completed:
        view["audit_score"] = result.audit_score
        view["review_stats"] = result.review_stats
        view["revenue_impact"] = result.revenue_impact
        view["issues_identified"] = result.issues_identified[:max_issues]
    return view
