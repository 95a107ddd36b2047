"""Read-only record types for scans, keyword results, businesses, and audits."""

from localrank.models.audit import (
    AuditResult,
    AuditSubmission,
)
from localrank.models.scan import (
    Business,
    KeywordResult,
    ScanRecord,
    UNKNOWN_BUSINESS,
    parse_timestamp,
)

__all__ = [
    "AuditResult",
    "AuditSubmission",
    "Business",
    "KeywordResult",
    "ScanRecord",
    "UNKNOWN_BUSINESS",
    "parse_timestamp",
]
