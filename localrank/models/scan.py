"""Business, scan, and keyword-result records built from LocalRank API payloads."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

UNKNOWN_BUSINESS = "Unknown"

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Business:
    """A tracked local business. ``name`` is the grouping identity."""
    name: str
    uuid: str = ""
    place_id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Optional[dict[str, Any]]) -> "Business":
        payload = payload or {}
        return cls(
            name=payload.get("name") or UNKNOWN_BUSINESS,
            uuid=payload.get("uuid") or "",
            place_id=payload.get("place_id"),
        )


@dataclass(frozen=True)
class KeywordResult:
    """Keyword-level ranking outcome of one scan."""
    keyword: str
    avg_rank: Optional[float] = None
    best_rank: Optional[float] = None
    found_count: int = 0

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "KeywordResult":
        return cls(
            keyword=payload.get("keyword") or "",
            avg_rank=_to_float(payload.get("avg_rank")),
            best_rank=_to_float(payload.get("best_rank")),
            found_count=_to_int(payload.get("found_count")),
        )


@dataclass(frozen=True)
class ScanRecord:
    """Snapshot of one ranking scan, optionally with keyword-level results."""
    uuid: str
    business: Business
    avg_rank: Optional[float] = None
    created_at: Optional[datetime] = None
    keywords: tuple[str, ...] = ()
    share_token: Optional[str] = None
    status: Optional[str] = None
    keyword_results: tuple[KeywordResult, ...] = field(default_factory=tuple)

    @property
    def business_name(self) -> str:
        return self.business.name

    @property
    def sort_key(self) -> datetime:
        """Creation time; missing timestamps sort as oldest."""
        if self.created_at is None:
            return _OLDEST
        if self.created_at.tzinfo is None:
            return self.created_at.replace(tzinfo=timezone.utc)
        return self.created_at

    @property
    def keyword_count(self) -> int:
        return len(self.keywords)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "ScanRecord":
        keywords = payload.get("keywords") or ()
        if isinstance(keywords, str):
            keywords = (keywords,)
        return cls(
            uuid=payload.get("uuid") or "",
            business=Business.from_api(payload.get("business")),
            avg_rank=_to_float(payload.get("avg_rank")),
            created_at=parse_timestamp(payload.get("created_at")),
            keywords=tuple(keywords),
            share_token=payload.get("public_share_token") or None,
            status=payload.get("status"),
            keyword_results=tuple(
                KeywordResult.from_api(kw) for kw in payload.get("keyword_results") or ()
            ),
        )
