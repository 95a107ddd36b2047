"""Shared pytest fixtures for LocalRank tests."""

import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

# Ensure project root is on sys.path so 'localrank' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def scan_payload(
    uuid: str,
    business: Optional[str],
    avg_rank: Optional[float],
    days_ago: int = 0,
    keyword_results: Optional[list[dict[str, Any]]] = None,
    keywords: Optional[list[str]] = None,
    token: Optional[str] = None,
) -> dict[str, Any]:
    """Build a scan payload shaped like the LocalRank API response."""
    created = BASE_TIME - timedelta(days=days_ago)
    results = keyword_results or []
    return {
        "uuid": uuid,
        "business": {"name": business, "uuid": "b-" + str(business)} if business else None,
        "avg_rank": avg_rank,
        "status": "completed",
        "created_at": created.isoformat().replace("+00:00", "Z"),
        "keywords": keywords if keywords is not None else [r["keyword"] for r in results],
        "public_share_token": token,
        "keyword_results": results,
    }


def kw(keyword: str, avg_rank: Optional[float], best_rank: Optional[float] = None, found: int = 1) -> dict[str, Any]:
    return {"keyword": keyword, "avg_rank": avg_rank, "best_rank": best_rank, "found_count": found}


@pytest.fixture()
def make_scan():
    """Factory returning ScanRecord objects built through ``from_api``."""
    from localrank.models.scan import ScanRecord

    def _make(*args, **kwargs):
        return ScanRecord.from_api(scan_payload(*args, **kwargs))

    return _make


class FakeLocalRankAPI:
    """In-memory LocalRank API served through ``httpx.MockTransport``."""

    def __init__(self, scans: list[dict[str, Any]], businesses: Optional[list[dict[str, Any]]] = None):
        self.scans = scans
        self.businesses = businesses or []
        self.audits: dict[str, dict[str, Any]] = {}
        self.failing: set[str] = set()
        self.requests: list[httpx.Request] = []

    def _summary(self, scan: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in scan.items() if k != "keyword_results"}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/scans/":
            size = int(request.url.params.get("page_size", 100))
            return httpx.Response(200, json={
                "results": [self._summary(s) for s in self.scans[:size]],
                "next": None,
            })
        if path.startswith("/api/scans/"):
            scan_id = path.rstrip("/").rsplit("/", 1)[-1]
            if scan_id in self.failing:
                return httpx.Response(500, text="boom")
            for scan in self.scans:
                if scan["uuid"] == scan_id:
                    return httpx.Response(200, json=scan)
            return httpx.Response(404, text="Not found")
        if path == "/api/businesses/":
            return httpx.Response(200, json={"results": self.businesses})
        if path == "/api/gmb/audit/run/" and request.method == "POST":
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "audit_id": "aud-1",
                "status": "pending",
                "share_url": "https://app.localrank.so/audit/aud-1",
                "credits_deducted": 500,
                "echo": body["gmb_url"],
            })
        if path.startswith("/api/gmb/audit/"):
            audit_id = path.rstrip("/").rsplit("/", 1)[-1]
            if audit_id in self.audits:
                return httpx.Response(200, json=self.audits[audit_id])
            return httpx.Response(404, text="Not found")
        return httpx.Response(404, text="Unknown endpoint")

    def client(self, **kwargs):
        from localrank.integrations.localrank_client import LocalRankClient
        kwargs.setdefault("max_retries", 0)
        kwargs.setdefault("requests_per_minute", None)
        return LocalRankClient(
            api_key="lr_test_key",
            transport=httpx.MockTransport(self.handler),
            **kwargs,
        )


@pytest.fixture()
def portfolio_payloads():
    """Three businesses covering improving, declining, and new."""
    return [
        scan_payload("acme-2", "Acme", 4.2, days_ago=0, token="tok-acme", keyword_results=[
            kw("plumber near me", 4.2, 2),
            kw("emergency plumber", 13.0, 9),
        ]),
        scan_payload("bolt-2", "Bolt Electric", 12.1, days_ago=1, keyword_results=[
            kw("electrician", 18.0, 12),
            kw("ev charger install", 11.0, 8),
        ]),
        scan_payload("acme-1", "Acme", 8.5, days_ago=30, keyword_results=[
            kw("plumber near me", 8.5, 5),
            kw("emergency plumber", 12.0, 9),
        ]),
        scan_payload("bolt-1", "Bolt Electric", 6.2, days_ago=31, keyword_results=[
            kw("electrician", 6.0, 3),
        ]),
        scan_payload("cafe-1", "Corner Cafe", 9.0, days_ago=2, keywords=["coffee"], keyword_results=[
            kw("coffee", 9.0, 4),
        ]),
    ]


@pytest.fixture()
def fake_api(portfolio_payloads):
    return FakeLocalRankAPI(
        portfolio_payloads,
        businesses=[
            {"uuid": "b-1", "name": "Acme", "place_id": "p1"},
            {"uuid": "b-2", "name": "Bolt Electric", "place_id": "p2"},
            {"uuid": "b-3", "name": "Corner Cafe", "place_id": None},
        ],
    )


@pytest.fixture()
def config():
    from localrank.app import LocalRankConfig
    return LocalRankConfig(api_key="lr_test_key", api_key_source="test")
