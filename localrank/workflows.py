"""Report workflows: fetch scan snapshots, then hand them to the pure analytics.

Each workflow method performs the I/O a report needs (one scan listing plus,
for some reports, one detail fetch per business through a bounded worker
pool) and returns the structured dict the CLI prints. A failing detail
fetch skips that business and is reported under ``warnings``.
"""

import logging
from typing import Any, Optional

from localrank.app import LocalRankConfig
from localrank.integrations.localrank_client import LocalRankClient
from localrank.models.scan import ScanRecord
from localrank.modules.advisor import ClientAdvisor
from localrank.modules.gmb_audit import audit_view, submission_view
from localrank.modules.portfolio.aggregator import (
    filter_by_business,
    group_by_business,
    latest_per_business,
)
from localrank.modules.portfolio.composer import ReportComposer
from localrank.utils.concurrency import FetchBatch, bounded_fetch
from localrank.utils.helpers import matches_search

logger = logging.getLogger(__name__)


def _warnings(batch: FetchBatch) -> list[str]:
    return ["Skipped " + str(f.key) + ": " + f.error for f in batch.failures]


class ReportWorkflow:
    """Wire the API client to the report composer and advisor.

    Usage::

        async with ReportWorkflow(config) as workflow:
            summary = await workflow.portfolio_summary()
    """

    def __init__(
        self,
        config: LocalRankConfig,
        client: Optional[LocalRankClient] = None,
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None
        self.composer = ReportComposer(config.policy, share_base=config.share_base)
        self.advisor = ClientAdvisor(config.policy, share_base=config.share_base)

    async def __aenter__(self) -> "ReportWorkflow":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.close()
            self._client = None

    @property
    def client(self) -> LocalRankClient:
        if self._client is None:
            cfg = self.config
            self._client = LocalRankClient(
                api_key=cfg.api_key,
                api_base=cfg.api_base,
                timeout=cfg.request_timeout,
                max_retries=cfg.max_retries,
                requests_per_minute=cfg.requests_per_minute,
            )
            logger.debug("LocalRankClient created for %s", cfg.api_base)
        return self._client

    # ------------------------------------------------------------------
    # Fetch helpers
    # ------------------------------------------------------------------

    async def _scans(self, page_size: int) -> list[ScanRecord]:
        return await self.client.list_scans(
            page_size=page_size, max_pages=self.config.reports.max_pages,
        )

    async def _latest_details(
        self,
        latest: dict[str, ScanRecord],
    ) -> tuple[dict[str, ScanRecord], list[str]]:
        """Fetch keyword-level detail for each business's latest scan."""
        async def _fetch(name):
            return await self.client.get_scan(latest[name].uuid)

        batch = await bounded_fetch(
            latest,
            _fetch,
            limit=self.config.fetch.max_concurrent,
            timeout=self.config.fetch.timeout,
        )
        details = {name: batch.results[name] for name in latest if name in batch.results}
        return details, _warnings(batch)

    async def _client_scans(self, search: str) -> Optional[list[ScanRecord]]:
        """Scans of the newest business whose name contains *search*."""
        scans = await self._scans(self.config.reports.client_page_size)
        grouped = group_by_business(filter_by_business(scans, search))
        if not grouped:
            logger.info("No scans match %r", search)
            return None
        if len(grouped) > 1:
            logger.info(
                "%d businesses match %r; using %r",
                len(grouped), search, next(iter(grouped)),
            )
        return next(iter(grouped.values()))

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def businesses(self, search: Optional[str] = None) -> dict[str, Any]:
        businesses = await self.client.list_businesses()
        rows = [
            {"uuid": b.uuid, "name": b.name, "place_id": b.place_id}
            for b in businesses
            if matches_search(b.name, search)
        ]
        return {"businesses": rows, "count": len(rows)}

    async def scans(self, limit: Optional[int] = None, business: Optional[str] = None) -> dict[str, Any]:
        reports = self.config.reports
        page_size = min(limit or reports.scan_list_default, reports.scan_list_max)
        scans = filter_by_business(await self.client.list_scans(page_size=page_size), business)
        rows = [self.composer.scan_summary(s) for s in scans]
        return {"scans": rows, "count": len(rows)}

    async def scan_detail(self, scan_id: str) -> dict[str, Any]:
        return self.composer.scan_detail(await self.client.get_scan(scan_id))

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def client_report(self, business: str) -> dict[str, Any]:
        business_scans = await self._client_scans(business)
        if not business_scans:
            return {"error": f"No scans found for '{business}'"}

        ordered = business_scans[:2]
        batch = await bounded_fetch(
            [s.uuid for s in ordered],
            self.client.get_scan,
            limit=self.config.fetch.max_concurrent,
            timeout=self.config.fetch.timeout,
        )
        latest_detail = batch.results.get(ordered[0].uuid)
        previous_detail = batch.results.get(ordered[1].uuid) if len(ordered) > 1 else None
        return self.composer.client_report(
            business_scans, latest_detail, previous_detail, warnings=_warnings(batch),
        )

    async def portfolio_summary(self) -> dict[str, Any]:
        scans = await self._scans(self.config.reports.portfolio_page_size)
        return self.composer.portfolio_summary(scans)

    async def prioritize_today(self) -> dict[str, Any]:
        scans = await self._scans(self.config.reports.portfolio_page_size)
        latest = latest_per_business(group_by_business(scans))
        details, warnings = await self._latest_details(latest)
        return self.composer.prioritize_today(scans, details, warnings=warnings)

    async def quick_wins(self, business: Optional[str] = None) -> dict[str, Any]:
        scans = await self._scans(self.config.reports.portfolio_page_size)
        latest = latest_per_business(group_by_business(filter_by_business(scans, business)))
        details, warnings = await self._latest_details(latest)
        return self.composer.quick_wins(details, warnings=warnings)

    async def at_risk(self) -> dict[str, Any]:
        scans = await self._scans(self.config.reports.portfolio_page_size)
        return self.composer.at_risk(scans)

    # ------------------------------------------------------------------
    # Advisor
    # ------------------------------------------------------------------

    async def recommendations(self, business: str) -> dict[str, Any]:
        business_scans = await self._client_scans(business)
        result = self.advisor.recommend(business_scans or [])
        if not business_scans:
            result = {"error": f"No data found for '{business}'", **result}
        return result

    async def update_fields(self, business: str) -> dict[str, Any]:
        business_scans = await self._client_scans(business)
        fields = self.advisor.update_fields(business_scans or [])
        if fields is None:
            return {"error": f"No data found for '{business}'"}
        return fields

    # ------------------------------------------------------------------
    # GMB audits
    # ------------------------------------------------------------------

    async def run_audit(self, gmb_url: str) -> dict[str, Any]:
        return submission_view(await self.client.run_audit(gmb_url))

    async def get_audit(self, audit_id: str) -> dict[str, Any]:
        return audit_view(await self.client.get_audit(audit_id))
