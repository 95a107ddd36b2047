"""Async client for the LocalRank REST API (scans, businesses, GMB audits)."""

import asyncio
import logging
from typing import Any, Optional

import httpx

from localrank.models.audit import AuditResult, AuditSubmission
from localrank.models.scan import Business, ScanRecord
from localrank.utils.config_store import ConfigurationError
from localrank.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.localrank.so"


class LocalRankAPIError(RuntimeError):
    """Non-success response from the LocalRank API."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"API Error {status_code}: {body}")


def _results(payload: Any) -> list[dict[str, Any]]:
    """Accept both paginated ``{"results": [...]}`` bodies and bare lists."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return payload.get("results") or []
    return []


class LocalRankClient:
    """Thin async wrapper over the LocalRank HTTP API.

    Usage::

        async with LocalRankClient(api_key="lr_...") as client:
            scans = await client.list_scans(page_size=100)
            detail = await client.get_scan(scans[0].uuid)
    """

    def __init__(
        self,
        api_key: Optional[str],
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_base: float = 2.0,
        requests_per_minute: Optional[int] = 120,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("API key not found. Run: localrank setup")
        self._api_key = api_key
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._limiter = RateLimiter(requests_per_minute=requests_per_minute, name="localrank-api")
        self._client = httpx.AsyncClient(
            base_url=self._api_base,
            timeout=timeout,
            headers={"Authorization": "Api-Key " + api_key},
            transport=transport,
        )

    async def __aenter__(self) -> "LocalRankClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        json_body: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request, retrying 429s and timeouts with exponential backoff."""
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        for attempt in range(self._max_retries + 1):
            try:
                async with self._limiter:
                    response = await self._client.request(
                        method, endpoint, params=params, json=json_body,
                    )
            except httpx.TimeoutException:
                if attempt < self._max_retries:
                    wait = self._backoff_base * (2 ** attempt)
                    logger.warning(
                        "LocalRank timeout on %s %s. Retry %d/%d in %.1fs...",
                        method, endpoint, attempt + 1, self._max_retries, wait,
                    )
                    await asyncio.sleep(wait)
                    continue
                raise

            if response.status_code == 429 and attempt < self._max_retries:
                wait = self._backoff_base * (2 ** attempt)
                logger.warning(
                    "LocalRank 429 Too Many Requests. Retry %d/%d in %.1fs...",
                    attempt + 1, self._max_retries, wait,
                )
                await asyncio.sleep(wait)
                continue

            if response.is_error:
                raise LocalRankAPIError(response.status_code, response.text)

            logger.debug("%s %s -> %d", method, endpoint, response.status_code)
            try:
                return response.json()
            except ValueError:
                raise LocalRankAPIError(
                    response.status_code, "Invalid JSON response: " + response.text[:200],
                ) from None

        raise LocalRankAPIError(429, "retries exhausted")

    async def _get(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> Any:
        return await self._request("GET", endpoint, params=params)

    async def _post(self, endpoint: str, data: Optional[dict[str, Any]] = None) -> Any:
        return await self._request("POST", endpoint, json_body=data or {})

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------

    async def list_scans(self, page_size: int = 100, max_pages: int = 1) -> list[ScanRecord]:
        """Scan summaries, following ``next`` links for up to *max_pages* pages."""
        records: list[ScanRecord] = []
        payload = await self._get("/api/scans/", params={"page_size": page_size})
        pages = 1
        while True:
            records.extend(ScanRecord.from_api(item) for item in _results(payload))
            next_url = payload.get("next") if isinstance(payload, dict) else None
            if not next_url or pages >= max_pages:
                break
            payload = await self._get(next_url)
            pages += 1

        logger.info("Fetched %d scans (%d page(s))", len(records), pages)
        return records

    async def get_scan(self, scan_id: str) -> ScanRecord:
        """Full scan detail including keyword-level results."""
        payload = await self._get(f"/api/scans/{scan_id}/")
        return ScanRecord.from_api(payload)

    # ------------------------------------------------------------------
    # Businesses
    # ------------------------------------------------------------------

    async def list_businesses(self, page_size: Optional[int] = None) -> list[Business]:
        payload = await self._get("/api/businesses/", params={"page_size": page_size})
        businesses = [Business.from_api(item) for item in _results(payload)]
        logger.info("Fetched %d businesses", len(businesses))
        return businesses

    # ------------------------------------------------------------------
    # GMB audits
    # ------------------------------------------------------------------

    async def run_audit(self, gmb_url: str) -> AuditSubmission:
        payload = await self._post("/api/gmb/audit/run/", {"gmb_url": gmb_url})
        submission = AuditSubmission.from_api(payload)
        logger.info("Audit %s submitted (%s)", submission.audit_id, submission.status)
        return submission

    async def get_audit(self, audit_id: str) -> AuditResult:
        payload = await self._get(f"/api/gmb/audit/{audit_id}/")
        return AuditResult.from_api(payload)
