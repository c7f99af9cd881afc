"""Scam reports filed against scan results.

Reports are gated by the ``report`` rate limit (5 per day) and kept locally,
newest first.
"""

import logging
from typing import Any

from pydantic import BaseModel

from trustscan.services.alerts_store import make_uid, utc_now_iso
from trustscan.services.rate_limiter import RateLimiter
from trustscan.services.storage import JsonListStore

logger = logging.getLogger(__name__)

REPORTS_KEY = "scam_reports_v1"
MAX_REPORTS = 100


class ScamReport(BaseModel):
    id: str
    scan_id: str
    category: str
    reason: str | None = None
    notes: str | None = None
    created_at: str


class ReportOutcome(BaseModel):
    ok: bool
    report: ScamReport | None = None


class ReportStore(JsonListStore):
    key = REPORTS_KEY
    max_items = MAX_REPORTS

    async def add(self, report: ScamReport) -> None:
        stored = report.model_dump(mode="json")
        await self.mutate(lambda items: [stored, *items])

    async def load(self) -> list[ScamReport]:
        reports = []
        for item in await self.load_raw():
            try:
                reports.append(ScamReport.model_validate(item))
            except ValueError as e:
                logger.warning(f"Skipping invalid scam report: {e}")
        return reports


class ReportService:
    """Files scam reports for scan results."""

    def __init__(self, store: ReportStore, rate_limiter: RateLimiter):
        self.store = store
        self.rate_limiter = rate_limiter

    async def report_scam(
        self,
        scan_id: str,
        category: str,
        reason: str | None = None,
        notes: str | None = None,
    ) -> ReportOutcome:
        """File a report.

        Returns ``ok=False`` without consuming the rate limit when ``scan_id``
        is empty.

        Raises:
            RateLimitExceededError: Five reports were already filed today.
        """
        if not (scan_id or "").strip():
            return ReportOutcome(ok=False)

        await self.rate_limiter.check_and_record("report")

        report = ScamReport(
            id=make_uid("report"),
            scan_id=scan_id.strip(),
            category=category,
            reason=reason,
            notes=notes,
            created_at=utc_now_iso(),
        )
        try:
            await self.store.add(report)
        except Exception as e:
            logger.warning(f"Failed to store scam report for {report.scan_id}: {e}")
            return ReportOutcome(ok=False)

        logger.info(f"Scam report {report.id} filed for scan {report.scan_id} ({category})")
        return ReportOutcome(ok=True, report=report)

    async def list_reports(self) -> list[dict[str, Any]]:
        return [report.model_dump(mode="json") for report in await self.store.load()]
