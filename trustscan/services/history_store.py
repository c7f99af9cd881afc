"""Scan history: capped, de-duplicated, optionally redacted list of past scans."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import ValidationError

from trustscan.models.schemas import FilterType, HistoryEntry, ScanResult, UserSettings
from trustscan.services.storage import JsonListStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "scan_history_v1"
MAX_HISTORY = 200


def parse_created_at(value: Any) -> datetime | None:
    """Parse an ISO-8601 ``created_at`` string; None when it is not a valid date."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def entry_from_result(result: ScanResult) -> HistoryEntry:
    """Full (unredacted) history projection of a scan result."""
    return HistoryEntry(
        scan_id=result.id,
        badge=result.badge,
        score=result.score,
        domain=result.domain,
        title=result.title,
        url=result.url,
        created_at=datetime.fromtimestamp(result.timestamp / 1000, tz=timezone.utc).isoformat(),
        reasons=result.reasons,
    )


class HistoryStore(JsonListStore):
    """History list, newest first.

    Invariants: at most one entry per ``scan_id`` and at most 200 entries.
    Redaction happens at insertion time and cannot be undone.
    """

    key = HISTORY_KEY
    max_items = MAX_HISTORY

    @staticmethod
    def _to_entries(items: list[dict[str, Any]]) -> list[HistoryEntry]:
        entries = []
        for item in items:
            try:
                entries.append(HistoryEntry.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid history entry: {e}")
        return entries

    async def load(self, filter_type: FilterType = FilterType.ALL) -> list[HistoryEntry]:
        entries = self._to_entries(await self.load_raw())
        badge = filter_type.badge
        if badge is None:
            return entries
        return [entry for entry in entries if entry.badge is badge]

    async def save(self, entries: list[HistoryEntry]) -> None:
        await self.save_raw([entry.model_dump(mode="json") for entry in entries])

    async def last(self) -> HistoryEntry | None:
        entries = await self.load()
        return entries[0] if entries else None

    async def record(self, entry: HistoryEntry, privacy_mode: bool = False) -> list[HistoryEntry]:
        """Insert ``entry`` at the head, replacing any entry with the same scan id.

        Args:
            entry: Entry to store.
            privacy_mode: Strip url, title and reasons before storing.

        Returns:
            The stored list after insertion.
        """
        if privacy_mode:
            entry = entry.redacted()
        stored = entry.model_dump(mode="json")

        def change(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            if entry.scan_id:
                items = [item for item in items if item.get("scan_id") != entry.scan_id]
            return [stored, *items]

        return self._to_entries(await self.mutate(change))

    async def record_result(self, result: ScanResult, settings: UserSettings) -> bool:
        """Record a scan result according to the user's settings.

        Returns:
            False when history saving is turned off.
        """
        if not settings.save_history:
            return False
        await self.record(entry_from_result(result), privacy_mode=settings.privacy_mode)
        return True

    async def purge_older_than(self, days: int, now: datetime | None = None) -> list[HistoryEntry]:
        """Drop entries created more than ``days`` days ago.

        Entries whose ``created_at`` is not a valid date are dropped too.
        A non-positive ``days`` leaves the history untouched.
        """
        if not days or days <= 0:
            return await self.load()
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)

        def change(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
            kept = []
            for item in items:
                created = parse_created_at(item.get("created_at"))
                if created is not None and created >= cutoff:
                    kept.append(item)
            return kept

        kept = self._to_entries(await self.mutate(change))
        logger.info(f"History purge ({days} days) kept {len(kept)} entries")
        return kept

    async def apply_retention(self, settings: UserSettings, now: datetime | None = None) -> None:
        """Apply the user's auto-delete policy."""
        days = settings.retention_days
        if days:
            await self.purge_older_than(days, now=now)
