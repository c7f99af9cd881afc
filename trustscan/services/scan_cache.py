"""Result cache: full scan payloads keyed by scan id.

Key scheme:
    scan_cache_v1:{scan_id}   the cached payload (JSON)
    scan_cache_index_v1       ids most-recent-first, deduped, capped at 200

Lookups go straight to the entry key. The index is only used for enumeration
and eviction; an entry may outlive its index reference.
"""

import logging
from typing import Any

from pydantic import ValidationError

from trustscan.models.schemas import ScanResult, UserSettings
from trustscan.services.storage import KeyValueStore, decode_json, encode_json

logger = logging.getLogger(__name__)

KEY_PREFIX = "scan_cache_v1:"
INDEX_KEY = "scan_cache_index_v1"
MAX_INDEX = 200


def cache_key(scan_id: str) -> str:
    return f"{KEY_PREFIX}{scan_id}"


class ResultCache:
    """Cache of scan payloads for re-display by id."""

    def __init__(self, kv: KeyValueStore, max_index: int = MAX_INDEX):
        self.kv = kv
        self.max_index = max_index

    async def put(self, scan_id: str, payload: Any) -> None:
        """Store ``payload`` under ``scan_id`` and move the id to the front of the index.

        Index failures are logged and ignored.
        """
        if not scan_id:
            return
        await self.kv.set(cache_key(scan_id), encode_json(payload))

        def mutator(raw: str | None) -> str:
            ids = decode_json(raw, default=[])
            if not isinstance(ids, list):
                ids = []
            ids = [scan_id, *(existing for existing in ids if existing != scan_id)]
            return encode_json(ids[: self.max_index])

        try:
            await self.kv.update(INDEX_KEY, mutator)
        except Exception as e:
            logger.warning(f"Cache index update failed for {scan_id}: {e}")

    async def get(self, scan_id: str) -> Any | None:
        """Cached payload for ``scan_id``, or None if missing or unreadable."""
        if not scan_id:
            return None
        try:
            raw = await self.kv.get(cache_key(scan_id))
        except Exception as e:
            logger.warning(f"Cache get failed for {scan_id}: {e}")
            return None
        return decode_json(raw)

    async def get_result(self, scan_id: str) -> ScanResult | None:
        payload = await self.get(scan_id)
        if not isinstance(payload, dict):
            return None
        try:
            return ScanResult.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Cached payload for {scan_id} is not a scan result: {e}")
            return None

    async def put_result(self, result: ScanResult, settings: UserSettings) -> bool:
        """Cache a scan result according to the user's settings.

        In privacy mode the cached copy keeps badge, score, domain, platform
        and reasons but drops the title and the origin reference.

        Returns:
            False when history saving is turned off.
        """
        if not settings.save_history:
            return False
        if settings.privacy_mode:
            payload = result.model_dump(mode="json", exclude={"title", "thumbnail"})
            payload["url"] = None
            payload["media_reference"] = None
        else:
            payload = result.model_dump(mode="json")
        await self.put(result.id, payload)
        return True

    async def ids(self) -> list[str]:
        try:
            raw = await self.kv.get(INDEX_KEY)
        except Exception as e:
            logger.warning(f"Cache index read failed: {e}")
            return []
        ids = decode_json(raw, default=[])
        return [scan_id for scan_id in ids if isinstance(scan_id, str)] if isinstance(ids, list) else []
