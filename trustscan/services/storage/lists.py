"""Capped JSON list stored under a single key."""

import logging
from collections.abc import Callable
from typing import Any

from trustscan.services.storage.base import KeyValueStore, decode_json, encode_json

logger = logging.getLogger(__name__)


class JsonListStore:
    """A list of JSON objects kept under one key, newest first.

    Reads never fail: missing, corrupt or non-list data loads as an empty
    list. Writes keep at most ``max_items`` entries.
    """

    key: str = ""
    max_items: int = 200

    def __init__(self, kv: KeyValueStore, key: str | None = None, max_items: int | None = None):
        self.kv = kv
        if key is not None:
            self.key = key
        if max_items is not None:
            self.max_items = max_items

    def _decode(self, raw: str | None) -> list[dict[str, Any]]:
        items = decode_json(raw, default=[])
        if not isinstance(items, list):
            logger.warning(f"Stored value for {self.key} is not a list, ignoring it")
            return []
        return [item for item in items if isinstance(item, dict)]

    async def load_raw(self) -> list[dict[str, Any]]:
        try:
            raw = await self.kv.get(self.key)
        except Exception as e:
            logger.warning(f"Failed to read {self.key}: {e}")
            return []
        return self._decode(raw)

    async def save_raw(self, items: list[dict[str, Any]]) -> None:
        await self.kv.set(self.key, encode_json(items[: self.max_items]))

    async def mutate(
        self, change: Callable[[list[dict[str, Any]]], list[dict[str, Any]]]
    ) -> list[dict[str, Any]]:
        """Atomically apply ``change`` to the stored list and return the result."""
        written: list[dict[str, Any]] = []

        def mutator(raw: str | None) -> str:
            nonlocal written
            written = change(self._decode(raw))[: self.max_items]
            return encode_json(written)

        await self.kv.update(self.key, mutator)
        return written

    async def clear(self) -> None:
        await self.kv.delete(self.key)
