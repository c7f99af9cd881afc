"""In-process key-value store."""

import asyncio
from collections import defaultdict

from trustscan.services.storage.base import KeyValueStore, Mutator


class MemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store with one asyncio lock per key.

    Updates of the same key are serialized by its lock; updates of different
    keys proceed independently.
    """

    name = "memory"

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._locks[key]:
            self.data[key] = value

    async def delete(self, key: str) -> None:
        async with self._locks[key]:
            self.data.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self.data if key.startswith(prefix)]

    async def update(self, key: str, mutator: Mutator) -> str | None:
        async with self._locks[key]:
            new_value = mutator(self.data.get(key))
            if new_value is None:
                self.data.pop(key, None)
            else:
                self.data[key] = new_value
            return new_value
