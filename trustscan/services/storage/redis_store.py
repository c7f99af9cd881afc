"""Redis-backed key-value store.

Keys are namespaced with a prefix so the store can share a Redis database.
Atomic updates use WATCH/MULTI optimistic transactions and retry on
``WatchError``.
"""

import logging
from typing import Any

from redis.exceptions import WatchError

from trustscan.services.storage.base import KeyValueStore, Mutator, StorageConflictError

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "trustscan:"


class RedisKeyValueStore(KeyValueStore):
    """Key-value store on top of an async Redis client.

    The client must be created with ``decode_responses=True``.
    """

    name = "redis"

    def __init__(self, redis_client: Any, namespace: str = DEFAULT_NAMESPACE, max_retries: int = 10):
        """Initialize the store.

        Args:
            redis_client: ``redis.asyncio.Redis`` instance
            namespace: Prefix applied to every key
            max_retries: Attempts per atomic update before giving up
        """
        self.redis = redis_client
        self.namespace = namespace
        self.max_retries = max_retries

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def get(self, key: str) -> str | None:
        return await self.redis.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(self._key(key), value)

    async def delete(self, key: str) -> None:
        await self.redis.delete(self._key(key))

    async def keys(self, prefix: str = "") -> list[str]:
        found = []
        async for key in self.redis.scan_iter(f"{self._key(prefix)}*"):
            found.append(key[len(self.namespace):])
        return sorted(found)

    async def update(self, key: str, mutator: Mutator) -> str | None:
        full_key = self._key(key)
        for attempt in range(1, self.max_retries + 1):
            async with self.redis.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(full_key)
                    new_value = mutator(await pipe.get(full_key))
                    pipe.multi()
                    if new_value is None:
                        pipe.delete(full_key)
                    else:
                        pipe.set(full_key, new_value)
                    await pipe.execute()
                    return new_value
                except WatchError:
                    logger.debug(f"Retrying contended update of {key} (attempt {attempt})")
        raise StorageConflictError(key, self.max_retries)

    async def close(self) -> None:
        await self.redis.aclose()
