"""Key-value storage backends."""

import logging

from trustscan.config import Settings
from trustscan.services.storage.base import (
    KeyValueStore,
    StorageConflictError,
    decode_json,
    encode_json,
)
from trustscan.services.storage.lists import JsonListStore
from trustscan.services.storage.memory import MemoryKeyValueStore

logger = logging.getLogger(__name__)

__all__ = [
    "JsonListStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "StorageConflictError",
    "create_kv_store",
    "decode_json",
    "encode_json",
]


async def create_kv_store(settings: Settings) -> KeyValueStore:
    """Create the key-value store selected by ``settings.storage_backend``.

    Raises:
        ValueError: Unknown backend name.
    """
    backend = settings.storage_backend.lower()

    if backend == "memory":
        return MemoryKeyValueStore()

    if backend == "sql":
        from trustscan.database import create_engine, create_session_factory, init_models
        from trustscan.services.storage.sql import SqlKeyValueStore

        engine = create_engine(settings.storage_url, echo=settings.api_debug)
        await init_models(engine)
        logger.info(f"Using SQL key-value store at {engine.url.render_as_string(hide_password=True)}")
        return SqlKeyValueStore(
            create_session_factory(engine),
            engine=engine,
            max_retries=settings.storage_max_retries,
        )

    if backend == "redis":
        import redis.asyncio as aioredis

        from trustscan.services.storage.redis_store import RedisKeyValueStore

        client = aioredis.from_url(settings.redis_url, decode_responses=True)
        logger.info("Using Redis key-value store")
        return RedisKeyValueStore(client, max_retries=settings.storage_max_retries)

    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
