"""Device identity and user settings persisted in the key-value store."""

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from trustscan.models.schemas import UserSettings
from trustscan.services.storage import KeyValueStore, decode_json, encode_json

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id_v1"
SETTINGS_KEY = "settings_v1"


def make_device_id(now_ms: int | None = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"dev_{now_ms}_{uuid.uuid4().hex}"


class DeviceIdentity:
    """Stable opaque identifier for this installation.

    Generated on first access and never regenerated afterwards.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._cached: str | None = None

    async def get(self) -> str:
        if self._cached:
            return self._cached

        candidate = make_device_id()
        device_id = await self.kv.update(DEVICE_ID_KEY, lambda current: current or candidate)
        self._cached = device_id or candidate
        if self._cached == candidate:
            logger.info(f"Generated new device identity {candidate}")
        return self._cached


class SettingsStore:
    """Singleton user settings record (read-modify-write, no history)."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @staticmethod
    def _decode(raw: str | None) -> UserSettings:
        stored = decode_json(raw, default={})
        if not isinstance(stored, dict):
            return UserSettings()
        merged = UserSettings().model_dump()
        merged.update({key: value for key, value in stored.items() if key in merged})
        try:
            return UserSettings.model_validate(merged)
        except ValidationError as e:
            logger.warning(f"Stored settings are invalid, using defaults: {e}")
            return UserSettings()

    async def load(self) -> UserSettings:
        try:
            raw = await self.kv.get(SETTINGS_KEY)
        except Exception as e:
            logger.warning(f"Failed to read settings: {e}")
            return UserSettings()
        return self._decode(raw)

    async def update(self, **changes: Any) -> UserSettings:
        """Apply ``changes`` (None values are ignored) and persist the result."""
        changes = {key: value for key, value in changes.items() if value is not None}
        result = UserSettings()

        def mutator(raw: str | None) -> str:
            nonlocal result
            current = self._decode(raw).model_dump()
            current.update(changes)
            result = UserSettings.model_validate(current)
            return encode_json(result.model_dump())

        await self.kv.update(SETTINGS_KEY, mutator)
        return result


class SettingsProvider:
    """Hands out user settings snapshots with an explicit refresh policy.

    A snapshot is reused for ``refresh_seconds``; after that the next
    ``get()`` reads storage again. ``update()`` and ``invalidate()`` make the
    next ``get()`` read storage immediately.
    """

    def __init__(
        self,
        store: SettingsStore,
        refresh_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.refresh_seconds = refresh_seconds
        self.clock = clock
        self._snapshot: UserSettings | None = None
        self._loaded_at = 0.0

    async def get(self) -> UserSettings:
        now = self.clock()
        if self._snapshot is not None and now - self._loaded_at < self.refresh_seconds:
            return self._snapshot
        self._snapshot = await self.store.load()
        self._loaded_at = now
        return self._snapshot

    async def update(self, **changes: Any) -> UserSettings:
        updated = await self.store.update(**changes)
        self.invalidate()
        return updated

    def invalidate(self) -> None:
        self._snapshot = None
