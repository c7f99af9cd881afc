"""Key-value persistence substrate.

Every piece of local state (device identity, user settings, history, result
cache, alerts, watchlist, rate-limit timestamps) is stored as an opaque
string under a string key. Backends implement plain get/set/delete plus an
atomic ``update`` used for every read-modify-write sequence, so concurrent
mutators of the same key never lose each other's writes.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

Mutator = Callable[[str | None], str | None]


class StorageConflictError(Exception):
    """An atomic update kept losing the race for a key."""

    def __init__(self, key: str, attempts: int):
        super().__init__(f"Update of {key!r} did not converge after {attempts} attempts")
        self.key = key
        self.attempts = attempts


class KeyValueStore(ABC):
    """Abstract string key-value store."""

    name = "base"

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key`` or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``."""

    @abstractmethod
    async def update(self, key: str, mutator: Mutator) -> str | None:
        """Atomically replace the value of ``key`` with ``mutator(current)``.

        ``mutator`` receives the current value (or None) and returns the new
        value; returning None deletes the key. It may be called more than
        once when the backend retries a contended update, so it must not
        have side effects.

        Returns:
            The value written (None when the key was deleted).

        Raises:
            StorageConflictError: The update could not be applied.
        """

    async def close(self) -> None:
        """Release backend resources."""
        return None


def decode_json(raw: str | None, default: Any = None) -> Any:
    """Parse a stored JSON value, treating corrupt data as absent."""
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(f"Discarding corrupt stored value: {e}")
        return default


def encode_json(value: Any) -> str:
    return json.dumps(value, default=str)
