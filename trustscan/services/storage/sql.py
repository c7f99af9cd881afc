"""SQLAlchemy-backed key-value store.

Rows live in the ``kv_entries`` table. Atomic updates use optimistic
concurrency: the row's ``version`` is read, the new value is written with
``WHERE version = <read version>``, and the whole sequence is retried when
another writer got there first.
"""

import logging

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from trustscan.models.database import KeyValueEntry
from trustscan.services.storage.base import KeyValueStore, Mutator, StorageConflictError

logger = logging.getLogger(__name__)


class SqlKeyValueStore(KeyValueStore):
    """Key-value store on top of an async SQLAlchemy session factory."""

    name = "sql"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
        max_retries: int = 10,
    ):
        """Initialize the store.

        Args:
            session_factory: Factory producing sessions bound to the database.
            engine: Engine to dispose on ``close()``, if owned by the store.
            max_retries: Attempts per atomic update before giving up.
        """
        self.session_factory = session_factory
        self.engine = engine
        self.max_retries = max_retries

    async def get(self, key: str) -> str | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(KeyValueEntry.value).where(KeyValueEntry.key == key)
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    session.add(KeyValueEntry(key=key, value=value, version=1))
                else:
                    entry.value = value
                    entry.version = entry.version + 1

    async def delete(self, key: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))

    async def keys(self, prefix: str = "") -> list[str]:
        async with self.session_factory() as session:
            query = select(KeyValueEntry.key)
            if prefix:
                query = query.where(KeyValueEntry.key.startswith(prefix, autoescape=True))
            result = await session.execute(query.order_by(KeyValueEntry.key))
            return list(result.scalars().all())

    async def update(self, key: str, mutator: Mutator) -> str | None:
        for attempt in range(1, self.max_retries + 1):
            async with self.session_factory() as session:
                try:
                    async with session.begin():
                        applied, new_value = await self._compare_and_swap(session, key, mutator)
                except (IntegrityError, OperationalError) as e:
                    logger.debug(f"Update of {key} lost a race: {e}")
                    applied, new_value = False, None
            if applied:
                return new_value
            logger.debug(f"Retrying contended update of {key} (attempt {attempt})")
        raise StorageConflictError(key, self.max_retries)

    async def _compare_and_swap(
        self, session: AsyncSession, key: str, mutator: Mutator
    ) -> tuple[bool, str | None]:
        """Apply ``mutator`` once. Returns whether the write won and the value written."""
        result = await session.execute(
            select(KeyValueEntry.value, KeyValueEntry.version).where(KeyValueEntry.key == key)
        )
        row = result.one_or_none()

        if row is None:
            new_value = mutator(None)
            if new_value is not None:
                await session.execute(
                    insert(KeyValueEntry).values(key=key, value=new_value, version=1)
                )
            return True, new_value

        current, version = row
        new_value = mutator(current)
        if new_value is None:
            statement = delete(KeyValueEntry).where(
                KeyValueEntry.key == key, KeyValueEntry.version == version
            )
        else:
            statement = (
                update(KeyValueEntry)
                .where(KeyValueEntry.key == key, KeyValueEntry.version == version)
                .values(value=new_value, version=version + 1)
            )
        outcome = await session.execute(statement)
        return outcome.rowcount == 1, new_value

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
