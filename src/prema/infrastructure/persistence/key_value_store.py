"""Key-value store implementations."""

import logging

from sqlalchemy import delete, select

from prema.domain.ports import IKeyValueStore
from prema.infrastructure.persistence.database import Database
from prema.infrastructure.persistence.models import KeyValueModel

logger = logging.getLogger(__name__)


class SqlKeyValueStore(IKeyValueStore):
    """Key-value store backed by the local SQLite database."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def get(self, key: str) -> str | None:
        async with self._database.session_scope() as session:
            result = await session.execute(
                select(KeyValueModel.value).where(KeyValueModel.key == key)
            )
            return result.scalar_one_or_none()

    # merge() is an upsert on the primary key - one round trip, no "exists?" query first.
    async def set(self, key: str, value: str) -> None:
        async with self._database.session_scope() as session:
            await session.merge(KeyValueModel(key=key, value=value))
        logger.debug("Stored key %s", key)

    async def remove(self, key: str) -> None:
        async with self._database.session_scope() as session:
            await session.execute(delete(KeyValueModel).where(KeyValueModel.key == key))
        logger.debug("Removed key %s", key)


class InMemoryKeyValueStore(IKeyValueStore):
    """Process-local store for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of the current contents (for assertions)."""
        return dict(self._data)
