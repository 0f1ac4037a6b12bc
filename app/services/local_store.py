"""Local durable key-value store backed by SQLite."""

from __future__ import annotations

import json
import logging
from typing import Iterable

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import StoredValue
from ..models import ShowSeason, collection_payload
from .storage import PersistenceError

logger = logging.getLogger(__name__)

SHOWS_KEY = "cinetrack_shows"


class LocalStore:
    """String values under string keys, with the collection under one key.

    The stored collection is a cache: it is rewritten in full after every
    mutation and a value that fails to parse is treated as missing.
    """

    name = "local"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get_item(self, key: str) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(StoredValue.value).where(StoredValue.key == key)
            )
            return result.scalar_one_or_none()

    async def set_item(self, key: str, value: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(StoredValue(key=key, value=value))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to write local storage key %s", key)
            raise PersistenceError(f"Could not save {key} to local storage") from exc

    async def remove_item(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(StoredValue).where(StoredValue.key == key))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Failed to remove local storage key %s", key)
            raise PersistenceError(f"Could not remove {key} from local storage") from exc

    async def load(self) -> list[ShowSeason] | None:
        """Return the cached collection, or ``None`` when nothing usable is stored.

        Only an unreadable value counts as missing. Entries that do not
        validate are skipped one by one so the rest of the cache survives.
        """

        try:
            raw = await self.get_item(SHOWS_KEY)
        except SQLAlchemyError:
            logger.exception("Local storage could not be read")
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Failed to parse saved shows: %s", exc)
            return None
        if not isinstance(data, list):
            logger.error("Saved shows are not a JSON array; ignoring them")
            return None

        seasons: list[ShowSeason] = []
        for index, entry in enumerate(data):
            if not isinstance(entry, dict):
                logger.warning("Saved entry %d is not an object; skipping it", index)
                continue
            try:
                seasons.append(ShowSeason.model_validate(entry))
            except ValidationError as exc:
                logger.warning("Saved entry %d is invalid: %s", index, exc)
        return seasons

    async def write_all(self, seasons: Iterable[ShowSeason]) -> None:
        payload = json.dumps(collection_payload(seasons), ensure_ascii=False)
        await self.set_item(SHOWS_KEY, payload)
