"""Remote document collection with live snapshot subscriptions."""

from __future__ import annotations

import logging
from typing import AsyncIterator

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db_models import ShowDocument
from ..models import ShowSeason
from .broadcast import SnapshotBroadcaster
from .storage import PersistenceError

logger = logging.getLogger(__name__)


class DocumentStore:
    """One document per season keyed by id, newest first.

    Writes are plain upserts, so the last writer wins. After every successful
    write or delete the full collection is pushed to all subscribers.
    """

    name = "documents"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._broadcaster: SnapshotBroadcaster[list[ShowSeason]] = SnapshotBroadcaster()

    async def load(self) -> list[ShowSeason]:
        """Return every stored season ordered by ``createdAt`` descending."""

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(ShowDocument).order_by(ShowDocument.created_at.desc())
                )
                documents = result.scalars().all()
        except SQLAlchemyError as exc:
            logger.exception("Document collection could not be read")
            raise PersistenceError("Document collection is unavailable") from exc

        seasons: list[ShowSeason] = []
        for document in documents:
            try:
                seasons.append(ShowSeason.model_validate({**document.payload, "id": document.id}))
            except ValidationError as exc:
                logger.warning("Stored document %s is invalid: %s", document.id, exc)
        return seasons

    async def save(self, season: ShowSeason) -> None:
        try:
            async with self._session_factory() as session:
                await session.merge(
                    ShowDocument(
                        id=season.id,
                        created_at=season.created_at,
                        payload=season.to_payload(),
                    )
                )
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Error saving show %s to the document collection", season.id)
            raise PersistenceError(f"Could not save {season.title!r}") from exc
        await self._publish()

    async def delete(self, season_id: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(ShowDocument).where(ShowDocument.id == season_id))
                await session.commit()
        except SQLAlchemyError as exc:
            logger.exception("Error deleting show %s from the document collection", season_id)
            raise PersistenceError(f"Could not delete season {season_id}") from exc
        await self._publish()

    async def subscribe(self) -> AsyncIterator[list[ShowSeason]]:
        """Yield the current collection, then a fresh snapshot after each change."""

        initial = await self.load()
        async for snapshot in self._broadcaster.subscribe(initial):
            yield snapshot

    async def _publish(self) -> None:
        if not self._broadcaster.subscriber_count:
            return
        try:
            snapshot = await self.load()
        except PersistenceError:
            logger.error("Snapshot could not be delivered to subscribers")
            return
        self._broadcaster.publish(snapshot)
