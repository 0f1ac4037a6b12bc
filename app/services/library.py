"""In-memory view of the season collection and its persistence."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Any, AsyncIterator, Sequence

from ..merge import MergeResult, merge_incoming
from ..models import SeasonDraft, ShowSeason, SortKey, collection_payload
from ..stats import CollectionStats, compute_stats
from ..views import available_years, filter_and_sort
from .broadcast import SnapshotBroadcaster
from .documents import DocumentStore
from .local_store import LocalStore
from .storage import (
    DefaultSource,
    PersistenceError,
    SeasonSource,
    StaticFileSource,
    load_first_available,
)

logger = logging.getLogger(__name__)


class ConfirmationRequired(Exception):
    """Raised when a destructive operation is attempted without confirmation."""


class ShowLibrary:
    """Owns the canonical collection for the active storage backend.

    In local mode the full list is written to the local store after every
    mutation. In document mode each change is written to the document
    collection and the in-memory list is replaced by the snapshots it pushes.

    A failed local write leaves the in-memory collection untouched. Document
    writes are per record: a multi-record merge that fails partway keeps the
    records already written, as every other subscriber sees them too.
    """

    def __init__(
        self,
        local_store: LocalStore,
        *,
        static_source: StaticFileSource | None = None,
        documents: DocumentStore | None = None,
    ):
        self._local = local_store
        self._static = static_source
        self._documents = documents
        self._seasons: list[ShowSeason] = []
        self._data_source = "default"
        self._loaded = False
        self._lock = asyncio.Lock()
        self._broadcaster: SnapshotBroadcaster[list[dict[str, Any]]] = SnapshotBroadcaster()
        self._subscription_task: asyncio.Task[None] | None = None

    @property
    def mode(self) -> str:
        return "documents" if self._documents is not None else "local"

    @property
    def data_source(self) -> str:
        return self._data_source

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def seasons(self) -> list[ShowSeason]:
        return list(self._seasons)

    async def start(self) -> None:
        """Load the initial collection and attach the live subscription."""

        await self.bootstrap()
        if self._documents is not None and self._subscription_task is None:
            self._subscription_task = asyncio.create_task(self._follow_documents())

    async def stop(self) -> None:
        if self._subscription_task is None:
            return
        self._subscription_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._subscription_task
        self._subscription_task = None

    async def bootstrap(self) -> str:
        """Populate the collection from the first source that has data."""

        if self._documents is not None:
            try:
                seasons = await self._documents.load()
            except PersistenceError:
                logger.warning("Document collection unreachable; using fallback sources")
            else:
                self._replace(seasons, source=self._documents.name)
                return self._data_source

        sources: list[SeasonSource] = [self._local]
        if self._static is not None:
            sources.append(self._static)
        sources.append(DefaultSource())
        result = await load_first_available(sources)
        self._replace(result.seasons, source=result.source)
        if self._documents is None and result.source != self._local.name:
            try:
                await self._local.write_all(result.seasons)
            except PersistenceError:
                logger.warning("Could not cache %s data in local storage", result.source)
        return self._data_source

    def view(
        self,
        *,
        query: str = "",
        year: str | int | None = None,
        sort: SortKey | str = "created-desc",
    ) -> list[ShowSeason]:
        return filter_and_sort(self._seasons, query=query, year=year, sort=sort)

    def get(self, season_id: str) -> ShowSeason:
        for season in self._seasons:
            if season.id == season_id:
                return season
        raise KeyError(f"Season {season_id} not found")

    def years(self) -> list[str]:
        return available_years(self._seasons)

    def stats(
        self,
        *,
        query: str = "",
        year: str | int | None = None,
    ) -> CollectionStats:
        """Statistics over the filtered view, as the stats tab shows them."""

        selected = filter_and_sort(self._seasons, query=query, year=year)
        stats_year: int | None = None
        if year is not None and str(year).isdigit():
            stats_year = int(year)
        return compute_stats(selected, year=stats_year)

    async def create(self, draft: SeasonDraft) -> ShowSeason:
        season = ShowSeason.from_draft(draft)
        async with self._lock:
            await self._commit([season, *self._seasons], saved=[season])
        logger.info("Added %s season %s (%s)", season.title, season.season_number, season.id)
        return season

    async def update(self, season_id: str, draft: SeasonDraft) -> ShowSeason:
        async with self._lock:
            current = self.get(season_id)
            season = ShowSeason.from_draft(
                draft, season_id=current.id, created_at=current.created_at
            )
            updated = [season if item.id == season_id else item for item in self._seasons]
            await self._commit(updated, saved=[season])
        return season

    async def delete(self, season_id: str, *, confirm: bool = False) -> None:
        if not confirm:
            raise ConfirmationRequired("Deleting a season must be confirmed")
        async with self._lock:
            self.get(season_id)
            remaining = [item for item in self._seasons if item.id != season_id]
            await self._commit(remaining, deleted=[season_id])
        logger.info("Deleted season %s", season_id)

    def preview_merge(self, incoming: Sequence[ShowSeason]) -> MergeResult:
        return merge_incoming(self._seasons, incoming)

    async def merge(
        self, incoming: Sequence[ShowSeason], *, confirm: bool = False
    ) -> MergeResult:
        """Merge-on-import; without ``confirm`` only the preview is returned."""

        if not confirm:
            return self.preview_merge(incoming)
        async with self._lock:
            result = merge_incoming(self._seasons, incoming)
            if result.added:
                await self._commit(result.merged, saved=result.added)
            result.committed = True
        logger.info(
            "Imported %d seasons (%d already present)",
            len(result.added),
            len(result.skipped_ids),
        )
        return result

    async def subscribe(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield the collection payload now and after every change."""

        async for snapshot in self._broadcaster.subscribe(collection_payload(self._seasons)):
            yield snapshot

    async def _commit(
        self,
        seasons: list[ShowSeason],
        *,
        saved: Sequence[ShowSeason] = (),
        deleted: Sequence[str] = (),
    ) -> None:
        if self._documents is None:
            await self._local.write_all(seasons)
            self._replace(seasons, source=self._local.name)
            return

        # Documents are written one at a time; a failure stops the batch but
        # earlier writes stay and reach the list through the subscription.
        for season in saved:
            await self._documents.save(season)
        for season_id in deleted:
            await self._documents.delete(season_id)
        try:
            reloaded = await self._documents.load()
        except PersistenceError:
            logger.warning("Reload after write failed; using the locally applied change")
            reloaded = sorted(seasons, key=lambda season: season.created_at, reverse=True)
        self._replace(reloaded, source=self._documents.name)

    async def _follow_documents(self) -> None:
        assert self._documents is not None
        while True:
            try:
                async for snapshot in self._documents.subscribe():
                    self._replace(snapshot, source=self._documents.name)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("Document subscription error: %s", exc)
                await asyncio.sleep(5)

    def _replace(self, seasons: list[ShowSeason], *, source: str) -> None:
        self._seasons = list(seasons)
        self._data_source = source
        self._loaded = True
        self._broadcaster.publish(collection_payload(self._seasons))
