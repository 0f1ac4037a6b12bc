"""Read-side data sources and the startup fallback chain."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

import httpx

from ..defaults import default_shows
from ..models import ShowSeason, parse_collection

logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when a storage backend rejects or fails a write."""


class SeasonSource(Protocol):
    """Anything that can supply an initial collection at startup."""

    name: str

    async def load(self) -> list[ShowSeason] | None:
        """Return the stored seasons, or ``None`` when nothing usable exists."""


@dataclass(slots=True)
class BootstrapResult:
    seasons: list[ShowSeason]
    source: str


class StaticFileSource:
    """Read-only JSON array shipped next to the application.

    ``location`` is a filesystem path or an ``http(s)`` URL. The file is never
    written by the service; exports are placed here manually.
    """

    name = "server"

    def __init__(self, location: str, http_client: httpx.AsyncClient | None = None):
        self._location = location
        self._client = http_client

    @property
    def location(self) -> str:
        return self._location

    async def load(self) -> list[ShowSeason] | None:
        try:
            text = await self._read()
        except (OSError, httpx.HTTPError) as exc:
            logger.info("No static data available at %s: %s", self._location, exc)
            return None
        if text is None:
            return None
        try:
            return parse_collection(json.loads(text))
        except ValueError as exc:
            logger.warning("Static data at %s could not be parsed: %s", self._location, exc)
            return None

    async def _read(self) -> str | None:
        if self._location.startswith(("http://", "https://")):
            if self._client is None:
                return None
            response = await self._client.get(self._location)
            if response.status_code >= 400:
                logger.info(
                    "Static data fetch from %s returned %s",
                    self._location,
                    response.status_code,
                )
                return None
            return response.text
        path = Path(self._location)
        if not path.is_file():
            return None
        return await asyncio.to_thread(path.read_text, "utf-8")


class DefaultSource:
    """Hard-coded seed seasons; always available."""

    name = "default"

    async def load(self) -> list[ShowSeason] | None:
        return default_shows()


async def load_first_available(sources: Sequence[SeasonSource]) -> BootstrapResult:
    """Try each source in order and return the first collection that exists.

    A source answers ``None`` when it has no data; an empty list is a real,
    deliberately emptied collection and wins like any other.
    """

    for source in sources:
        try:
            seasons = await source.load()
        except Exception:
            logger.exception("Data source %s failed during startup", source.name)
            continue
        if seasons is not None:
            logger.info("Loaded %d seasons from %s source", len(seasons), source.name)
            return BootstrapResult(seasons=list(seasons), source=source.name)
        logger.info("Data source %s has no data, trying next source", source.name)
    logger.warning("No data source produced seasons; starting empty")
    return BootstrapResult(seasons=[], source="default")
