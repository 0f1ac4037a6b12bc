"""Selection of the metadata enrichment adapter."""

from __future__ import annotations

import logging
from typing import Protocol

from ..models import EnrichmentResult

logger = logging.getLogger(__name__)


class MetadataLookup(Protocol):
    provider: str

    async def lookup(self, title: str, season_number: int) -> EnrichmentResult:
        ...


class EnrichmentService:
    """Front for whichever lookup adapter is configured.

    Without an adapter every lookup returns an empty result flagged as
    unavailable, so callers can keep working in a degraded mode.
    """

    def __init__(self, adapter: MetadataLookup | None = None):
        self._adapter = adapter
        if adapter is None:
            logger.warning("No metadata API key configured; enrichment is disabled")

    @property
    def provider(self) -> str | None:
        return self._adapter.provider if self._adapter else None

    @property
    def available(self) -> bool:
        return self._adapter is not None

    async def lookup(self, title: str, season_number: int = 1) -> EnrichmentResult:
        if self._adapter is None:
            return EnrichmentResult.unavailable()
        result = await self._adapter.lookup(title, max(1, int(season_number)))
        if result.is_empty():
            logger.info("No metadata found for %s season %s", title, season_number)
        return result
