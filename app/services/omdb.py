"""Utilities for resolving season metadata from the OMDb API."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

import httpx

from ..config import Settings
from ..models import AggregateRatings, EnrichmentResult, ShowURLs
from ..utils import coerce_int

logger = logging.getLogger(__name__)

DEFAULT_EPISODE_MINUTES = 30
_MISSING = "N/A"


class OMDbClient:
    """Client responsible for looking up shows and seasons on OMDb."""

    provider = "omdb"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.omdb_api_key:
            raise ValueError("OMDb API key is required when initialising OMDbClient")
        self._settings = settings
        self._client = http_client

    async def lookup(self, title: str, season_number: int) -> EnrichmentResult:
        """Return a partial record for ``title``; empty when nothing matched."""

        empty = EnrichmentResult(provider=self.provider)
        title = (title or "").strip()
        if not title:
            return empty

        try:
            show = await self._get({"t": title, "type": "series"})
            if show is None:
                return empty
            season = await self._get({"t": title, "Season": season_number})
        except (httpx.HTTPError, ValueError):
            logger.exception("OMDb lookup failed for %s", title)
            return empty

        return self._build_result(show, season or {})

    async def _get(self, params: dict[str, Any]) -> dict[str, Any] | None:
        response = await self._client.get(
            "/", params={**params, "apikey": self._settings.omdb_api_key}
        )
        if response.status_code >= 400:
            logger.warning("OMDb request %s failed: %s", params, response.text)
            return None
        data = response.json()
        if not isinstance(data, dict):
            logger.warning("OMDb returned an unexpected payload for %s", params)
            return None
        if data.get("Response") == "False":
            logger.warning("OMDb Error: %s", data.get("Error"))
            return None
        return data

    def _build_result(self, show: dict[str, Any], season: dict[str, Any]) -> EnrichmentResult:
        episodes = [entry for entry in season.get("Episodes") or [] if isinstance(entry, dict)]
        episode_dates = [
            parsed
            for parsed in (self._parse_release(entry.get("Released")) for entry in episodes)
            if parsed is not None
        ]

        start_date = episode_dates[0] if episode_dates else self._parse_release(show.get("Released"))
        end_date = None
        if episode_dates and len(episode_dates) == len(episodes) and episode_dates[-1] <= date.today():
            end_date = episode_dates[-1]

        imdb_id = self._value(show.get("imdbID"))
        genres = self._value(show.get("Genre"))
        return EnrichmentResult(
            provider=self.provider,
            network=self._value(show.get("Production")),
            genres=[genre.strip() for genre in genres.split(",") if genre.strip()] if genres else None,
            aggregate_ratings=self._ratings(show),
            urls=ShowURLs(imdb=f"https://www.imdb.com/title/{imdb_id}/") if imdb_id else None,
            synopsis=self._value(show.get("Plot")),
            is_ongoing=self._is_ongoing(show),
            start_date=start_date,
            end_date=end_date,
            episode_count=len(episodes) if episodes else None,
            avg_episode_length=self._runtime_minutes(show.get("Runtime")),
        )

    def _ratings(self, show: dict[str, Any]) -> AggregateRatings:
        update: dict[str, Any] = {}
        imdb = self._value(show.get("imdbRating"))
        if imdb:
            try:
                update["imdb"] = float(imdb)
            except ValueError:
                pass
        for entry in show.get("Ratings") or []:
            if not isinstance(entry, dict):
                continue
            source = entry.get("Source")
            value = str(entry.get("Value") or "")
            if source == "Rotten Tomatoes":
                score = coerce_int(value.replace("%", ""))
                if score is not None:
                    update["rotten_tomatoes"] = score
            elif source == "Metacritic":
                score = coerce_int(value.split("/")[0])
                if score is not None:
                    update["metacritic"] = score
        return AggregateRatings(**update)

    @staticmethod
    def _value(raw: Any) -> str | None:
        if not isinstance(raw, str):
            return None
        cleaned = raw.strip()
        if not cleaned or cleaned == _MISSING:
            return None
        return cleaned

    @staticmethod
    def _is_ongoing(show: dict[str, Any]) -> bool | None:
        if show.get("EndYear") == "Present":
            return True
        year_span = show.get("Year")
        if not isinstance(year_span, str) or not year_span.strip():
            return None
        # Running series are reported as "2022–" with an open end.
        return bool(re.fullmatch(r"\d{4}\s*[–-]\s*", year_span.strip()))

    @staticmethod
    def _runtime_minutes(raw: Any) -> int:
        if isinstance(raw, str) and raw != _MISSING:
            minutes = coerce_int(raw.split(" ")[0])
            if minutes is not None:
                return minutes
        return DEFAULT_EPISODE_MINUTES

    @staticmethod
    def _parse_release(raw: Any) -> date | None:
        if not isinstance(raw, str) or raw == _MISSING:
            return None
        for fmt in ("%d %b %Y", "%Y-%m-%d"):
            try:
                return datetime.strptime(raw.strip(), fmt).date()
            except ValueError:
                continue
        return None
