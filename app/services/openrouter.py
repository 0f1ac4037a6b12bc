"""Integration helpers for the OpenRouter API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..models import EnrichmentResult, GroundingLink
from ..utils import extract_json_object

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are CineTrack, a research assistant that looks up factual metadata about "
    "television seasons using web search. You always respond with a single JSON "
    "object that matches the documented schema and never include commentary "
    "outside JSON."
)

METADATA_REQUEST_TEMPLATE = """
Find metadata for season {season_number} of the TV show "{title}".

Rules:
1. Use the network or streaming service that originally aired this season.
2. Ratings must be the published scores for this season where available, otherwise for the show.
3. Use ISO dates (YYYY-MM-DD). Leave a field out when you cannot verify it.
4. "avgEpisodeLength" is the typical episode runtime in minutes.
5. "isOngoing" is true only while the season is still airing.

Respond strictly with JSON following this structure:
{{
  "network": "HBO",
  "genres": ["Drama"],
  "aggregateRatings": {{"imdb": 8.5, "metacritic": 90, "rottenTomatoes": 95, "myanimelist": 8.1}},
  "urls": {{"imdb": "https://...", "rottenTomatoes": "https://...", "metacritic": "https://...", "trailer": "https://..."}},
  "synopsis": "two sentence summary",
  "isOngoing": false,
  "startDate": "2024-01-01",
  "endDate": "2024-03-01",
  "episodeCount": 8,
  "avgEpisodeLength": 55
}}
"""

_RESULT_KEYS = frozenset(
    {
        "network",
        "genres",
        "aggregateRatings",
        "urls",
        "synopsis",
        "isOngoing",
        "startDate",
        "endDate",
        "episodeCount",
        "avgEpisodeLength",
    }
)


class OpenRouterClient:
    """Client responsible for talking to OpenRouter."""

    provider = "openrouter"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def lookup(
        self,
        title: str,
        season_number: int,
        *,
        api_key: str | None = None,
        model: str | None = None,
    ) -> EnrichmentResult:
        """Ask a web-search enabled model for season metadata and citations."""

        resolved_key = api_key or self._settings.openrouter_api_key
        if not resolved_key:
            raise RuntimeError("OpenRouter API key is required to look up metadata")
        resolved_model = model or self._settings.openrouter_model

        empty = EnrichmentResult(provider=self.provider)
        title = (title or "").strip()
        if not title:
            return empty

        payload: dict[str, Any] = {
            "model": resolved_model,
            "temperature": 0.2,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": METADATA_REQUEST_TEMPLATE.format(
                        title=title, season_number=season_number
                    ),
                },
            ],
        }
        if not resolved_model.endswith(":online"):
            payload["plugins"] = [{"id": "web"}]

        headers = {
            "Authorization": f"Bearer {resolved_key}",
            "Content-Type": "application/json",
            "X-Title": self._settings.app_name,
        }

        try:
            response = await self._client.post(
                "/chat/completions", json=payload, headers=headers
            )
        except httpx.HTTPError:
            logger.exception("OpenRouter metadata lookup failed for %s", title)
            return empty
        if response.status_code >= 400:
            logger.warning(
                "OpenRouter lookup for %s season %s failed: %s",
                title,
                season_number,
                response.text,
            )
            return empty

        try:
            data = response.json()
        except ValueError:
            logger.warning("OpenRouter returned a non-JSON body for %s", title)
            return empty
        choices = data.get("choices", []) if isinstance(data, dict) else []
        if not choices:
            logger.warning("Model returned no choices for %s", title)
            return empty
        message = choices[0].get("message", {})
        content = message.get("content")
        links = self._grounding_links(message)
        if not isinstance(content, str):
            logger.warning("Model response missing content for %s", title)
            return empty.model_copy(update={"grounding_links": links})

        try:
            parsed = extract_json_object(content)
        except ValueError as exc:
            logger.warning("Model response for %s was not JSON: %s", title, exc)
            return empty.model_copy(update={"grounding_links": links})

        return self._build_result(parsed, links)

    def _build_result(
        self, parsed: dict[str, Any], links: list[GroundingLink]
    ) -> EnrichmentResult:
        """Validate the model output, dropping any field that fails validation."""

        fields = {key: value for key, value in parsed.items() if key in _RESULT_KEYS}
        while True:
            try:
                result = EnrichmentResult.model_validate(fields)
                break
            except ValidationError as exc:
                invalid = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
                invalid &= set(fields)
                if not invalid:
                    result = EnrichmentResult()
                    break
                logger.debug("Dropping invalid model fields: %s", sorted(invalid))
                fields = {key: value for key, value in fields.items() if key not in invalid}

        return result.model_copy(
            update={"provider": self.provider, "grounding_links": links}
        )

    @staticmethod
    def _grounding_links(message: dict[str, Any]) -> list[GroundingLink]:
        """Collect unique URL citations from the message annotations."""

        links: list[GroundingLink] = []
        seen: set[str] = set()
        for annotation in message.get("annotations") or []:
            if not isinstance(annotation, dict) or annotation.get("type") != "url_citation":
                continue
            citation = annotation.get("url_citation") or {}
            uri = citation.get("url")
            if not isinstance(uri, str) or not uri or uri in seen:
                continue
            seen.add(uri)
            links.append(GroundingLink(title=str(citation.get("title") or uri), uri=uri))
        return links
