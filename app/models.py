"""Pydantic models describing tracked show seasons."""

from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .utils import normalize_url, now_millis

SortKey = Literal[
    "created-desc",
    "rating-desc",
    "rating-asc",
    "title-asc",
    "title-desc",
    "season-desc",
    "season-asc",
    "date-desc",
]


class ShowStatus(str, Enum):
    """Lifecycle status of a tracked season."""

    WATCHING = "Watching"
    COMPLETED = "Completed"
    RECOMMENDED = "Recommended"
    ON_HOLD = "On Hold"
    DROPPED = "Dropped"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Return the camelCase JSON form, omitting unset optional values."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AggregateRatings(_CamelModel):
    """Third-party scores, each on the source's own scale."""

    imdb: float | None = Field(default=None, ge=0, le=10)
    metacritic: int | None = Field(default=None, ge=0, le=100)
    myanimelist: float | None = Field(default=None, ge=0, le=10)
    rotten_tomatoes: int | None = Field(default=None, ge=0, le=100)


class ShowURLs(_CamelModel):
    """External pages for a season."""

    imdb: str | None = None
    metacritic: str | None = None
    myanimelist: str | None = None
    rotten_tomatoes: str | None = None
    trailer: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _normalise(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, str):
            return normalize_url(value) or None
        return value


class GroundingLink(_CamelModel):
    """Citation returned by the metadata enrichment adapter."""

    title: str = ""
    uri: str


class SeasonDraft(_CamelModel):
    """Editable fields of a season, as submitted by the client."""

    title: str
    season_number: int = Field(default=1, ge=1)
    network: str = "Unknown"
    genres: list[str] = Field(default_factory=list)
    user_rating: float = Field(default=3.0, ge=1.0, le=5.0)
    aggregate_ratings: AggregateRatings = Field(default_factory=AggregateRatings)
    urls: ShowURLs = Field(default_factory=ShowURLs)
    status: ShowStatus = ShowStatus.WATCHING
    review: str = ""
    synopsis: str = ""
    start_date: date | None = None
    end_date: date | None = None
    is_ongoing: bool = False
    episode_count: int | None = Field(default=None, ge=0)
    avg_episode_length: int | None = Field(default=None, ge=0)
    grounding_links: list[GroundingLink] | None = None

    @field_validator("title")
    @classmethod
    def _require_title(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("title must not be empty")
        return cleaned

    @field_validator("network", mode="before")
    @classmethod
    def _default_network(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return "Unknown"
        return value

    @field_validator("genres", mode="before")
    @classmethod
    def _split_genres(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _blank_date(cls, value: object) -> object:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return None
            return stripped[:10]
        return value


class ShowSeason(SeasonDraft):
    """A single tracked season of a show."""

    id: str
    created_at: int = Field(default_factory=now_millis)

    @classmethod
    def from_draft(
        cls,
        draft: SeasonDraft,
        *,
        season_id: str | None = None,
        created_at: int | None = None,
    ) -> "ShowSeason":
        """Build a record from a draft, minting an id for new entries."""

        data = draft.model_dump()
        data["id"] = season_id or str(uuid.uuid4())
        data["created_at"] = created_at if created_at is not None else now_millis()
        return cls.model_validate(data)

    def searchable_text(self) -> Iterable[str]:
        yield self.title
        yield self.network
        yield self.status.value
        yield from self.genres


class EnrichmentResult(_CamelModel):
    """Best-effort partial record returned by an enrichment adapter."""

    provider: str | None = None
    available: bool = True
    network: str | None = None
    genres: list[str] | None = None
    aggregate_ratings: AggregateRatings | None = None
    urls: ShowURLs | None = None
    synopsis: str | None = None
    is_ongoing: bool | None = None
    start_date: date | None = None
    end_date: date | None = None
    episode_count: int | None = Field(default=None, ge=0)
    avg_episode_length: int | None = Field(default=None, ge=0)
    grounding_links: list[GroundingLink] = Field(default_factory=list)

    @classmethod
    def unavailable(cls, provider: str | None = None) -> "EnrichmentResult":
        return cls(provider=provider, available=False)

    def is_empty(self) -> bool:
        fields = self.model_dump(
            exclude={"provider", "available", "grounding_links"}, exclude_none=True
        )
        return not fields and not self.grounding_links

    def apply_to(self, draft: SeasonDraft) -> SeasonDraft:
        """Overlay this result onto ``draft`` and return the merged copy."""

        update: dict[str, Any] = {}
        for name in (
            "network",
            "synopsis",
            "is_ongoing",
            "start_date",
            "end_date",
            "episode_count",
            "avg_episode_length",
        ):
            value = getattr(self, name)
            if value is not None:
                update[name] = value
        if self.genres:
            update["genres"] = list(self.genres)
        if self.aggregate_ratings is not None:
            merged = draft.aggregate_ratings.model_dump()
            merged.update(self.aggregate_ratings.model_dump(exclude_none=True))
            update["aggregate_ratings"] = AggregateRatings.model_validate(merged)
        if self.urls is not None:
            merged_urls = draft.urls.model_dump()
            merged_urls.update(self.urls.model_dump(exclude_none=True))
            update["urls"] = ShowURLs.model_validate(merged_urls)
        if self.grounding_links:
            update["grounding_links"] = list(self.grounding_links)
        return draft.model_copy(update=update)


def parse_collection(data: Any) -> list[ShowSeason]:
    """Validate a decoded JSON payload as a list of season records.

    Raises ``ValueError`` when the payload is not an array or any entry is
    not a valid record.
    """

    if not isinstance(data, list):
        raise ValueError("Expected a JSON array of season records")
    seasons: list[ShowSeason] = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Entry {index} is not an object")
        try:
            seasons.append(ShowSeason.model_validate(entry))
        except ValidationError as exc:
            raise ValueError(f"Entry {index} is not a valid season record: {exc}") from exc
    return seasons


def collection_payload(seasons: Iterable[ShowSeason]) -> list[dict[str, Any]]:
    return [season.to_payload() for season in seasons]


class EnrichmentRequest(_CamelModel):
    title: str = Field(min_length=1)
    season_number: int = Field(default=1, ge=1)


class GitHubSettingsUpdate(_CamelModel):
    """Repository coordinates supplied by the caller for commit-based sync."""

    token: str | None = None
    owner: str | None = None
    repo: str | None = None
    path: str | None = None
