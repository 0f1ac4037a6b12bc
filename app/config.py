"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


StorageBackend = Literal["local", "documents"]
EnrichmentProvider = Literal["auto", "openrouter", "omdb"]


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="CineTrack", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")
    public_url: HttpUrl | None = Field(default=None, alias="PUBLIC_URL")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./cinetrack.db", alias="DATABASE_URL"
    )
    storage_backend: StorageBackend = Field(default="local", alias="STORAGE_BACKEND")
    documents_database_url: str | None = Field(
        default=None, alias="DOCUMENTS_DATABASE_URL"
    )
    static_data_path: str = Field(default="data.json", alias="STATIC_DATA_PATH")

    enrichment_provider: EnrichmentProvider = Field(
        default="auto", alias="ENRICHMENT_PROVIDER"
    )
    openrouter_api_key: str | None = Field(
        default=None, alias="OPENROUTER_API_KEY"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash:online", alias="OPENROUTER_MODEL"
    )
    openrouter_api_url: HttpUrl = Field(
        default="https://openrouter.ai/api/v1", alias="OPENROUTER_API_URL"
    )
    omdb_api_key: str | None = Field(default=None, alias="OMDB_API_KEY")
    omdb_api_url: HttpUrl = Field(
        default="https://www.omdbapi.com", alias="OMDB_API_URL"
    )

    github_token: str | None = Field(default=None, alias="GITHUB_TOKEN")
    github_owner: str | None = Field(default=None, alias="GITHUB_OWNER")
    github_repo: str | None = Field(default=None, alias="GITHUB_REPO")
    github_path: str = Field(default="shows.json", alias="GITHUB_PATH")
    github_api_url: HttpUrl = Field(
        default="https://api.github.com", alias="GITHUB_API_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator(
        "openrouter_api_key",
        "omdb_api_key",
        "documents_database_url",
        "github_token",
        "github_owner",
        "github_repo",
        mode="before",
    )
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        """Treat blank or placeholder credentials as missing."""

        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or stripped.lower() == "undefined":
                return None
            return stripped
        return value

    @property
    def documents_configured(self) -> bool:
        """Return whether the remote document collection can be reached."""

        return bool(self.documents_database_url)

    @property
    def resolved_enrichment_provider(self) -> str | None:
        """Return the enrichment adapter to use, or ``None`` when disabled."""

        if self.enrichment_provider == "openrouter":
            return "openrouter" if self.openrouter_api_key else None
        if self.enrichment_provider == "omdb":
            return "omdb" if self.omdb_api_key else None
        if self.openrouter_api_key:
            return "openrouter"
        if self.omdb_api_key:
            return "omdb"
        return None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
