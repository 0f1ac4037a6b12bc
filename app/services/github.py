"""Commit-based sync of the collection to a file in a GitHub repository."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable
from urllib.parse import quote

import httpx

from ..config import Settings
from ..models import ShowSeason
from ..sharing import export_document, parse_import_document
from .local_store import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_PATH = "shows.json"

CONFIG_KEYS = {
    "token": "gh_token",
    "owner": "gh_owner",
    "repo": "gh_repo",
    "path": "gh_path",
}


class SyncError(RuntimeError):
    """Raised when the repository rejects a read or write."""


@dataclass(slots=True)
class GitHubConfig:
    """Caller-supplied access token and repository coordinates."""

    token: str = ""
    owner: str = ""
    repo: str = ""
    path: str = DEFAULT_PATH

    @property
    def is_complete(self) -> bool:
        return bool(self.token and self.owner and self.repo and self.path)

    def merged_with(self, **overrides: str | None) -> "GitHubConfig":
        """Apply ``overrides``; ``None`` keeps a value and ``""`` clears it."""

        values = {
            "token": self.token,
            "owner": self.owner,
            "repo": self.repo,
            "path": self.path,
        }
        for key, value in overrides.items():
            if value is None:
                continue
            values[key] = value.strip()
        if not values["path"]:
            values["path"] = DEFAULT_PATH
        return GitHubConfig(**values)

    def to_public_payload(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "repo": self.repo,
            "path": self.path,
            "hasToken": bool(self.token),
            "configured": self.is_complete,
        }


@dataclass(slots=True)
class RemoteFile:
    sha: str
    content: str


@dataclass(slots=True)
class PushResult:
    sha: str | None
    commit_url: str | None
    count: int


async def load_config(store: LocalStore, settings: Settings) -> GitHubConfig:
    """Read the saved sync settings, falling back to environment values."""

    base = GitHubConfig(
        token=settings.github_token or "",
        owner=settings.github_owner or "",
        repo=settings.github_repo or "",
        path=settings.github_path,
    )
    saved: dict[str, str | None] = {}
    for field, key in CONFIG_KEYS.items():
        value = await store.get_item(key)
        saved[field] = value if value else None
    return base.merged_with(**saved)


async def save_config(store: LocalStore, config: GitHubConfig) -> None:
    """Persist ``config``; an empty field removes its saved value."""

    for field, key in CONFIG_KEYS.items():
        value = getattr(config, field)
        if value:
            await store.set_item(key, value)
        else:
            await store.remove_item(key)


class GitHubSyncClient:
    """Read and overwrite one JSON file through the GitHub contents API."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._client = http_client

    @staticmethod
    def _headers(config: GitHubConfig) -> dict[str, str]:
        return {
            "Authorization": f"token {config.token}",
            "Accept": "application/vnd.github.v3+json",
        }

    @staticmethod
    def _contents_path(config: GitHubConfig) -> str:
        owner = quote(config.owner, safe="")
        repo = quote(config.repo, safe="")
        path = quote(config.path.lstrip("/"), safe="/")
        return f"/repos/{owner}/{repo}/contents/{path}"

    async def fetch_file(self, config: GitHubConfig) -> RemoteFile | None:
        """Return the current file and its revision marker, or ``None`` if absent."""

        try:
            response = await self._client.get(
                self._contents_path(config), headers=self._headers(config)
            )
        except httpx.HTTPError as exc:
            raise SyncError(f"Unable to reach GitHub: {exc}") from exc
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise SyncError(self._error_message(response, "Failed to read file"))

        data = response.json()
        sha = str(data.get("sha") or "")
        encoded = str(data.get("content") or "")
        try:
            content = base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise SyncError("Repository file is not valid UTF-8 JSON") from exc
        return RemoteFile(sha=sha, content=content)

    async def push(self, config: GitHubConfig, seasons: Iterable[ShowSeason]) -> PushResult:
        """Overwrite the remote file with the full collection.

        The write carries the revision marker read just before it, so GitHub
        rejects it when the file changed in between. Such rejections surface
        as a plain ``SyncError``.
        """

        items = list(seasons)
        current = await self.fetch_file(config)
        document = export_document(items)
        body: dict[str, Any] = {
            "message": f"Update {config.path} archive [{datetime.now():%Y-%m-%d %H:%M:%S}]",
            "content": base64.b64encode(document.encode("utf-8")).decode("ascii"),
        }
        if current is not None and current.sha:
            body["sha"] = current.sha

        try:
            response = await self._client.put(
                self._contents_path(config),
                json=body,
                headers={**self._headers(config), "Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise SyncError(f"Unable to reach GitHub: {exc}") from exc
        if response.status_code >= 400:
            raise SyncError(self._error_message(response, "Failed to update file"))

        data = response.json()
        content = data.get("content") or {}
        commit = data.get("commit") or {}
        logger.info(
            "Pushed %d seasons to %s/%s:%s", len(items), config.owner, config.repo, config.path
        )
        return PushResult(
            sha=content.get("sha"),
            commit_url=commit.get("html_url"),
            count=len(items),
        )

    async def pull(self, config: GitHubConfig) -> list[ShowSeason]:
        """Fetch and parse the remote file; a missing file yields an empty list."""

        current = await self.fetch_file(config)
        if current is None:
            return []
        return parse_import_document(current.content)

    @staticmethod
    def _error_message(response: httpx.Response, fallback: str) -> str:
        try:
            data = response.json()
        except ValueError:
            data = {}
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return f"{fallback} (HTTP {response.status_code})"
