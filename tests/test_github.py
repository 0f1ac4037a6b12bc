"""Commit-based sync against the GitHub contents API."""

from __future__ import annotations

import base64
import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from app.config import Settings
from app.database import Database
from app.services.github import (
    GitHubConfig,
    GitHubSyncClient,
    SyncError,
    load_config,
    save_config,
)
from app.services.local_store import LocalStore
from app.sharing import export_document

from helpers import make_season

CONFIG = GitHubConfig(token="ghp_test", owner="octocat", repo="tv-log", path="data/shows.json")
CONTENTS_PATH = "/repos/octocat/tv-log/contents/data/shows.json"


def _encoded(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.mark.anyio("asyncio")
async def test_push_sends_revision_marker_of_existing_file() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        assert request.url.path == CONTENTS_PATH
        assert request.headers["Authorization"] == "token ghp_test"
        if request.method == "GET":
            return httpx.Response(200, json={"sha": "abc123", "content": _encoded("[]")})
        return httpx.Response(
            200,
            json={
                "content": {"sha": "def456"},
                "commit": {"html_url": "https://github.com/octocat/tv-log/commit/1"},
            },
        )

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as http:
        result = await GitHubSyncClient(http).push(CONFIG, [make_season("a", "Dark")])

    assert [request.method for request in requests] == ["GET", "PUT"]
    body: dict[str, Any] = json.loads(requests[1].content)
    assert body["sha"] == "abc123"
    assert body["message"].startswith("Update data/shows.json archive [")
    pushed = json.loads(base64.b64decode(body["content"]).decode("utf-8"))
    assert [entry["id"] for entry in pushed] == ["a"]
    assert result.sha == "def456"
    assert result.commit_url == "https://github.com/octocat/tv-log/commit/1"
    assert result.count == 1


@pytest.mark.anyio("asyncio")
async def test_push_creates_file_without_sha_when_missing() -> None:
    bodies: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(404, json={"message": "Not Found"})
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"content": {"sha": "new"}, "commit": {}})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as http:
        result = await GitHubSyncClient(http).push(CONFIG, [])

    assert "sha" not in bodies[0]
    assert result.sha == "new"
    assert result.commit_url is None


@pytest.mark.anyio("asyncio")
async def test_rejected_write_raises_sync_error_with_github_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"sha": "stale", "content": _encoded("[]")})
        return httpx.Response(409, json={"message": "data/shows.json does not match stale"})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as http:
        with pytest.raises(SyncError, match="does not match"):
            await GitHubSyncClient(http).push(CONFIG, [make_season("a")])


@pytest.mark.anyio("asyncio")
async def test_pull_parses_remote_file() -> None:
    document = export_document([make_season("remote", "Shōgun")])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"sha": "abc", "content": _encoded(document)})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as http:
        seasons = await GitHubSyncClient(http).pull(CONFIG)

    assert [season.title for season in seasons] == ["Shōgun"]


@pytest.mark.anyio("asyncio")
async def test_pull_of_missing_file_is_empty() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    async with httpx.AsyncClient(transport=transport, base_url="https://api.github.com") as http:
        assert await GitHubSyncClient(http).pull(CONFIG) == []


@pytest.mark.anyio("asyncio")
async def test_saved_config_overrides_environment(tmp_path: Path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")
    await database.create_all()
    try:
        store = LocalStore(database.session_factory)
        settings = Settings(_env_file=None, GITHUB_TOKEN="env-token", GITHUB_OWNER="env-owner")

        from_env = await load_config(store, settings)
        assert from_env.token == "env-token"
        assert from_env.is_complete is False

        await save_config(store, from_env.merged_with(owner="octocat", repo="tv-log"))
        saved = await load_config(store, settings)

        assert saved.owner == "octocat"
        assert saved.repo == "tv-log"
        assert saved.token == "env-token"
        assert saved.is_complete
        assert saved.to_public_payload()["hasToken"] is True
        assert "token" not in saved.to_public_payload()
    finally:
        await database.dispose()


def test_merged_with_keeps_on_none_and_clears_on_empty_string() -> None:
    merged = CONFIG.merged_with(token="", owner=None, repo=" other-repo ", path="")

    assert merged.token == ""
    assert merged.owner == "octocat"
    assert merged.repo == "other-repo"
    assert merged.path == "shows.json"
    assert merged.is_complete is False
