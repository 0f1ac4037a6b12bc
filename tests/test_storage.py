"""Local store, static file source and the startup fallback chain."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from app.database import Database
from app.services.local_store import SHOWS_KEY, LocalStore
from app.services.storage import (
    DefaultSource,
    StaticFileSource,
    load_first_available,
)
from app.sharing import export_document

from helpers import make_season


class _StaticSeasons:
    def __init__(self, name: str, seasons) -> None:
        self.name = name
        self._seasons = seasons

    async def load(self):
        return self._seasons


class _BrokenSource:
    name = "broken"

    async def load(self):
        raise RuntimeError("boom")


@pytest.mark.anyio("asyncio")
async def test_local_store_round_trips_collection(tmp_path: Path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")
    await database.create_all()
    try:
        store = LocalStore(database.session_factory)
        assert await store.load() is None

        seasons = [make_season("a", "Dark"), make_season("b", "Fleabag")]
        await store.write_all(seasons)

        assert await store.load() == seasons
        assert json.loads(await store.get_item(SHOWS_KEY))[0]["id"] == "a"
    finally:
        await database.dispose()


@pytest.mark.anyio("asyncio")
async def test_local_store_treats_corrupt_value_as_missing(tmp_path: Path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")
    await database.create_all()
    try:
        store = LocalStore(database.session_factory)
        await store.set_item(SHOWS_KEY, "{not json")
        assert await store.load() is None

        await store.set_item("gh_owner", "octocat")
        await store.remove_item("gh_owner")
        assert await store.get_item("gh_owner") is None
    finally:
        await database.dispose()


@pytest.mark.anyio("asyncio")
async def test_static_file_source_reads_path(tmp_path: Path) -> None:
    path = tmp_path / "data.json"
    path.write_text(export_document([make_season("srv", "Server Show")]), encoding="utf-8")

    seasons = await StaticFileSource(str(path)).load()

    assert seasons is not None
    assert [season.id for season in seasons] == ["srv"]


@pytest.mark.anyio("asyncio")
async def test_static_file_source_missing_or_invalid_is_absent(tmp_path: Path) -> None:
    assert await StaticFileSource(str(tmp_path / "missing.json")).load() is None

    broken = tmp_path / "broken.json"
    broken.write_text('{"not": "a list"}', encoding="utf-8")
    assert await StaticFileSource(str(broken)).load() is None


@pytest.mark.anyio("asyncio")
async def test_static_file_source_fetches_url() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/data.json":
            return httpx.Response(200, text=export_document([make_season("web", "Remote")]))
        return httpx.Response(404)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        found = await StaticFileSource("https://cdn.example.com/data.json", client).load()
        missing = await StaticFileSource("https://cdn.example.com/none.json", client).load()

    assert found is not None and found[0].id == "web"
    assert missing is None


@pytest.mark.anyio("asyncio")
async def test_fallback_chain_skips_absent_and_failing_sources() -> None:
    chain = [
        _StaticSeasons("local", None),
        _BrokenSource(),
        _StaticSeasons("backup", [make_season("b")]),
        DefaultSource(),
    ]

    result = await load_first_available(chain)

    assert result.source == "backup"
    assert [season.id for season in result.seasons] == ["b"]


@pytest.mark.anyio("asyncio")
async def test_empty_collection_is_data_not_absence() -> None:
    """A deliberately emptied list must not bring the seed seasons back."""

    result = await load_first_available([_StaticSeasons("local", []), DefaultSource()])

    assert result.source == "local"
    assert result.seasons == []


@pytest.mark.anyio("asyncio")
async def test_local_store_skips_invalid_entries_but_keeps_the_rest(tmp_path: Path) -> None:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'local.db'}")
    await database.create_all()
    try:
        store = LocalStore(database.session_factory)
        stored = [
            {"id": "mine", "title": "My Show", "createdAt": 1},
            {"id": "odd", "title": "Odd", "aggregateRatings": {"metacritic": 80.5}},
            "not a record",
        ]
        await store.set_item(SHOWS_KEY, json.dumps(stored))

        seasons = await store.load()

        assert seasons is not None
        assert [season.id for season in seasons] == ["mine"]

        await store.set_item(SHOWS_KEY, json.dumps({"id": "mine"}))
        assert await store.load() is None
    finally:
        await database.dispose()


@pytest.mark.anyio("asyncio")
async def test_fallback_chain_ends_with_defaults() -> None:
    result = await load_first_available([_StaticSeasons("local", None), DefaultSource()])

    assert result.source == "default"
    assert [season.id for season in result.seasons] == ["default-1", "default-2"]
    assert result.seasons[0].created_at > result.seasons[1].created_at
