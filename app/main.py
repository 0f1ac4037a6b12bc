"""Entry point for the FastAPI-powered season tracker."""

from __future__ import annotations

import json
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

from .config import Settings, settings
from .database import Database
from .db_models import ShowDocument, StoredValue
from .models import (
    EnrichmentRequest,
    GitHubSettingsUpdate,
    SeasonDraft,
    ShowSeason,
    collection_payload,
)
from .sharing import (
    EXPORT_FILENAME,
    build_share_url,
    decode_share_payload,
    encode_share_payload,
    export_document,
    parse_import_document,
)
from .services.documents import DocumentStore
from .services.enrichment import EnrichmentService, MetadataLookup
from .services.github import GitHubSyncClient, SyncError, load_config, save_config
from .services.library import ConfirmationRequired, ShowLibrary
from .services.local_store import LocalStore
from .services.omdb import OMDbClient
from .services.openrouter import OpenRouterClient
from .services.storage import PersistenceError, StaticFileSource
from .views import sort_keys

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    openrouter_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.openrouter_api_url),
            timeout=httpx.Timeout(60.0, connect=10.0),
        )
    )
    omdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.omdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    github_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.github_api_url),
            timeout=httpx.Timeout(20.0, connect=10.0),
        )
    )
    static_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=httpx.Timeout(10.0, connect=5.0))
    )

    database = Database(settings.database_url)
    await database.create_all([StoredValue.__table__])
    local_store = LocalStore(database.session_factory)

    documents_database: Database | None = None
    documents: DocumentStore | None = None
    if settings.storage_backend == "documents":
        if settings.documents_configured:
            documents_database = Database(str(settings.documents_database_url))
            await documents_database.create_all([ShowDocument.__table__])
            documents = DocumentStore(documents_database.session_factory)
        else:
            logger.warning(
                "Document store configuration is missing. Operating in offline mode."
            )

    adapter: MetadataLookup | None = None
    provider = settings.resolved_enrichment_provider
    if provider == "openrouter":
        adapter = OpenRouterClient(settings, openrouter_http)
    elif provider == "omdb":
        adapter = OMDbClient(settings, omdb_http)

    library = ShowLibrary(
        local_store,
        static_source=StaticFileSource(settings.static_data_path, static_http),
        documents=documents,
    )

    fastapi_app.state.settings = settings
    fastapi_app.state.local_store = local_store
    fastapi_app.state.library = library
    fastapi_app.state.enrichment = EnrichmentService(adapter)
    fastapi_app.state.github = GitHubSyncClient(github_http)
    await library.start()

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await library.stop()
        if documents_database is not None:
            await documents_database.dispose()
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Track, rate and share the TV seasons you watch",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_library(app: FastAPI) -> ShowLibrary:
    library = getattr(app.state, "library", None)
    if not isinstance(library, ShowLibrary):
        raise RuntimeError("Show library not initialised")
    return library


def _app_settings(app: FastAPI) -> Settings:
    configured = getattr(app.state, "settings", None)
    return configured if isinstance(configured, Settings) else settings


def register_routes(fastapi_app: FastAPI) -> None:
    def _persistence_failed(exc: Exception) -> HTTPException:
        return HTTPException(
            status_code=502,
            detail={"error": "persistence_failed", "description": str(exc)},
        )

    async def _merge(records: list[ShowSeason], confirm: bool) -> JSONResponse:
        library = get_library(fastapi_app)
        try:
            result = await library.merge(records, confirm=confirm)
        except PersistenceError as exc:
            raise _persistence_failed(exc) from exc
        return JSONResponse(result.to_payload())

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/status")
    async def status_endpoint() -> dict[str, Any]:
        library = get_library(fastapi_app)
        config = _app_settings(fastapi_app)
        enrichment: EnrichmentService | None = getattr(
            fastapi_app.state, "enrichment", None
        )
        degraded: list[dict[str, str]] = []
        if config.storage_backend == "documents" and library.mode != "documents":
            degraded.append(
                {
                    "feature": "documents",
                    "description": "Remote sync is not configured; changes stay in local storage.",
                }
            )
        if enrichment is None or not enrichment.available:
            degraded.append(
                {
                    "feature": "enrichment",
                    "description": "Metadata lookup is disabled until an OpenRouter or OMDb key is set.",
                }
            )
        local_store: LocalStore | None = getattr(fastapi_app.state, "local_store", None)
        github_configured = False
        if local_store is not None:
            github_configured = (await load_config(local_store, config)).is_complete
        if not github_configured:
            degraded.append(
                {
                    "feature": "github",
                    "description": "GitHub sync needs a token, owner and repository.",
                }
            )
        return {
            "dataSource": library.data_source,
            "storageBackend": library.mode,
            "count": len(library.seasons),
            "enrichmentProvider": enrichment.provider if enrichment else None,
            "githubConfigured": github_configured,
            "degraded": degraded,
        }

    @fastapi_app.get("/api/shows")
    async def list_shows(
        q: str = "", year: str | None = None, sort: str = "created-desc"
    ) -> JSONResponse:
        if sort not in sort_keys():
            raise HTTPException(status_code=400, detail=f"Unsupported sort: {sort}")
        library = get_library(fastapi_app)
        seasons = library.view(query=q, year=year, sort=sort)
        return JSONResponse(collection_payload(seasons))

    @fastapi_app.get("/api/shows/stream")
    async def stream_shows() -> StreamingResponse:
        library = get_library(fastapi_app)

        async def gen():
            async for snapshot in library.subscribe():
                yield f"data: {json.dumps(snapshot, separators=(',', ':'))}\n\n"

        return StreamingResponse(gen(), media_type="text/event-stream")

    @fastapi_app.get("/api/shows/{season_id}")
    async def get_show(season_id: str) -> JSONResponse:
        library = get_library(fastapi_app)
        try:
            season = library.get(season_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Season not found") from exc
        return JSONResponse(season.to_payload())

    @fastapi_app.post("/api/shows", status_code=201)
    async def create_show(draft: SeasonDraft) -> JSONResponse:
        library = get_library(fastapi_app)
        try:
            season = await library.create(draft)
        except PersistenceError as exc:
            raise _persistence_failed(exc) from exc
        return JSONResponse(season.to_payload(), status_code=201)

    @fastapi_app.put("/api/shows/{season_id}")
    async def update_show(season_id: str, draft: SeasonDraft) -> JSONResponse:
        library = get_library(fastapi_app)
        try:
            season = await library.update(season_id, draft)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Season not found") from exc
        except PersistenceError as exc:
            raise _persistence_failed(exc) from exc
        return JSONResponse(season.to_payload())

    @fastapi_app.delete("/api/shows/{season_id}")
    async def delete_show(season_id: str, confirm: bool = False) -> dict[str, Any]:
        library = get_library(fastapi_app)
        try:
            await library.delete(season_id, confirm=confirm)
        except ConfirmationRequired as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Season not found") from exc
        except PersistenceError as exc:
            raise _persistence_failed(exc) from exc
        return {"deleted": season_id}

    @fastapi_app.post("/api/shows/{season_id}/enrich")
    async def enrich_show(season_id: str, save: bool = False) -> JSONResponse:
        library = get_library(fastapi_app)
        try:
            current = library.get(season_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Season not found") from exc
        enrichment = _get_enrichment(fastapi_app)
        result = await enrichment.lookup(current.title, current.season_number)
        enriched = result.apply_to(current)
        if save and not result.is_empty():
            try:
                enriched = await library.update(season_id, enriched)
            except PersistenceError as exc:
                raise _persistence_failed(exc) from exc
        return JSONResponse(
            {
                "season": enriched.to_payload(),
                "saved": save and not result.is_empty(),
                "available": result.available,
            }
        )

    @fastapi_app.post("/api/enrich")
    async def enrich(request_body: EnrichmentRequest) -> JSONResponse:
        enrichment = _get_enrichment(fastapi_app)
        result = await enrichment.lookup(request_body.title, request_body.season_number)
        return JSONResponse(result.to_payload())

    @fastapi_app.get("/api/years")
    async def years() -> list[str]:
        return get_library(fastapi_app).years()

    @fastapi_app.get("/api/stats")
    async def stats(q: str = "", year: str | None = None) -> JSONResponse:
        library = get_library(fastapi_app)
        return JSONResponse(library.stats(query=q, year=year).to_payload())

    @fastapi_app.get("/api/export")
    async def export() -> Response:
        library = get_library(fastapi_app)
        return Response(
            content=export_document(library.seasons),
            media_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
        )

    @fastapi_app.post("/api/import")
    async def import_file(request: Request, confirm: bool = False) -> JSONResponse:
        body = await request.body()
        try:
            records = parse_import_document(body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return await _merge(records, confirm)

    @fastapi_app.get("/api/share")
    async def share(request: Request) -> dict[str, Any]:
        library = get_library(fastapi_app)
        config = _app_settings(fastapi_app)
        base_url = str(config.public_url) if config.public_url else str(request.base_url)
        seasons = library.seasons
        return {
            "url": build_share_url(base_url, seasons),
            "data": encode_share_payload(seasons),
            "count": len(seasons),
        }

    @fastapi_app.get("/api/share/preview")
    async def share_preview(data: str) -> JSONResponse:
        try:
            records = decode_share_payload(data)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        library = get_library(fastapi_app)
        preview = library.preview_merge(records)
        return JSONResponse(
            {"seasons": collection_payload(records), "merge": preview.to_payload()}
        )

    @fastapi_app.post("/api/share/import")
    async def share_import(data: str, confirm: bool = False) -> JSONResponse:
        try:
            records = decode_share_payload(data)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return await _merge(records, confirm)

    @fastapi_app.get("/api/sync/github/config")
    async def github_config() -> dict[str, Any]:
        store = _get_local_store(fastapi_app)
        config = await load_config(store, _app_settings(fastapi_app))
        return config.to_public_payload()

    @fastapi_app.put("/api/sync/github/config")
    async def update_github_config(update: GitHubSettingsUpdate) -> dict[str, Any]:
        store = _get_local_store(fastapi_app)
        config = await load_config(store, _app_settings(fastapi_app))
        merged = config.merged_with(**update.model_dump())
        try:
            await save_config(store, merged)
        except PersistenceError as exc:
            raise _persistence_failed(exc) from exc
        saved = await load_config(store, _app_settings(fastapi_app))
        return saved.to_public_payload()

    @fastapi_app.post("/api/sync/github/push")
    async def github_push(
        update: GitHubSettingsUpdate | None = Body(default=None),
    ) -> dict[str, Any]:
        store = _get_local_store(fastapi_app)
        config = await load_config(store, _app_settings(fastapi_app))
        if update is not None:
            config = config.merged_with(**update.model_dump())
        if not config.is_complete:
            raise HTTPException(
                status_code=503,
                detail={
                    "error": "github_credentials_missing",
                    "description": "A GitHub token, owner and repository are required to sync.",
                },
            )
        library = get_library(fastapi_app)
        client = _get_github(fastapi_app)
        try:
            result = await client.push(config, library.seasons)
        except SyncError as exc:
            logger.error("GitHub sync failed: %s", exc)
            raise HTTPException(
                status_code=502,
                detail={"error": "sync_failed", "description": str(exc)},
            ) from exc
        return {
            "status": "success",
            "message": "Successfully pushed to GitHub",
            "count": result.count,
            "sha": result.sha,
            "commitUrl": result.commit_url,
        }

    @fastapi_app.post("/api/sync/github/pull")
    async def github_pull(confirm: bool = False) -> JSONResponse:
        store = _get_local_store(fastapi_app)
        config = await load_config(store, _app_settings(fastapi_app))
        if not config.is_complete:
            raise HTTPException(
                status_code=503,
                detail={
                    "error": "github_credentials_missing",
                    "description": "A GitHub token, owner and repository are required to sync.",
                },
            )
        client = _get_github(fastapi_app)
        try:
            records = await client.pull(config)
        except SyncError as exc:
            raise HTTPException(
                status_code=502,
                detail={"error": "sync_failed", "description": str(exc)},
            ) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return await _merge(records, confirm)


def _get_enrichment(fastapi_app: FastAPI) -> EnrichmentService:
    service = getattr(fastapi_app.state, "enrichment", None)
    if isinstance(service, EnrichmentService):
        return service
    return EnrichmentService()


def _get_local_store(fastapi_app: FastAPI) -> LocalStore:
    store = getattr(fastapi_app.state, "local_store", None)
    if not isinstance(store, LocalStore):
        raise RuntimeError("Local store not initialised")
    return store


def _get_github(fastapi_app: FastAPI) -> GitHubSyncClient:
    client = getattr(fastapi_app.state, "github", None)
    if not isinstance(client, GitHubSyncClient):
        raise RuntimeError("GitHub client not initialised")
    return client


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
