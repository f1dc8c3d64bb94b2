"""Entry point for the FastAPI-powered Andrate backend."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .database import Database
from .errors import AndrateError
from .models import Credentials, DetailItem, LibraryItem, LibraryUpsert, SearchItem, UserIdentity
from .services.anilist import AniListClient
from .services.credentials import CredentialStore
from .services.library import LibraryStore
from .services.tmdb import TMDBClient

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    timeout = httpx.Timeout(settings.http_timeout_seconds, connect=10.0)
    anilist_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(timeout=timeout)
    )
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(base_url=str(settings.tmdb_api_url), timeout=timeout)
    )
    database = Database(settings.database_url)
    await database.create_all()

    fastapi_app.state.database = database
    fastapi_app.state.credential_store = CredentialStore(database.session_factory)
    fastapi_app.state.library_store = LibraryStore(database.session_factory)
    fastapi_app.state.anilist = AniListClient(settings, anilist_http_client)
    fastapi_app.state.tmdb = TMDBClient(settings, tmdb_http_client)
    if settings.tmdb_auth is None:
        logger.warning("No TMDB credentials configured; movie and TV lookups will fail")

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Personal anime, TV and movie tracker backed by AniList and TMDB",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def _get_state(fastapi_app: FastAPI, name: str, expected: type):
    service = getattr(fastapi_app.state, name, None)
    if not isinstance(service, expected):
        raise RuntimeError(f"{name} not initialised")
    return service


def get_credential_store(fastapi_app: FastAPI) -> CredentialStore:
    return _get_state(fastapi_app, "credential_store", CredentialStore)


def get_library_store(fastapi_app: FastAPI) -> LibraryStore:
    return _get_state(fastapi_app, "library_store", LibraryStore)


def get_anilist_client(fastapi_app: FastAPI) -> AniListClient:
    return _get_state(fastapi_app, "anilist", AniListClient)


def get_tmdb_client(fastapi_app: FastAPI) -> TMDBClient:
    return _get_state(fastapi_app, "tmdb", TMDBClient)


async def _andrate_error_handler(_: Request, exc: AndrateError) -> JSONResponse:
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


def register_routes(fastapi_app: FastAPI) -> None:
    fastapi_app.add_exception_handler(AndrateError, _andrate_error_handler)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.post("/api/auth/register")
    async def register(payload: Credentials) -> UserIdentity:
        store = get_credential_store(fastapi_app)
        return await store.register(payload.username, payload.password)

    @fastapi_app.post("/api/auth/login")
    async def login(payload: Credentials) -> UserIdentity:
        store = get_credential_store(fastapi_app)
        return await store.authenticate(payload.username, payload.password)

    @fastapi_app.put("/api/library")
    async def upsert_library_entry(payload: LibraryUpsert) -> dict[str, str]:
        store = get_library_store(fastapi_app)
        await store.upsert_entry(payload)
        return {"status": "ok"}

    @fastapi_app.get("/api/library")
    async def query_library(
        user_id: int,
        item_type: str | None = None,
        status: str | None = None,
    ) -> list[LibraryItem]:
        store = get_library_store(fastapi_app)
        return await store.query(user_id, item_type=item_type, status=status)

    @fastapi_app.get("/api/anime/search")
    async def search_anime(query: str) -> list[SearchItem]:
        return await get_anilist_client(fastapi_app).search(query)

    @fastapi_app.get("/api/anime/discover")
    async def discover_anime(
        page: int | None = Query(default=None, ge=1),
    ) -> list[SearchItem]:
        return await get_anilist_client(fastapi_app).discover(page)

    @fastapi_app.get("/api/anime/{media_id}")
    async def anime_detail(media_id: str) -> DetailItem:
        return await get_anilist_client(fastapi_app).detail(media_id)

    @fastapi_app.get("/api/tmdb/{kind}/search")
    async def search_general(kind: str, query: str) -> list[SearchItem]:
        return await get_tmdb_client(fastapi_app).search(kind, query)

    @fastapi_app.get("/api/tmdb/{kind}/discover")
    async def discover_general(
        kind: str,
        page: int | None = Query(default=None, ge=1),
    ) -> list[SearchItem]:
        return await get_tmdb_client(fastapi_app).discover(kind, page)

    @fastapi_app.get("/api/tmdb/{kind}/{item_id}")
    async def general_detail(kind: str, item_id: str) -> DetailItem:
        return await get_tmdb_client(fastapi_app).detail(kind, item_id)


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
