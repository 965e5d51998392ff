"""musicFavorites FastAPI application entry point.

Wires together the store, upstream providers, cache services and routes via
dependency injection.  Loads configuration from ``.env`` and
``config/config.yaml``, configures structured logging, and starts the
background cache updater for the lifetime of the process.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    RequestStatsTracker,
)
from src.api.routes import VERSION, admin_router, router as api_router
from src.api.schemas import NotFoundResponse
from src.config.loader import load_settings
from src.config.settings import Settings
from src.interfaces.act_store import IActStore
from src.providers.event.ld_json_provider import LdJsonEventProvider
from src.providers.music_db.musicbrainz_provider import MusicBrainzProvider
from src.providers.store.memory_act_store import MemoryActStore
from src.providers.store.mongo_act_store import MongoActStore
from src.services.act_enricher import ActEnricher
from src.services.act_service import ActService
from src.services.cache_health import CacheHealth
from src.services.cache_updater import CacheUpdater
from src.services.fetch_queue import FetchQueue
from src.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = load_settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Composition root
# ---------------------------------------------------------------------------


def _build_store(app_settings: Settings) -> IActStore:
    if app_settings.uses_memory_store():
        _logger.warning("mongodb_uri_not_set", message="Using in-memory act store")
        return MemoryActStore()
    return MongoActStore(app_settings.mongodb_uri, database=app_settings.mongodb_database)


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    The cache health object is created once here and shared by reference.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(app_settings.http_timeout_seconds),
        headers={"User-Agent": app_settings.user_agent},
        follow_redirects=True,
    )
    store = _build_store(app_settings)

    # -- Upstream providers --
    metadata_provider = MusicBrainzProvider(app_settings)
    event_provider = LdJsonEventProvider(http_client=http_client)
    enricher = ActEnricher(metadata_provider, event_provider)

    # -- Cache services --
    staleness = timedelta(hours=app_settings.staleness_threshold_hours)
    health = CacheHealth()
    fetch_queue = FetchQueue(enricher, store, delay_seconds=app_settings.fetch_delay_seconds)
    act_service = ActService(
        store,
        enricher,
        fetch_queue,
        health,
        db_timeout_seconds=app_settings.db_timeout_seconds,
        staleness_threshold=staleness,
    )
    cache_updater = CacheUpdater(
        enricher,
        store,
        fetch_delay_seconds=app_settings.fetch_delay_seconds,
        cycle_interval_seconds=app_settings.cache_cycle_interval_seconds,
        retry_delay_seconds=app_settings.cache_retry_delay_seconds,
        quiet_period_seconds=app_settings.bootstrap_quiet_period_seconds,
        staleness_threshold=staleness,
    )

    return {
        "http_client": http_client,
        "store": store,
        "metadata_provider": metadata_provider,
        "event_provider": event_provider,
        "enricher": enricher,
        "cache_health": health,
        "fetch_queue": fetch_queue,
        "act_service": act_service,
        "cache_updater": cache_updater,
    }


def _log_updater_exit(task: asyncio.Task[None]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _logger.error("cache_updater_crashed", error=str(exc))


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Connect the store and start the updater on startup, clean up on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    store: IActStore = components["store"]
    try:
        await store.connect()
        await store.ensure_error_collection_indexes()
    except Exception as exc:
        # Requests run the health check and reconnect before touching the cache.
        _logger.error("store_connect_failed", error=str(exc))
        components["cache_health"].mark_unhealthy(exc)

    updater_task: asyncio.Task[None] | None = None
    if app_settings.cache_updater_enabled:
        updater_task = asyncio.create_task(components["cache_updater"].start(), name="cache-updater")
        updater_task.add_done_callback(_log_updater_exit)

    _logger.info(
        "app_startup",
        version=VERSION,
        environment=app_settings.app_env,
        store=store.get_store_name(),
        cache_updater=app_settings.cache_updater_enabled,
    )

    yield

    # -- Shutdown: stop background work, then release connections --
    if updater_task is not None:
        updater_task.cancel()
        await asyncio.gather(updater_task, return_exceptions=True)

    await components["fetch_queue"].stop()
    await components["act_service"].wait_for_pending_writes()
    await components["event_provider"].aclose()
    await components["http_client"].aclose()
    await store.disconnect()
    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Answer unknown paths with a JSON 404; defer everything else to FastAPI."""
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content=NotFoundResponse().model_dump())
    return await http_exception_handler(request, exc)


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="musicFavorites API",
        version=VERSION,
        description=(
            "MusicBrainz act metadata enriched with Bandsintown tour events, "
            "served from a read-through cache."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings or settings
    application.state.started_at = time.monotonic()
    application.state.request_stats = RequestStatsTracker()

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware, stats=application.state.request_stats)

    application.add_exception_handler(StarletteHTTPException, _http_error_handler)

    # -- Routes --
    application.include_router(api_router)
    application.include_router(admin_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
