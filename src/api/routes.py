"""FastAPI routes for the musicFavorites act service.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint            Method  Description
# ─────────────────────────────────────────────────────────────────────
# /acts/{ids}         GET     One or more acts, comma-separated MBIDs
# /robots.txt         GET     Disallow all crawlers
# /admin/health       GET     Operational snapshot (bearer token)
#
# DEPENDENCY INJECTION PATTERN:
# Each route declares its dependencies as type-annotated params.  FastAPI
# resolves them via Depends() helpers that read app.state (populated at
# startup in main.py's _build_all).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import resource
import sys
import time
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from src.api.middleware import RequestStatsTracker, require_admin_token
from src.api.schemas import (
    ActsErrorBody,
    ActsErrorResponse,
    ActsResponse,
    AdminHealthResponse,
    UpdateErrorEntry,
)
from src.interfaces.act_store import IActStore
from src.services.act_service import ActService
from src.utils.logging import get_logger, get_recent_logs
from src.utils.timestamps import parse_timestamp

_logger: structlog.BoundLogger = get_logger(__name__)

VERSION = "0.1.0"

ROBOTS_TXT = "User-agent: *\nDisallow: /\n"

# Responses carry third-party data and must not be indexed or cached.
_NO_CACHE_HEADERS = {
    "X-Robots-Tag": "noindex, nofollow, noarchive, nosnippet",
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

router = APIRouter()
admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin_token)])


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_act_service(request: Request) -> ActService:
    return request.app.state.act_service


def _get_store(request: Request) -> IActStore:
    return request.app.state.store


def _get_request_stats(request: Request) -> RequestStatsTracker:
    return request.app.state.request_stats


ActServiceDep = Annotated[ActService, Depends(_get_act_service)]
StoreDep = Annotated[IActStore, Depends(_get_store)]
RequestStatsDep = Annotated[RequestStatsTracker, Depends(_get_request_stats)]


def _json(content: dict[str, Any], status_code: int = 200, pretty: bool = False) -> Response:
    body = json.dumps(content, indent=2 if pretty else None, ensure_ascii=False)
    return Response(
        content=body,
        status_code=status_code,
        media_type="application/json",
        headers=_NO_CACHE_HEADERS,
    )


# ---------------------------------------------------------------------------
# Public routes
# ---------------------------------------------------------------------------


@router.get("/acts/{ids}", summary="Fetch one or more acts by MusicBrainz id")
async def get_acts(ids: str, request: Request, service: ActServiceDep) -> Response:
    """Return the acts for comma-separated *ids*.

    ``?pretty`` (any value) indents the JSON body.  A lookup that cannot be
    served yet answers 503 with the error payload; an unexpected failure
    answers 500.
    """
    pretty = "pretty" in request.query_params
    act_ids = [act_id.strip() for act_id in ids.split(",")]

    try:
        result = await service.get_acts(act_ids)
    except Exception as exc:
        _logger.error("acts_request_failed", ids=act_ids, error=str(exc))
        body = ActsErrorResponse(
            error=ActsErrorBody(message="Failed to fetch act data", details=str(exc))
        )
        return _json(body.model_dump(by_alias=True, exclude_none=True), 500, pretty)

    if result.error is not None:
        body = ActsErrorResponse(
            error=ActsErrorBody.model_validate(result.error.model_dump(by_alias=True))
        )
        return _json(body.model_dump(by_alias=True, exclude_none=True), 503, pretty)

    acts = [act.to_api() for act in result.acts or []]
    return _json(ActsResponse(acts=acts).model_dump(by_alias=True), 200, pretty)


@router.get("/robots.txt", response_class=PlainTextResponse, include_in_schema=False)
async def robots_txt() -> PlainTextResponse:
    return PlainTextResponse(ROBOTS_TXT, media_type="text/plain; charset=utf-8")


# ---------------------------------------------------------------------------
# Admin routes
# ---------------------------------------------------------------------------


def _last_cache_update(updated_values: list[str | None]) -> str | None:
    """Return the most recent ``updatedAt`` string, or ``None``."""
    latest: tuple[Any, str] | None = None
    for value in updated_values:
        parsed = parse_timestamp(value)
        if parsed is None or value is None:
            continue
        if latest is None or parsed > latest[0]:
            latest = (parsed, value)
    return latest[1] if latest else None


def _memory_usage() -> dict[str, int]:
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    if sys.platform != "darwin":
        max_rss *= 1024
    return {"maxRssBytes": max_rss}


@admin_router.get("/health", summary="Operational health snapshot")
async def admin_health(
    request: Request,
    service: ActServiceDep,
    store: StoreDep,
    stats: RequestStatsDep,
) -> JSONResponse:
    try:
        entries = await store.get_all_acts_with_metadata()
        without_bandsintown = await store.get_acts_without_bandsintown()
        update_errors = await store.get_recent_update_errors()
    except Exception as exc:
        _logger.error("admin_health_failed", error=str(exc))
        return JSONResponse(status_code=500, content={"error": "Failed to fetch health data"})

    queue = service.fetch_queue
    health = AdminHealthResponse(
        status="ok" if service.health.healthy else "degraded",
        version=VERSION,
        store=store.get_store_name(),
        cache_size=len(entries),
        cache_healthy=service.health.healthy,
        last_cache_update=_last_cache_update([entry.updated_at for entry in entries]),
        fetch_queue={"isRunning": queue.is_running, "pending": len(queue.pending)},
        data_quality={
            "actsWithoutBandsintown": len(without_bandsintown),
            "actsWithoutBandsintownIds": without_bandsintown,
        },
        update_errors=[
            UpdateErrorEntry(
                timestamp=record.timestamp,
                act_id=record.act_id,
                error_message=record.error_message,
                error_source=record.error_source,
            )
            for record in update_errors
        ],
        recent_logs=get_recent_logs(),
        uptime_seconds=round(time.monotonic() - request.app.state.started_at, 3),
        memory=_memory_usage(),
        request_stats=stats.snapshot(),
    )
    return JSONResponse(content=health.model_dump(by_alias=True, mode="json"))
