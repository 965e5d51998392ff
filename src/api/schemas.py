"""Pydantic response schemas for the musicFavorites API.

Defines the public contract of ``/acts/{ids}``, ``/admin/health`` and the
generic error bodies.  Act payloads reuse :class:`src.models.act.Act`
serialized with its public aliases (``musicbrainzId``, ``updatedAt`` ...).

Every ``/acts`` body starts with the same ``meta`` block so clients always
see the attribution and licence of the third-party data they receive.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DATA_NOTICE = (
    "Data from third-party sources subject to their respective terms.\n"
    "See https://github.com/b-uwe/musicFavorites/blob/main/DATA_NOTICE.md for details."
)


class Attribution(BaseModel):
    sources: list[str] = Field(default_factory=lambda: ["MusicBrainz", "Bandsintown", "Songkick"])
    notice: str = DATA_NOTICE


class Meta(BaseModel):
    """Attribution block included in every ``/acts`` response."""

    attribution: Attribution = Field(default_factory=Attribution)
    license: str = "AGPL-3.0"
    repository: str = "https://github.com/b-uwe/musicFavorites"


class ActsResponse(BaseModel):
    """Successful ``/acts`` response; ``acts`` holds API-shaped act dicts."""

    meta: Meta = Field(default_factory=Meta)
    type: str = "acts"
    acts: list[dict[str, Any]]


class ActsErrorBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    missing_count: int | None = Field(default=None, alias="missingCount")
    cached_count: int | None = Field(default=None, alias="cachedCount")
    details: str | None = None


class ActsErrorResponse(BaseModel):
    """``/acts`` error envelope (503 for lookup errors, 500 for failures)."""

    meta: Meta = Field(default_factory=Meta)
    type: str = "error"
    error: ActsErrorBody


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


class NotFoundResponse(BaseModel):
    error: str = "Not found"
    status: int = 404


class UpdateErrorEntry(BaseModel):
    timestamp: str
    act_id: str = Field(serialization_alias="actId")
    error_message: str = Field(serialization_alias="errorMessage")
    error_source: str = Field(serialization_alias="errorSource")


class RequestStats(BaseModel):
    total_requests: int = Field(default=0, serialization_alias="totalRequests")
    errors_4xx: int = Field(default=0, serialization_alias="errors4xx")
    errors_5xx: int = Field(default=0, serialization_alias="errors5xx")
    last_minute_requests: int = Field(default=0, serialization_alias="lastMinuteRequests")


class AdminHealthResponse(BaseModel):
    """Operational snapshot returned by ``/admin/health``."""

    status: str
    version: str
    store: str
    cache_size: int = Field(serialization_alias="cacheSize")
    cache_healthy: bool = Field(serialization_alias="cacheHealthy")
    last_cache_update: str | None = Field(default=None, serialization_alias="lastCacheUpdate")
    fetch_queue: dict[str, Any] = Field(default_factory=dict, serialization_alias="fetchQueue")
    data_quality: dict[str, Any] = Field(default_factory=dict, serialization_alias="dataQuality")
    update_errors: list[UpdateErrorEntry] = Field(
        default_factory=list, serialization_alias="updateErrors"
    )
    recent_logs: list[dict[str, Any]] = Field(default_factory=list, serialization_alias="recentLogs")
    uptime_seconds: float = Field(serialization_alias="uptimeSeconds")
    memory: dict[str, Any] = Field(default_factory=dict)
    request_stats: RequestStats = Field(
        default_factory=RequestStats, serialization_alias="requestStats"
    )
