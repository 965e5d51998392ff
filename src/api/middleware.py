"""API middleware: correlation ids, request logging/stats, error handling.

# ─── MIDDLEWARE EXECUTION ORDER ────────────────────────────────────────
#
# Starlette middleware is a stack (LIFO: last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)    # added 1st -> inner
#     app.add_middleware(RequestLoggingMiddleware)   # added 2nd -> outermost
#
#   Request flow:
#     Client -> RequestLogging -> ErrorHandling -> route handler
#
# RequestLoggingMiddleware binds the correlation id before anything else
# runs, so every log line of the request (including the error handler's)
# carries it, and it sees the final status code for the request stats.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import hmac
import time
import uuid
from collections import deque

import structlog
from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.api.schemas import ErrorResponse, RequestStats
from src.utils.errors import MusicFavoritesError, ServiceUnavailableError
from src.utils.logging import bind_correlation_id, clear_correlation_id, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


# ---------------------------------------------------------------------------
# Request statistics
# ---------------------------------------------------------------------------


class RequestStatsTracker:
    """In-process request counters for the admin health endpoint."""

    _WINDOW_SECONDS = 60.0

    def __init__(self) -> None:
        self.total_requests = 0
        self.errors_4xx = 0
        self.errors_5xx = 0
        self._recent: deque[float] = deque()

    def record(self, status_code: int, now: float | None = None) -> None:
        moment = time.monotonic() if now is None else now
        self.total_requests += 1
        if 400 <= status_code < 500:
            self.errors_4xx += 1
        elif status_code >= 500:
            self.errors_5xx += 1
        self._recent.append(moment)
        self._prune(moment)

    def _prune(self, now: float) -> None:
        while self._recent and now - self._recent[0] > self._WINDOW_SECONDS:
            self._recent.popleft()

    def snapshot(self, now: float | None = None) -> RequestStats:
        self._prune(time.monotonic() if now is None else now)
        return RequestStats(
            total_requests=self.total_requests,
            errors_4xx=self.errors_4xx,
            errors_5xx=self.errors_5xx,
            last_minute_requests=len(self._recent),
        )

    def reset(self) -> None:
        self.total_requests = 0
        self.errors_4xx = 0
        self.errors_5xx = 0
        self._recent.clear()


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id, log every request and count it.

    The id comes from the incoming ``X-Correlation-ID`` header or is a new
    uuid4, and is echoed back in the response header.
    """

    def __init__(self, app: object, stats: RequestStatsTracker | None = None) -> None:
        super().__init__(app)
        self._stats = stats

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        bind_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            if self._stats is not None:
                self._stats.record(status_code)
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )
            clear_correlation_id()


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Convert uncaught ``MusicFavoritesError`` into a JSON ``ErrorResponse``.

    ``ServiceUnavailableError`` maps to 503, everything else to 500.  Only
    the client-safe message is returned; details stay in the logs.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except MusicFavoritesError as exc:
            _logger.error(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                code=exc.code,
                provider=exc.provider_name,
                path=str(request.url.path),
            )
            status_code = 503 if isinstance(exc, ServiceUnavailableError) else 500
            body = ErrorResponse(error=type(exc).__name__, detail=exc.message)
            return JSONResponse(status_code=status_code, content=body.model_dump())


# ---------------------------------------------------------------------------
# Admin authentication
# ---------------------------------------------------------------------------


def require_admin_token(request: Request) -> None:
    """FastAPI dependency guarding the admin routes with a bearer token.

    An unset ``ADMIN_TOKEN`` disables the admin routes entirely (500) so a
    misconfigured deployment never exposes them unauthenticated.
    """
    expected: str = request.app.state.settings.admin_token
    if not expected:
        _logger.error("admin_token_not_configured")
        raise HTTPException(status_code=500, detail="Admin authentication not configured")

    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")

    if not hmac.compare_digest(token.encode(), expected.encode()):
        _logger.warning("admin_auth_failed", path=str(request.url.path))
        raise HTTPException(status_code=401, detail="Invalid token")
