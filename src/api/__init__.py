"""musicFavorites API layer - routes, schemas, and middleware."""

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    RequestStatsTracker,
    require_admin_token,
)
from src.api.routes import admin_router, router
from src.api.schemas import (
    ActsErrorResponse,
    ActsResponse,
    AdminHealthResponse,
    ErrorResponse,
    Meta,
    NotFoundResponse,
)

__all__ = [
    "ActsErrorResponse",
    "ActsResponse",
    "AdminHealthResponse",
    "ErrorHandlingMiddleware",
    "ErrorResponse",
    "Meta",
    "NotFoundResponse",
    "RequestLoggingMiddleware",
    "RequestStatsTracker",
    "admin_router",
    "require_admin_token",
    "router",
]
