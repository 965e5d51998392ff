"""musicFavorites domain models - re-exports all public model classes."""

from __future__ import annotations

from src.models.act import (
    Act,
    ActsLookupError,
    ActsLookupResult,
    ActStatus,
    Event,
    EventLocation,
    GeoPoint,
)

__all__ = [
    "Act",
    "ActStatus",
    "ActsLookupError",
    "ActsLookupResult",
    "Event",
    "EventLocation",
    "GeoPoint",
]
