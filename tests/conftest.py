"""Shared pytest fixtures for the musicFavorites test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.interfaces.act_store import IActStore
from src.interfaces.event_provider import IEventSourceProvider
from src.interfaces.music_db_provider import IActMetadataProvider
from src.models.act import Act, Event, EventLocation, GeoPoint
from src.services.act_enricher import ActEnricher
from src.services.fetch_queue import FetchQueue
from src.utils.timestamps import BERLIN_TZ, berlin_timestamp

BANDSINTOWN_URL = "https://www.bandsintown.com/a/12345"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def hours_ago(hours: float) -> str:
    """Berlin ``updatedAt`` string for *hours* before now."""
    return berlin_timestamp(datetime.now(BERLIN_TZ) - timedelta(hours=hours))


def days_from_today(days: int) -> str:
    """``YYYY-MM-DD`` for today (UTC) plus *days*."""
    return (datetime.now(timezone.utc).date() + timedelta(days=days)).isoformat()


def make_raw_artist(
    act_id: str,
    name: str = "Test Act",
    bandsintown_url: str | None = BANDSINTOWN_URL,
    ended: bool = False,
) -> dict[str, Any]:
    """A musicbrainzngs-shaped artist record."""
    relations = [
        {"type": "official homepage", "target": "https://example.com"},
        {"type": "social network", "target": "https://instagram.com/testact"},
        {"type": "streaming", "target": "https://open.spotify.com/artist/x"},
    ]
    if bandsintown_url:
        relations.append({"type": "bandsintown", "target": bandsintown_url})
    life_span: dict[str, Any] = {"begin": "2001"}
    if ended:
        life_span.update({"end": "2010", "ended": "true"})
    return {
        "id": act_id,
        "name": name,
        "area": {"name": "Germany"},
        "begin-area": {"name": "Berlin"},
        "disambiguation": "",
        "life-span": life_span,
        "url-relation-list": relations,
    }


def make_music_event(days: int, name: str = "Test Act Live") -> dict[str, Any]:
    """A Bandsintown LD+JSON ``MusicEvent`` *days* from today."""
    return {
        "@type": "MusicEvent",
        "name": name,
        "startDate": f"{days_from_today(days)}T19:30:00",
        "location": {
            "@type": "Place",
            "name": "Club",
            "address": {
                "@type": "PostalAddress",
                "streetAddress": "Main St 1",
                "postalCode": "10115",
                "addressLocality": "Berlin",
                "addressCountry": "DE",
            },
            "geo": {"@type": "GeoCoordinates", "latitude": 52.52, "longitude": 13.405},
        },
    }


def make_act(act_id: str, updated_at: str | None = None, **fields: Any) -> Act:
    data: dict[str, Any] = {
        "musicbrainz_id": act_id,
        "name": f"Act {act_id}",
        "status": "active",
        "updated_at": updated_at if updated_at is not None else hours_ago(1),
    }
    data.update(fields)
    return Act(**data)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_event() -> Event:
    return Event(
        name="Test Act Live",
        date=days_from_today(30),
        local_time="19:30:00",
        location=EventLocation(address="Main St 1, 10115, Berlin, DE", geo=GeoPoint(lat=52.52, lon=13.405)),
    )


@pytest.fixture
def mock_store() -> MagicMock:
    """IActStore mock: async methods are AsyncMocks, all answer 'empty'."""
    store = MagicMock(spec=IActStore)
    store.get_act.return_value = None
    store.get_all_act_ids.return_value = []
    store.get_all_acts_with_metadata.return_value = []
    store.get_acts_without_bandsintown.return_value = []
    store.get_recent_update_errors.return_value = []
    store.get_store_name.return_value = "mock"
    return store


@pytest.fixture
def mock_enricher() -> MagicMock:
    enricher = MagicMock(spec=ActEnricher)
    enricher.fetch_and_enrich = AsyncMock(side_effect=lambda act_id, **_: make_act(act_id))
    return enricher


@pytest.fixture
def mock_fetch_queue() -> MagicMock:
    queue = MagicMock(spec=FetchQueue)
    queue.is_running = False
    queue.pending = []
    return queue


@pytest.fixture
def mock_metadata_provider() -> MagicMock:
    provider = MagicMock(spec=IActMetadataProvider)
    provider.fetch_act = AsyncMock(side_effect=lambda act_id: make_raw_artist(act_id))
    provider.get_provider_name.return_value = "musicbrainz"
    return provider


@pytest.fixture
def mock_event_provider() -> MagicMock:
    provider = MagicMock(spec=IEventSourceProvider)
    provider.fetch_and_extract_ld_json = AsyncMock(return_value=[make_music_event(30)])
    provider.get_provider_name.return_value = "bandsintown"
    return provider


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Drop-in for ``asyncio.sleep`` that records delays without waiting."""
    return AsyncMock(return_value=None)
