"""Integration tests for the FastAPI endpoints using TestClient."""

from __future__ import annotations

import json
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.middleware import CORRELATION_HEADER
from src.config.settings import Settings
from src.main import create_app
from src.providers.store.memory_act_store import MemoryActStore
from src.services.act_service import ActService
from src.services.cache_health import CacheHealth
from src.services.fetch_queue import FetchQueue
from tests.conftest import BANDSINTOWN_URL, make_act

ADMIN_TOKEN = "s3cret-token"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_test_app(
    enricher: MagicMock, fetch_queue: MagicMock, admin_token: str = ADMIN_TOKEN
) -> tuple[FastAPI, MemoryActStore]:
    """Create the real application with an in-memory store and mocked upstreams.

    The lifespan is not run (TestClient is not used as a context manager), so
    the components are placed on ``app.state`` directly.
    """
    app = create_app(Settings(admin_token=admin_token, cache_updater_enabled=False))
    store = MemoryActStore()
    app.state.store = store
    app.state.act_service = ActService(
        store, enricher, fetch_queue, CacheHealth(), db_timeout_seconds=0.5
    )
    app.state.started_at = time.monotonic()
    return app, store


@pytest.fixture()
def app_and_store(
    mock_enricher: MagicMock, mock_fetch_queue: MagicMock
) -> tuple[FastAPI, MemoryActStore]:
    return _create_test_app(mock_enricher, mock_fetch_queue)


@pytest.fixture()
def client(app_and_store: tuple[FastAPI, MemoryActStore]) -> TestClient:
    return TestClient(app_and_store[0])


async def _seed(store: MemoryActStore, *act_ids: str) -> None:
    for act_id in act_ids:
        await store.cache_act(make_act(act_id, relations={"bandsintown": BANDSINTOWN_URL}))


# ======================================================================
# /acts/{ids}
# ======================================================================


class TestActsEndpoint:
    @pytest.mark.asyncio
    async def test_cached_act_returns_200(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        await _seed(app_and_store[1], "a")

        response = client.get("/acts/a")

        assert response.status_code == 200
        body = response.json()
        assert body["type"] == "acts"
        assert body["meta"]["license"] == "AGPL-3.0"
        assert body["meta"]["attribution"]["sources"] == ["MusicBrainz", "Bandsintown", "Songkick"]
        assert body["acts"][0]["musicbrainzId"] == "a"
        assert "updatedAt" in body["acts"][0]

    @pytest.mark.asyncio
    async def test_multiple_ids_keep_request_order(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        await _seed(app_and_store[1], "a", "b")

        response = client.get("/acts/b, a")

        assert [act["musicbrainzId"] for act in response.json()["acts"]] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_no_cache_and_robots_headers(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        await _seed(app_and_store[1], "a")

        response = client.get("/acts/a")

        assert response.headers["X-Robots-Tag"] == "noindex, nofollow, noarchive, nosnippet"
        assert "no-store" in response.headers["Cache-Control"]
        assert response.headers["Pragma"] == "no-cache"
        assert response.headers["Expires"] == "0"

    @pytest.mark.asyncio
    async def test_pretty_indents_body(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        await _seed(app_and_store[1], "a")

        compact = client.get("/acts/a")
        pretty = client.get("/acts/a?pretty")

        assert "\n" not in compact.text
        assert '\n  "meta"' in pretty.text
        assert json.loads(pretty.text)["acts"] == compact.json()["acts"]

    def test_many_misses_return_503_and_queue(
        self, client: TestClient, mock_fetch_queue: MagicMock
    ) -> None:
        response = client.get("/acts/X,Y,Z")

        assert response.status_code == 503
        body = response.json()
        assert body["type"] == "error"
        assert body["error"]["missingCount"] == 3
        assert body["error"]["cachedCount"] == 0
        assert "Background fetch initiated" in body["error"]["message"]
        mock_fetch_queue.enqueue.assert_called_once_with(["X", "Y", "Z"])

    def test_single_miss_is_fetched(self, client: TestClient, mock_enricher: MagicMock) -> None:
        response = client.get("/acts/new")

        assert response.status_code == 200
        assert response.json()["acts"][0]["musicbrainzId"] == "new"
        mock_enricher.fetch_and_enrich.assert_awaited_once_with("new")

    def test_store_failure_returns_500(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        app_and_store[1].fail_reads = True

        response = client.get("/acts/a,b")

        assert response.status_code == 500
        body = response.json()
        assert body["type"] == "error"
        assert body["error"]["message"] == "Failed to fetch act data"
        assert "SVC_002" in body["error"]["details"]
        assert "missingCount" not in body["error"]


# ======================================================================
# Misc routes
# ======================================================================


class TestMiscRoutes:
    def test_robots_txt(self, client: TestClient) -> None:
        response = client.get("/robots.txt")

        assert response.status_code == 200
        assert response.text == "User-agent: *\nDisallow: /\n"
        assert response.headers["content-type"].startswith("text/plain")

    def test_unknown_path_returns_json_404(self, client: TestClient) -> None:
        response = client.get("/does/not/exist")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found", "status": 404}

    def test_correlation_id_is_echoed(self, client: TestClient) -> None:
        response = client.get("/robots.txt", headers={CORRELATION_HEADER: "abc-123"})
        assert response.headers[CORRELATION_HEADER] == "abc-123"

    def test_correlation_id_is_generated(self, client: TestClient) -> None:
        response = client.get("/robots.txt")
        assert len(response.headers[CORRELATION_HEADER]) == 36


# ======================================================================
# /admin/health
# ======================================================================


class TestAdminHealth:
    def test_missing_token_is_401(self, client: TestClient) -> None:
        assert client.get("/admin/health").status_code == 401

    def test_wrong_token_is_401(self, client: TestClient) -> None:
        response = client.get("/admin/health", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_unconfigured_token_is_500(
        self, mock_enricher: MagicMock, mock_fetch_queue: MagicMock
    ) -> None:
        app, _ = _create_test_app(mock_enricher, mock_fetch_queue, admin_token="")

        response = TestClient(app).get(
            "/admin/health", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"}
        )

        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_snapshot(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        store = app_and_store[1]
        await _seed(store, "a")
        await store.cache_act(make_act("b"))
        client.get("/does/not/exist")

        response = client.get(
            "/admin/health", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["store"] == "memory"
        assert body["cacheSize"] == 2
        assert body["cacheHealthy"] is True
        assert body["lastCacheUpdate"] is not None
        assert body["fetchQueue"] == {"isRunning": False, "pending": 0}
        assert body["dataQuality"]["actsWithoutBandsintownIds"] == ["b"]
        assert body["updateErrors"] == []
        assert body["requestStats"]["errors4xx"] >= 1
        assert body["memory"]["maxRssBytes"] > 0

    def test_degraded_when_cache_unhealthy(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        app_and_store[0].state.act_service.health.mark_unhealthy()

        response = client.get(
            "/admin/health", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"}
        )

        assert response.json()["status"] == "degraded"
        assert response.json()["cacheHealthy"] is False

    def test_store_failure_is_500(
        self, app_and_store: tuple[FastAPI, MemoryActStore], client: TestClient
    ) -> None:
        app_and_store[1].fail_reads = True

        response = client.get(
            "/admin/health", headers={"Authorization": f"Bearer {ADMIN_TOKEN}"}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch health data"}


# ======================================================================
# Lifespan
# ======================================================================


class TestLifespan:
    def test_shutdown_stops_fetch_queue_and_disconnects(self) -> None:
        app = create_app(Settings(mongodb_uri="", cache_updater_enabled=False))

        with (
            patch.object(FetchQueue, "stop", new=AsyncMock()) as stop,
            patch.object(MemoryActStore, "disconnect", new=AsyncMock()) as disconnect,
        ):
            with TestClient(app) as client:
                assert client.get("/robots.txt").status_code == 200
                assert isinstance(app.state.fetch_queue, FetchQueue)

        stop.assert_awaited_once()
        disconnect.assert_awaited_once()
