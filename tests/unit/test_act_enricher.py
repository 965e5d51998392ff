"""Unit tests for the enrichment pipeline and the status rule."""

from __future__ import annotations

from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.services.act_enricher import ActEnricher, determine_status
from src.utils.errors import UpstreamError
from src.utils.timestamps import is_stale
from tests.conftest import make_music_event, make_raw_artist

_TODAY = date(2025, 3, 1)


def _on(days: int) -> dict[str, str]:
    return {"date": (_TODAY + timedelta(days=days)).isoformat()}


# ======================================================================
# determine_status
# ======================================================================


class TestDetermineStatus:
    @pytest.mark.parametrize("fallback", ["active", "disbanded", "anything"])
    def test_no_events_returns_fallback(self, fallback: str) -> None:
        assert determine_status([], fallback, today=_TODAY) == fallback
        assert determine_status(None, fallback, today=_TODAY) == fallback

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (0, "on tour"),
            (90, "on tour"),
            (91, "tour planned"),
            (270, "tour planned"),
            (271, "active"),
        ],
    )
    def test_thresholds(self, days: int, expected: str) -> None:
        assert determine_status([_on(days)], "active", today=_TODAY) == expected

    def test_nearest_event_wins(self) -> None:
        events = [_on(300), _on(45), _on(200)]
        assert determine_status(events, "active", today=_TODAY) == "on tour"

    def test_invalid_dates_are_ignored(self) -> None:
        events = [{"date": None}, {"date": 20250301}, {"date": "soon"}, {}, {"date": ""}]
        assert determine_status(events, "disbanded", today=_TODAY) == "disbanded"

    def test_mixed_valid_and_invalid(self) -> None:
        events = [{"date": "not-a-date"}, _on(150), {"date": None}]
        assert determine_status(events, "active", today=_TODAY) == "tour planned"

    def test_accepts_event_models(self, sample_event) -> None:  # noqa: ANN001
        assert determine_status([sample_event], "active") == "on tour"


# ======================================================================
# ActEnricher
# ======================================================================


class TestFetchAndEnrich:
    @pytest.mark.asyncio
    async def test_enriches_with_events_and_timestamp(
        self, mock_metadata_provider: MagicMock, mock_event_provider: MagicMock
    ) -> None:
        enricher = ActEnricher(mock_metadata_provider, mock_event_provider)

        act = await enricher.fetch_and_enrich("mbid-1")

        assert act.musicbrainz_id == "mbid-1"
        assert act.status == "on tour"
        assert len(act.events) == 1
        assert is_stale(act.updated_at) is False
        mock_event_provider.fetch_and_extract_ld_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_bandsintown_relation_skips_event_fetch(
        self, mock_metadata_provider: MagicMock, mock_event_provider: MagicMock
    ) -> None:
        mock_metadata_provider.fetch_act.side_effect = None
        mock_metadata_provider.fetch_act.return_value = make_raw_artist("x", bandsintown_url=None)
        enricher = ActEnricher(mock_metadata_provider, mock_event_provider)

        act = await enricher.fetch_and_enrich("x")

        assert act.events == []
        assert act.status == "active"
        mock_event_provider.fetch_and_extract_ld_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_bandsintown_url_yields_no_events(
        self, mock_metadata_provider: MagicMock, mock_event_provider: MagicMock
    ) -> None:
        mock_metadata_provider.fetch_act.side_effect = None
        mock_metadata_provider.fetch_act.return_value = make_raw_artist(
            "x", bandsintown_url="https://evil.example.com/a/1"
        )
        enricher = ActEnricher(mock_metadata_provider, mock_event_provider)

        act = await enricher.fetch_and_enrich("x")

        assert act.events == []
        mock_event_provider.fetch_and_extract_ld_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_metadata_error_propagates(
        self, mock_metadata_provider: MagicMock, mock_event_provider: MagicMock
    ) -> None:
        mock_metadata_provider.fetch_act.side_effect = UpstreamError("boom", "musicbrainz")
        enricher = ActEnricher(mock_metadata_provider, mock_event_provider)

        with pytest.raises(UpstreamError):
            await enricher.fetch_and_enrich("x", silent_event_fail=True)

    @pytest.mark.asyncio
    async def test_event_error_propagates_by_default(
        self, mock_metadata_provider: MagicMock, mock_event_provider: MagicMock
    ) -> None:
        mock_event_provider.fetch_and_extract_ld_json.side_effect = RuntimeError("page down")
        enricher = ActEnricher(mock_metadata_provider, mock_event_provider)

        with pytest.raises(RuntimeError, match="page down"):
            await enricher.fetch_and_enrich("x")

    @pytest.mark.asyncio
    async def test_event_error_silenced_when_requested(
        self, mock_metadata_provider: MagicMock, mock_event_provider: MagicMock
    ) -> None:
        mock_event_provider.fetch_and_extract_ld_json.side_effect = RuntimeError("page down")
        enricher = ActEnricher(mock_metadata_provider, mock_event_provider)

        act = await enricher.fetch_and_enrich("x", silent_event_fail=True)

        assert act.events == []
        assert act.status == "active"

    @pytest.mark.asyncio
    async def test_rejected_events_are_dropped(
        self, mock_metadata_provider: MagicMock
    ) -> None:
        events = MagicMock()
        events.fetch_and_extract_ld_json = AsyncMock(
            return_value=[{"@type": "Organization", "name": "x"}, make_music_event(400)]
        )
        enricher = ActEnricher(mock_metadata_provider, events)

        act = await enricher.fetch_and_enrich("x")

        assert len(act.events) == 1
        assert act.status == "active"
