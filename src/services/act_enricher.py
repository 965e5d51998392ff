"""Enrichment pipeline: MusicBrainz metadata + Bandsintown events -> :class:`Act`.

``fetch_and_enrich`` is pure composition.  It performs one metadata lookup
and at most one event-page fetch, computes the derived status and stamps
``updatedAt``.  Persisting the result is the caller's decision.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any

import structlog

from src.interfaces.event_provider import IEventSourceProvider
from src.interfaces.music_db_provider import IActMetadataProvider
from src.models.act import Act, ActStatus, Event
from src.services.bandsintown_transformer import transform_events
from src.services.musicbrainz_transformer import transform_act_data
from src.utils.timestamps import berlin_timestamp

logger = structlog.get_logger(logger_name=__name__)

_BANDSINTOWN_URL_RE = re.compile(r"^https?://(?:www\.)?bandsintown\.com/a/\d+$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

ON_TOUR_DAYS = 90
TOUR_PLANNED_DAYS = 270


def _event_date(event: Any) -> Any:
    if isinstance(event, Mapping):
        return event.get("date")
    return getattr(event, "date", None)


def _parse_event_date(value: Any) -> date | None:
    if not isinstance(value, str) or not _ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def determine_status(
    events: Iterable[Event | Mapping[str, Any]] | None,
    fallback_status: str,
    today: date | None = None,
) -> str:
    """Derive the act status from its nearest upcoming event.

    Nearest event within 90 days (inclusive) -> ``"on tour"``, within 270
    days -> ``"tour planned"``, otherwise *fallback_status*.  Events whose
    ``date`` is missing or unparseable are ignored.
    """
    current = today or datetime.now(timezone.utc).date()
    dates = [d for d in (_parse_event_date(_event_date(e)) for e in events or []) if d is not None]
    if not dates:
        return fallback_status

    days_until = (min(dates) - current).days
    if days_until <= ON_TOUR_DAYS:
        return ActStatus.ON_TOUR.value
    if days_until <= TOUR_PLANNED_DAYS:
        return ActStatus.TOUR_PLANNED.value
    return fallback_status


class ActEnricher:
    """Compose metadata and event providers into a fully populated act."""

    def __init__(
        self,
        metadata_provider: IActMetadataProvider,
        event_provider: IEventSourceProvider,
    ) -> None:
        self._metadata = metadata_provider
        self._events = event_provider

    async def fetch_bandsintown_events(self, act: Act, silent_fail: bool = False) -> list[Event]:
        """Fetch and transform the events listed on *act*'s Bandsintown page.

        Returns ``[]`` for acts without a (valid) Bandsintown relation.  Fetch
        errors propagate unless *silent_fail* is set.
        """
        url = act.bandsintown_url
        if not url:
            return []
        if not _BANDSINTOWN_URL_RE.match(url):
            logger.error("invalid_bandsintown_url", act_id=act.musicbrainz_id, url=url)
            return []

        try:
            ld_json = await self._events.fetch_and_extract_ld_json(url)
        except Exception as exc:
            if not silent_fail:
                raise
            logger.warning(
                "bandsintown_fetch_failed_silently",
                act_id=act.musicbrainz_id,
                error=str(exc),
            )
            return []

        result = transform_events(ld_json)
        if result.rejected:
            logger.warning(
                "bandsintown_events_rejected",
                act_id=act.musicbrainz_id,
                rejected_count=len(result.rejected),
                reasons=sorted({r["reason"] for r in result.rejected}),
            )
        return result.events

    async def fetch_and_enrich(self, act_id: str, silent_event_fail: bool = False) -> Act:
        """Fetch, enrich and timestamp *act_id*.

        Metadata errors always propagate.  Event errors propagate unless
        *silent_event_fail* is set, in which case the act gets no events.
        """
        raw = await self._metadata.fetch_act(act_id)
        act = transform_act_data(raw)
        events = await self.fetch_bandsintown_events(act, silent_fail=silent_event_fail)
        status = determine_status(events, act.status)

        logger.info(
            "act_enriched",
            act_id=act_id,
            has_bandsintown=act.bandsintown_url is not None,
            has_songkick="songkick" in act.relations,
            event_count=len(events),
            final_status=status,
        )
        return act.model_copy(
            update={"events": events, "status": status, "updated_at": berlin_timestamp()}
        )
