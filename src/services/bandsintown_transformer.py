"""Transform Bandsintown LD+JSON ``MusicEvent`` blocks into :class:`Event` models.

Only items that are ``MusicEvent``s, carry a name, and start no earlier
than two calendar days ago (UTC) survive.  Everything else is reported as a
rejection with a machine-readable reason so broken upstream data shows up in
the logs instead of silently vanishing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from src.models.act import Event, EventLocation, GeoPoint

_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})")
_TIME_RE = re.compile(r"T(\d{2}:\d{2}:\d{2})")

_RANGE_DAYS = 2


@dataclass
class TransformResult:
    """Accepted events plus a description of every rejected item."""

    events: list[Event] = field(default_factory=list)
    rejected: list[dict[str, Any]] = field(default_factory=list)


def extract_date(start_date: Any) -> str:
    """``"2025-11-25T18:00:00"`` -> ``"2025-11-25"``; ``""`` when invalid."""
    if not isinstance(start_date, str):
        return ""
    match = _DATE_RE.match(start_date)
    return match.group(1) if match else ""


def extract_local_time(start_date: Any) -> str:
    """``"2025-11-25T18:00:00"`` -> ``"18:00:00"``; ``""`` when absent."""
    if not isinstance(start_date, str):
        return ""
    match = _TIME_RE.search(start_date)
    return match.group(1) if match else ""


def build_address(address: Any) -> str | None:
    """Join the PostalAddress parts that are present with ``", "``."""
    if not isinstance(address, dict):
        return None
    parts = [
        address.get("streetAddress"),
        address.get("postalCode"),
        address.get("addressLocality"),
        address.get("addressCountry"),
    ]
    present = [str(part) for part in parts if part]
    return ", ".join(present) if present else None


def extract_geo(location: Any) -> GeoPoint | None:
    if not isinstance(location, dict) or not isinstance(location.get("geo"), dict):
        return None
    latitude = location["geo"].get("latitude")
    longitude = location["geo"].get("longitude")
    # bool is an int subclass; reject it explicitly
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (latitude, longitude)):
        return None
    return GeoPoint(lat=latitude, lon=longitude)


def transform_event(item: dict[str, Any]) -> Event:
    location = item.get("location")
    address = location.get("address") if isinstance(location, dict) else None
    return Event(
        name=item["name"],
        date=extract_date(item.get("startDate")),
        local_time=extract_local_time(item.get("startDate")),
        location=EventLocation(address=build_address(address), geo=extract_geo(location)),
    )


def _utc_event_date(start_date: str) -> date | None:
    try:
        parsed = datetime.fromisoformat(start_date)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def is_event_within_range(start_date: Any, today: date | None = None) -> bool:
    """Return ``True`` if the event starts on or after UTC today minus two days."""
    if not isinstance(start_date, str) or not start_date:
        return False
    event_day = _utc_event_date(start_date)
    if event_day is None:
        return False
    current = today or datetime.now(timezone.utc).date()
    return event_day >= current - timedelta(days=_RANGE_DAYS)


def _categorize(item: Any, today: date | None) -> tuple[Event | None, dict[str, Any] | None]:
    if not isinstance(item, dict):
        return None, {"reason": "wrong_type", "type": type(item).__name__, "name": "unknown"}

    name = item.get("name") or "unknown"
    if item.get("@type") != "MusicEvent":
        return None, {"reason": "wrong_type", "type": item.get("@type"), "name": name}
    if not is_event_within_range(item.get("startDate"), today):
        return None, {"reason": "date_out_of_range", "date": item.get("startDate"), "name": name}
    if not item.get("name"):
        return None, {"reason": "missing_name", "date": item.get("startDate")}
    return transform_event(item), None


def transform_events(ld_json_data: Any, today: date | None = None) -> TransformResult:
    """Split *ld_json_data* into accepted events and rejections.

    Non-list input yields an empty result.  Accepted events keep source order.
    """
    result = TransformResult()
    if not isinstance(ld_json_data, list):
        return result

    for item in ld_json_data:
        event, rejection = _categorize(item, today)
        if event is not None:
            result.events.append(event)
        elif rejection is not None:
            result.rejected.append(rejection)
    return result
