"""Berlin-local timestamps and the cache staleness predicate.

Cached acts carry an ``updatedAt`` string such as
``"2025-01-15 14:30:00+01:00"`` (Europe/Berlin, offset included so CET/CEST
transitions compare correctly).  Older documents may lack the offset; those
are read as Berlin local time.  A missing or unparseable value always counts
as stale so the record gets refreshed.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

BERLIN_TZ = ZoneInfo("Europe/Berlin")

STALENESS_THRESHOLD = timedelta(hours=24)


def berlin_timestamp(now: datetime | None = None) -> str:
    """Return *now* (default: current time) as ``YYYY-MM-DD HH:MM:SS+HH:MM`` in Berlin."""
    moment = now or datetime.now(BERLIN_TZ)
    return moment.astimezone(BERLIN_TZ).isoformat(sep=" ", timespec="seconds")


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ``updatedAt`` value into an aware datetime, or ``None``."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=BERLIN_TZ)
    return parsed


def is_stale(
    updated_at: Any,
    now: datetime | None = None,
    threshold: timedelta = STALENESS_THRESHOLD,
) -> bool:
    """Return ``True`` when *updated_at* is at least *threshold* old.

    Exactly *threshold* counts as stale.
    """
    parsed = parse_timestamp(updated_at)
    if parsed is None:
        return True
    current = now or datetime.now(BERLIN_TZ)
    return current - parsed >= threshold


def is_act_stale(
    act: Any,
    now: datetime | None = None,
    threshold: timedelta = STALENESS_THRESHOLD,
) -> bool:
    """Staleness check for an act model or a raw cache document."""
    if isinstance(act, Mapping):
        updated_at = act.get("updatedAt", act.get("updated_at"))
    else:
        updated_at = getattr(act, "updated_at", None)
    return is_stale(updated_at, now=now, threshold=threshold)
