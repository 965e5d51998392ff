"""Shape raw MusicBrainz artist records into :class:`Act` models.

Accepts the artist dict returned by ``musicbrainzngs.get_artist_by_id``
(``url-relation-list`` entries carry a ``target`` URL) as well as the
web-service JSON shape (``relations`` entries carry ``url.resource``).
"""

from __future__ import annotations

import re
from typing import Any

from src.models.act import Act, ActStatus

_SOCIAL_PLATFORM_RE = re.compile(r"(twitter|facebook|instagram|tiktok)\.com")

# Relation types that are noise for a tour/status view.
_EXCLUDED_TYPES = frozenset(
    {"free streaming", "streaming", "purchase for download", "other databases"}
)


def detect_social_platform(url: str) -> str | None:
    """Return ``"twitter"``/``"facebook"``/... for major social URLs, else ``None``."""
    match = _SOCIAL_PLATFORM_RE.search(url)
    return match.group(1) if match else None


def _relation_url(relation: dict[str, Any]) -> str | None:
    if relation.get("target"):
        return relation["target"]
    url = relation.get("url") or {}
    return url.get("resource") if isinstance(url, dict) else None


def transform_relations(raw_relations: list[dict[str, Any]]) -> dict[str, str]:
    relations: dict[str, str] = {}
    for relation in raw_relations:
        rel_type = (relation.get("type") or "").strip()
        url = _relation_url(relation)
        if not rel_type or not url or rel_type in _EXCLUDED_TYPES:
            continue

        if rel_type == "social network":
            platform = detect_social_platform(url)
            if platform:
                relations[platform] = url
            continue

        key = re.sub(r"[ .]", "", rel_type.lower())
        relations[key] = url
    return relations


def _is_ended(life_span: dict[str, Any]) -> bool:
    if life_span.get("end"):
        return True
    ended = life_span.get("ended")
    return ended is True or str(ended).lower() == "true"


def _area_name(raw: dict[str, Any], key: str) -> str | None:
    area = raw.get(key)
    return area.get("name") if isinstance(area, dict) else None


def transform_act_data(raw: dict[str, Any]) -> Act:
    """Transform a raw MusicBrainz artist record into an :class:`Act`.

    ``status`` is ``"disbanded"`` when the life-span has an end date or is
    flagged as ended, ``"active"`` otherwise.  ``events`` and ``updatedAt``
    are left for the enrichment pipeline to fill in.
    """
    raw_relations = raw.get("url-relation-list") or raw.get("relations") or []
    status = ActStatus.DISBANDED if _is_ended(raw.get("life-span") or {}) else ActStatus.ACTIVE

    return Act(
        musicbrainz_id=raw["id"],
        name=raw.get("name", ""),
        country=_area_name(raw, "area"),
        region=_area_name(raw, "begin-area"),
        disambiguation=raw.get("disambiguation") or None,
        status=status.value,
        relations=transform_relations(raw_relations),
    )
