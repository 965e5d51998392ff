"""Pydantic v2 models for cached acts and their tour events.

An :class:`Act` is the cached unit: MusicBrainz-derived fields plus the
Bandsintown events scraped for it and the Berlin-local ``updatedAt`` stamp
that drives staleness.  Events are derived data -- they are rebuilt from the
source page on every refresh and never edited in place.

JSON field names follow the public API (``musicbrainzId``, ``localTime``,
``updatedAt``); Python attributes use snake_case.  In MongoDB the act id is
stored as ``_id`` (see :meth:`Act.to_document` / :meth:`Act.from_document`).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ActStatus(str, Enum):  # noqa: UP042 StrEnum requires Python 3.11+
    """Known act status values.

    ACTIVE / DISBANDED come from MusicBrainz life-span data; ON_TOUR and
    TOUR_PLANNED override them when upcoming events are close enough.
    """

    ACTIVE = "active"
    DISBANDED = "disbanded"
    ON_TOUR = "on tour"
    TOUR_PLANNED = "tour planned"


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float


class EventLocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str | None = None
    geo: GeoPoint | None = None


class Event(BaseModel):
    """A single upcoming (or just-past) show scraped from Bandsintown."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    date: str = Field(default="", description="YYYY-MM-DD, empty when unparseable.")
    local_time: str = Field(default="", alias="localTime", description="HH:MM:SS or empty.")
    location: EventLocation = Field(default_factory=EventLocation)


class Act(BaseModel):
    """A cached musical act.

    ``extra="allow"`` keeps fields written by older versions of the service
    intact when a document is read and re-served.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    musicbrainz_id: str = Field(alias="musicbrainzId")
    name: str = ""
    country: str | None = None
    region: str | None = None
    disambiguation: str | None = None
    status: str = ActStatus.ACTIVE.value
    relations: dict[str, str] = Field(default_factory=dict)
    events: list[Event] = Field(default_factory=list)
    updated_at: str | None = Field(default=None, alias="updatedAt")

    @property
    def bandsintown_url(self) -> str | None:
        return self.relations.get("bandsintown") or None

    def to_api(self) -> dict[str, Any]:
        """Serialize with public JSON field names."""
        return self.model_dump(by_alias=True, mode="json")

    def to_document(self) -> dict[str, Any]:
        """Serialize for MongoDB, storing the act id as ``_id``."""
        document = self.model_dump(by_alias=True, mode="json", exclude={"musicbrainz_id"})
        document["_id"] = self.musicbrainz_id
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Act:
        data = dict(document)
        if "_id" in data:
            data["musicbrainzId"] = data.pop("_id")
        return cls.model_validate(data)


class ActsLookupError(BaseModel):
    """Error payload of a bulk lookup that could not return every act."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    message: str
    missing_count: int | None = Field(default=None, alias="missingCount")
    cached_count: int | None = Field(default=None, alias="cachedCount")


class ActsLookupResult(BaseModel):
    """Outcome of :meth:`ActService.get_acts`: either ``acts`` or ``error``."""

    model_config = ConfigDict(frozen=True)

    acts: list[Act] | None = None
    error: ActsLookupError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
