"""Act metadata providers.

MusicBrainzProvider looks up one artist by MBID (with URL relations) through
musicbrainzngs.  Rate limit: 1 req/sec, shared by client requests and the
background refresh workers.
"""

from src.providers.music_db.musicbrainz_provider import MusicBrainzProvider

__all__ = ["MusicBrainzProvider"]
