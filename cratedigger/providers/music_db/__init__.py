"""Music-database provider implementations."""

from cratedigger.providers.music_db.musicbrainz_provider import MusicBrainzProvider

__all__ = ["MusicBrainzProvider"]
