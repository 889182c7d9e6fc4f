"""Library-server provider implementations."""

from cratedigger.providers.library.subsonic_provider import SubsonicLibraryProvider

__all__ = ["SubsonicLibraryProvider"]
