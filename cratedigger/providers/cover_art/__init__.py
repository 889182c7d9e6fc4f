"""Cover-art lookup implementations."""

from cratedigger.providers.cover_art.cover_art_archive_provider import CoverArtArchiveProvider

__all__ = ["CoverArtArchiveProvider"]
