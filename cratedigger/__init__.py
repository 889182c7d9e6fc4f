"""CrateDigger: music discovery from library similarity and ListenBrainz."""

__version__ = "0.1.0"
