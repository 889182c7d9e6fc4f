"""Application settings loaded from environment variables via pydantic-settings.

pydantic-settings reads configuration from two sources (highest priority
first):

  1. **Environment variables**, e.g. ``LASTFM_API_KEY=abc123``
  2. **.env file** in the working directory (local development)

Field ``lastfm_api_key`` maps to env var ``LASTFM_API_KEY``.  Defaults apply
when neither source sets a field.  :func:`cratedigger.config.loader.load_settings`
adds ``config/config.yaml`` as a third, lower-priority layer.

An empty credential means "not configured": the composition root skips the
corresponding provider instead of failing.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """CrateDigger application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Catalog Discovery ===
    catalog_discovery_enabled: bool = True
    similar_artist_limit: int = 10
    provider_timeout_ms: int = 30000
    similarity_cache_ttl_days: int = 30  # 0 bypasses the cache
    min_similarity: float = 0.3
    max_artists_per_run: int = 10
    albums_per_artist: int = 3
    approval_mode: str = "manual"  # "manual" | "auto"
    max_consecutive_empty_fetches: int = 5

    # === Rate Limiting / Retry ===
    rate_limit_delay_seconds: float = 1.0  # MusicBrainz allows 1 req/s
    cover_art_delay_seconds: float = 0.5
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 2000
    lastfm_retry_max_attempts: int = 2

    # === Similarity Providers ===
    lastfm_api_key: str = ""
    listenbrainz_similarity_enabled: bool = True

    # === Music Database ===
    musicbrainz_app_name: str = "cratedigger"
    musicbrainz_app_version: str = "0.1.0"
    musicbrainz_contact: str = ""

    # === Library Server (Subsonic API) ===
    subsonic_host: str = ""
    subsonic_username: str = ""
    subsonic_password: str = ""

    # === ListenBrainz Recommendations ===
    listenbrainz_username: str = ""
    listenbrainz_token: str = ""
    listenbrainz_source_type: str = "weekly_playlist"  # "weekly_playlist" | "collaborative"
    listenbrainz_approval_mode: str = "manual"
    recommendation_mode: str = "album"  # "album" | "track"
    fetch_count: int = 100
    min_score: float = 0.0

    # === Storage ===
    catalog_db_path: str = "data/catalog.db"
    queue_db_path: str = "data/queue.db"

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def is_subsonic_configured(self) -> bool:
        return bool(self.subsonic_host and self.subsonic_username)

    def similarity_cache_ttl_ms(self) -> int:
        return self.similarity_cache_ttl_days * 24 * 60 * 60 * 1000
