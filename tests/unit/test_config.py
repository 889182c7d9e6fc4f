"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from cratedigger.config.loader import load_settings
from cratedigger.config.settings import Settings
from cratedigger.utils.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run from an empty directory so no .env file or stray env var leaks in."""
    monkeypatch.chdir(tmp_path)
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.similar_artist_limit == 10
        assert settings.provider_timeout_ms == 30000
        assert settings.min_similarity == 0.3
        assert settings.max_consecutive_empty_fetches == 5
        assert settings.retry_max_attempts == 3
        assert settings.lastfm_retry_max_attempts == 2
        assert settings.is_subsonic_configured() is False

    def test_ttl_in_ms(self) -> None:
        assert Settings(similarity_cache_ttl_days=2).similarity_cache_ttl_ms() == 172_800_000

    def test_env_var_maps_to_field(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LASTFM_API_KEY", "abc123")
        assert Settings().lastfm_api_key == "abc123"


class TestLoadSettings:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nope.yaml")
        assert settings.albums_per_artist == 3

    def test_sections_are_flattened(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            """
catalog_discovery:
  enabled: false
  similar_artist_limit: 25
subsonic:
  host: http://navidrome:4533
  username: digger
log_level: DEBUG
""",
        )
        settings = load_settings(path)

        assert settings.catalog_discovery_enabled is False
        assert settings.similar_artist_limit == 25
        assert settings.subsonic_host == "http://navidrome:4533"
        assert settings.is_subsonic_configured() is True
        assert settings.log_level == "DEBUG"

    def test_environment_beats_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "catalog_discovery:\n  similar_artist_limit: 25\n")
        monkeypatch.setenv("SIMILAR_ARTIST_LIMIT", "40")

        assert load_settings(path).similar_artist_limit == 40

    def test_unknown_keys_are_ignored(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "mystery: 1\nlastfm:\n  colour: blue\n")
        assert load_settings(path).lastfm_api_key == ""

    def test_wrong_type_raises_configuration_error(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "catalog_discovery:\n  similar_artist_limit: lots\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_unparseable_yaml(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "catalog_discovery: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_shipped_config_loads(self) -> None:
        shipped = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        settings = load_settings(shipped)
        assert settings.approval_mode in ("manual", "auto")
