"""Unit tests for Settings and the YAML configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import load_config, load_settings
from src.config.settings import Settings

_YAML = """\
mongodb:
  database: from_yaml
cache:
  cycle_interval_seconds: 600
  retry_delay_seconds: 5
app:
  port: 8080
unknown_section:
  whatever: 1
"""


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(_YAML)
    return path


class TestLoadConfig:
    def test_flattens_sections_to_field_names(self, config_file: Path) -> None:
        config = load_config(str(config_file))

        assert config == {
            "mongodb_database": "from_yaml",
            "cache_cycle_interval_seconds": 600,
            "cache_retry_delay_seconds": 5,
            "app_port": 8080,
        }

    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config(str(tmp_path / "nope.yaml")) == {}

    def test_empty_file_is_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(str(path)) == {}


class TestLoadSettings:
    def test_yaml_values_apply(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("APP_PORT", raising=False)
        monkeypatch.delenv("MONGODB_DATABASE", raising=False)

        settings = load_settings(str(config_file))

        assert settings.app_port == 8080
        assert settings.mongodb_database == "from_yaml"
        assert settings.cache_cycle_interval_seconds == 600

    def test_environment_beats_yaml(
        self, config_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("APP_PORT", "9000")

        assert load_settings(str(config_file)).app_port == 9000

    def test_keyword_overrides_beat_everything(
        self, config_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("APP_PORT", "9000")

        assert load_settings(str(config_file), app_port=1234).app_port == 1234


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("MONGODB_URI", "DB_TIMEOUT_SECONDS", "STALENESS_THRESHOLD_HOURS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.db_timeout_seconds == 0.5
        assert settings.staleness_threshold_hours == 24
        assert settings.uses_memory_store() is True

    def test_user_agent(self) -> None:
        settings = Settings(
            musicbrainz_app_name="App", musicbrainz_app_version="1.2", musicbrainz_contact="me"
        )
        assert settings.user_agent == "App/1.2 (me)"

    def test_mongodb_uri_selects_mongo(self) -> None:
        assert Settings(mongodb_uri="mongodb://db:27017").uses_memory_store() is False
