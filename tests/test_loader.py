"""Tests for build config loading (buildsystem/loader.py)."""

from pathlib import Path

import pytest

from buildsystem import config as settings
from buildsystem.loader import (
    DEFAULT_TEMPERATURE,
    BuildConfig,
    load_build_config,
    parse_build_config,
)

PROJECT_ROOT = Path(__file__).parent.parent


def write_yaml(tmp_path, text: str) -> str:
    path = tmp_path / "build.yaml"
    path.write_text(text)
    return str(path)


class TestLoadBuildConfig:

    def test_no_path_gives_defaults(self):
        config = load_build_config()

        assert config == BuildConfig()
        assert config.project_name == settings.DEFAULT_PROJECT_NAME
        assert config.max_concurrency == settings.BATCH_CONCURRENCY

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_build_config(str(tmp_path / "nope.yaml"))

    def test_example_config(self):
        config = load_build_config(str(PROJECT_ROOT / "config" / "build.yaml"))

        assert config.project_name == "Cybersecurity Portfolio"
        assert config.platform == "web"
        assert config.provider == "openai"
        assert config.max_concurrency == 5
        assert config.request_timeout == 120.0
        assert config.get_temperature("op:UX:SMS:LEVEL2") == 0.4

    def test_full_file(self, tmp_path):
        path = write_yaml(
            tmp_path,
            """
project:
  name: Banking App
  platform: ios
generation:
  provider: llm_server
  model: llama3
  max_concurrency: 2
  request_timeout: 30
temperatures:
  "op:UX:SMS": 0.1
""",
        )

        config = load_build_config(path)

        assert config.project_name == "Banking App"
        assert config.platform == "ios"
        assert config.provider == "llm_server"
        assert config.model == "llama3"
        assert config.max_concurrency == 2
        assert config.request_timeout == 30.0
        assert config.temperatures == {"op:UX:SMS": 0.1}

    def test_empty_file(self, tmp_path):
        assert load_build_config(write_yaml(tmp_path, "")) == BuildConfig()


class TestParseBuildConfig:

    def test_zero_timeout_disables_deadline(self):
        config = parse_build_config({"generation": {"request_timeout": 0}})

        assert config.request_timeout is None

    @pytest.mark.parametrize("value", [0, -1])
    def test_invalid_concurrency(self, value):
        with pytest.raises(ValueError):
            parse_build_config({"generation": {"max_concurrency": value}})

    def test_temperature_default(self):
        config = parse_build_config({"temperatures": {"op:UX:SMS": "0.25"}})

        assert config.get_temperature("op:UX:SMS") == 0.25
        assert config.get_temperature("op:UX:SMS:LEVEL2") == DEFAULT_TEMPERATURE

    def test_global_config(self):
        config = parse_build_config(
            {"project": {"name": "Portfolio", "platform": "android"}, "generation": {"model": "m"}}
        )

        assert config.global_config() == {
            "projectName": "Portfolio",
            "platform": "android",
            "model": "m",
        }

    def test_config_is_frozen(self):
        config = BuildConfig()

        with pytest.raises(AttributeError):
            config.project_name = "Other"


class TestEnvironmentHelpers:

    def test_get_int(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "7")

        assert settings.get_int("TEST_INT", 1) == 7

    def test_get_int_invalid_falls_back(self, monkeypatch, capsys):
        monkeypatch.setenv("TEST_INT", "seven")

        assert settings.get_int("TEST_INT", 1) == 1
        assert "Invalid TEST_INT" in capsys.readouterr().out

    def test_get_float(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT", "2.5")

        assert settings.get_float("TEST_FLOAT", 1.0) == 2.5
        assert settings.get_float("UNSET_TEST_FLOAT", 1.0) == 1.0
