"""Tests for configuration module."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.core.config import AnalysisConfig, Settings, load_analysis_config


def test_settings_defaults(monkeypatch):
    """Settings have sensible defaults."""
    for var in ("GROQ_API_KEY", "PERPLEXITY_API_KEY", "OPENAI_API_KEY", "TIGER_DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)

    s = Settings(_env_file=None)

    assert s.groq_api_key is None
    assert s.tiger_database_url is None
    assert s.llm_provider is None
    assert s.port == 8000


def test_settings_from_env(monkeypatch):
    """Provider flags are read from environment variables."""
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    monkeypatch.setenv("TIGER_DATABASE_URL", "postgres://tiger")
    monkeypatch.setenv("DEBUG", "true")

    s = Settings(_env_file=None)

    assert s.groq_api_key == "gsk-test"
    assert s.tiger_database_url == "postgres://tiger"
    assert s.debug


def test_settings_validation():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, port=70000)


def test_global_settings_available():
    from src.core.config import analysis_config, settings

    assert settings is not None
    assert isinstance(analysis_config, AnalysisConfig)


class TestAnalysisConfig:
    """Tests for analysis_config.yaml loading."""

    def test_defaults(self):
        config = AnalysisConfig()

        assert config.progress.tick_interval_seconds == 1.0
        assert config.progress.increment == 0.56
        assert config.progress.real_stage_authoritative is False
        assert config.retention.enabled is True

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_analysis_config(tmp_path / "absent.yaml") == AnalysisConfig()

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "analysis_config.yaml"
        path.write_text("")

        assert load_analysis_config(path) == AnalysisConfig()

    def test_loads_overrides(self, tmp_path):
        path = tmp_path / "analysis_config.yaml"
        path.write_text(
            "progress:\n"
            "  tick_interval_seconds: 0.5\n"
            "  real_stage_authoritative: true\n"
            "retention:\n"
            "  max_age_seconds: 60\n"
        )

        config = load_analysis_config(path)

        assert config.progress.tick_interval_seconds == 0.5
        assert config.progress.increment == 0.56
        assert config.progress.real_stage_authoritative is True
        assert config.retention.max_age_seconds == 60

    def test_rejects_invalid_values(self, tmp_path):
        path = tmp_path / "analysis_config.yaml"
        path.write_text("progress:\n  increment: 0\n")

        with pytest.raises(ValidationError):
            load_analysis_config(path)

    def test_repository_config_matches_defaults(self):
        repo_config = Path(__file__).resolve().parents[2] / "config" / "analysis_config.yaml"

        assert load_analysis_config(repo_config) == AnalysisConfig()

    def test_logging_section(self, tmp_path):
        path = tmp_path / "analysis_config.yaml"
        path.write_text("logging:\n  level: debug\n  runs_to_keep: 2\n")

        config = load_analysis_config(path)

        assert config.logging.level == "DEBUG"
        assert config.logging.runs_to_keep == 2
        assert config.logging.quiet_loggers == ["httpx", "httpcore"]

    def test_rejects_unknown_log_level(self, tmp_path):
        path = tmp_path / "analysis_config.yaml"
        path.write_text("logging:\n  level: chatty\n")

        with pytest.raises(ValidationError):
            load_analysis_config(path)
