"""Tests for settings validation."""

import pytest

from cannamap.core.config import Settings, validate_settings


def test_database_url_sync_uses_psycopg():
    settings = Settings(database_url="postgresql://u:p@db:5432/cannamap")
    assert settings.database_url_sync.startswith("postgresql+psycopg://")


def test_rate_limit_follows_env_unless_set():
    assert Settings(env="development").is_rate_limit_enabled is False
    assert Settings(env="production").is_rate_limit_enabled is True
    assert Settings(env="development", rate_limit_enabled=True).is_rate_limit_enabled is True


def test_negative_retry_settings_rejected():
    with pytest.raises(SystemExit):
        validate_settings(Settings(vote_store_max_retries=-1))


def test_insecure_production_settings_rejected():
    with pytest.raises(SystemExit):
        validate_settings(Settings(env="production", cors_origins="*"))


def test_development_defaults_accepted():
    validate_settings(Settings(env="development"))
