"""Settings tests — env loading and production checks."""

import pytest
from pydantic import ValidationError

from devportal.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.is_development
    assert settings.listen_port == 3002


def test_env_prefix_and_instance_offset(monkeypatch):
    monkeypatch.setenv("DEVPORTAL_PORT", "4000")
    monkeypatch.setenv("DEVPORTAL_INSTANCE_ID", "3")
    monkeypatch.setenv("DEVPORTAL_ENVIRONMENT", "production")
    settings = Settings(_env_file=None)
    assert settings.listen_port == 4003
    assert not settings.is_development


def test_production_requires_provider_secret():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, environment="production", github_client_id="abc")

    # Development tolerates a half-configured provider.
    Settings(_env_file=None, environment="development", github_client_id="abc")


def test_store_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, store_timeout_seconds=0)
