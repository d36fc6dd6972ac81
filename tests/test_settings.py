"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from helpdesk.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run each test away from any local .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("ENVIRONMENT", "DEFAULT_CONFIDENCE_THRESHOLD", "KB_ARTICLE_LIMIT", "TRIAGE_ON_CREATE"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    """Test the triage fallbacks."""
    settings = Settings()
    assert settings.default_auto_close_enabled is True
    assert settings.default_confidence_threshold == 0.78
    assert settings.kb_article_limit == 3
    assert settings.triage_on_create is True


def test_environment_overrides(monkeypatch):
    """Test that environment variables are override the defaults."""
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("DEFAULT_CONFIDENCE_THRESHOLD", "0.5")
    monkeypatch.setenv("TRIAGE_ON_CREATE", "false")

    settings = Settings()

    assert settings.environment == "production"
    assert settings.default_confidence_threshold == 0.5
    assert settings.triage_on_create is False


@pytest.mark.parametrize("name,value", [
    ("ENVIRONMENT", "local"),
    ("DEFAULT_CONFIDENCE_THRESHOLD", "1.5"),
    ("KB_ARTICLE_LIMIT", "0"),
])
def test_invalid_values(monkeypatch, name, value):
    """Test that out-of-range values are rejected."""
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        Settings()
