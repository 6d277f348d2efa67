"""Tests for environment settings."""

import pytest

from herd.config.settings import Settings

HERD_VARS = (
    "HERD_CONCURRENCY",
    "HERD_RETRIES",
    "HERD_RETRY_DELAY",
    "HERD_TIMEOUT",
    "HERD_CONNECT_TIMEOUT",
    "HERD_USER",
    "HERD_KNOWN_HOSTS",
    "HERD_STRICT_HOST_KEY_CHECKING",
    "HERD_LOG_LEVEL",
    "HERD_LOG_COLORS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start every test without HERD_* variables."""
    for var in HERD_VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    """Defaults apply when nothing is set."""
    settings = Settings.from_env()
    assert settings.concurrency == 10
    assert settings.retries == 0
    assert settings.timeout == 30.0
    assert settings.connect_timeout is None
    assert settings.user == "root"
    assert settings.known_hosts is None
    assert settings.strict_host_key_checking is False
    assert settings.log_level == "WARNING"


def test_values_from_env(monkeypatch):
    """HERD_* variables override defaults."""
    monkeypatch.setenv("HERD_CONCURRENCY", "25")
    monkeypatch.setenv("HERD_RETRIES", "2")
    monkeypatch.setenv("HERD_TIMEOUT", "7.5")
    monkeypatch.setenv("HERD_CONNECT_TIMEOUT", "3")
    monkeypatch.setenv("HERD_USER", "deploy")
    monkeypatch.setenv("HERD_STRICT_HOST_KEY_CHECKING", "yes")
    monkeypatch.setenv("HERD_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.concurrency == 25
    assert settings.retries == 2
    assert settings.timeout == 7.5
    assert settings.connect_timeout == 3.0
    assert settings.user == "deploy"
    assert settings.strict_host_key_checking is True
    assert settings.log_level == "DEBUG"


def test_invalid_numbers_fall_back(monkeypatch, caplog):
    """Unparseable values log a warning and keep the default."""
    monkeypatch.setenv("HERD_CONCURRENCY", "lots")
    monkeypatch.setenv("HERD_TIMEOUT", "soon")

    settings = Settings.from_env()

    assert settings.concurrency == 10
    assert settings.timeout == 30.0
    assert "Invalid int for HERD_CONCURRENCY" in caplog.text
