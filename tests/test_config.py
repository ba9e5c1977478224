"""Configuration — verifies env-driven settings and programmatic overrides.

Tests cover:
    - STATELESS_RECORDS_SECRET read from the environment
    - Blank secrets treated as unset
    - configure() overrides win; reset_configuration() restores env settings
    - default_cipher() follows the current secret
"""

import pytest

from stateless_records.config import (
    configure, current_settings, default_cipher, get_settings, reset_configuration,
)
from stateless_records.core.errors import ConfigurationError


def test_secret_read_from_environment(monkeypatch):
    monkeypatch.setenv("STATELESS_RECORDS_SECRET", "from-env")
    reset_configuration()
    assert current_settings().secret == "from-env"


def test_blank_secret_is_unset(monkeypatch):
    monkeypatch.setenv("STATELESS_RECORDS_SECRET", "   ")
    reset_configuration()
    assert get_settings().secret is None


def test_defaults_for_observability(monkeypatch):
    monkeypatch.delenv("STATELESS_RECORDS_LOG_LEVEL", raising=False)
    monkeypatch.delenv("STATELESS_RECORDS_LOG_FORMAT", raising=False)
    settings = configure(secret="x")
    assert settings.log_level == "INFO"
    assert settings.log_format == "json"


def test_configure_overrides_environment(monkeypatch):
    monkeypatch.setenv("STATELESS_RECORDS_SECRET", "from-env")
    configure(secret="from-code")
    assert current_settings().secret == "from-code"


def test_default_cipher_follows_current_secret():
    token = default_cipher().encrypt(b"clear")
    configure(secret="rotated")
    assert default_cipher().encrypt(b"clear") != token


def test_default_cipher_without_secret_fails_on_use(monkeypatch):
    monkeypatch.delenv("STATELESS_RECORDS_SECRET", raising=False)
    reset_configuration()
    cipher = default_cipher()
    with pytest.raises(ConfigurationError):
        cipher.encrypt(b"clear")
