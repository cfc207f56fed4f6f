"""Tests for configuration loading and logging setup."""

import logging

from smack_talk.core.logging import setup_logging
from smack_talk.core.settings import DEFAULT_TRUSTED_MEDIA_DOMAINS, Settings


def test_defaults() -> None:
    config = Settings()
    assert config.reaction_horizon_seconds == 30.0
    assert config.reaction_tick_seconds == 1.0
    assert config.guest_display_name == "Guest"
    assert config.trusted_media_domains == DEFAULT_TRUSTED_MEDIA_DOMAINS


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("REACTION_HORIZON_SECONDS", "10")
    monkeypatch.setenv("CHAT_CHANNEL", "/default/bulls-lakers")
    monkeypatch.setenv("TRUSTED_MEDIA_DOMAINS", '["example.org"]')

    config = Settings()

    assert config.reaction_horizon_seconds == 10.0
    assert config.chat_channel == "/default/bulls-lakers"
    assert config.trusted_media_domains == ["example.org"]


def test_setup_logging_sets_root_level() -> None:
    root = logging.getLogger()
    previous = root.level
    try:
        setup_logging("debug")
        assert root.level == logging.DEBUG
        setup_logging("not-a-level")
        assert root.level == logging.INFO
    finally:
        root.setLevel(previous)
