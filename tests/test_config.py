from __future__ import annotations

import pytest

from guildvault.config import load_settings

KEYS = [
    "DISCORD_TOKEN", "SYNC_GUILD_ID", "OWNER_ID", "SQLITE_PATH", "LOG_LEVEL",
    "BACKUP_MAX_MESSAGES", "RESTORE_MAX_MESSAGES", "RESTORE_CLEAR_GUILD",
    "BACKUP_IMAGE_MODE", "API_CALL_TIMEOUT", "RELAY_WEBHOOK_NAME", "CACHE_TTL_SECONDS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in KEYS:
        monkeypatch.delenv(key, raising=False)


def test_token_is_required():
    with pytest.raises(RuntimeError):
        load_settings()


def test_defaults(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "t")
    settings = load_settings()
    assert settings.capture_max_messages == 10
    assert settings.restore_max_messages == 100
    assert settings.restore_clear_guild is True
    assert settings.capture_image_mode == "url"
    assert settings.call_timeout_seconds == 30.0
    assert settings.relay_webhook_name == "MessagesBackup"
    assert settings.owner_id == 0


def test_overrides_and_bad_values(monkeypatch):
    monkeypatch.setenv("DISCORD_TOKEN", "t")
    monkeypatch.setenv("RESTORE_CLEAR_GUILD", "no")
    monkeypatch.setenv("RESTORE_MAX_MESSAGES", "25")
    monkeypatch.setenv("BACKUP_MAX_MESSAGES", "lots")
    monkeypatch.setenv("BACKUP_IMAGE_MODE", "INLINE")
    monkeypatch.setenv("API_CALL_TIMEOUT", "2.5")
    settings = load_settings()
    assert settings.restore_clear_guild is False
    assert settings.restore_max_messages == 25
    assert settings.capture_max_messages == 10
    assert settings.capture_image_mode == "inline"
    assert settings.call_timeout_seconds == 2.5
