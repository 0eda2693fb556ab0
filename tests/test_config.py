import pytest

from valorbot.config import Settings, _parse_role_list_env
from valorbot.errors import ConfigError


def test_valid_settings_pass():
    Settings(discord_token="x", event_channel_id=123).validate()


def test_missing_token_and_channel_are_fatal():
    with pytest.raises(ConfigError) as exc:
        Settings(discord_token="", event_channel_id=None).validate()
    assert "DISCORD_TOKEN" in str(exc.value)
    assert "EVENT_CHANNEL_ID" in str(exc.value)


def test_history_page_size_capped_at_discord_limit():
    with pytest.raises(ConfigError):
        Settings(discord_token="x", event_channel_id=1, history_page_size=101).validate()


def test_role_list_parsing(monkeypatch):
    monkeypatch.setenv("ADMIN_ROLE_IDS", "[111, 222, nope,]")
    assert _parse_role_list_env("ADMIN_ROLE_IDS") == [111, 222]
    monkeypatch.setenv("ADMIN_ROLE_IDS", "")
    assert _parse_role_list_env("ADMIN_ROLE_IDS") == []
