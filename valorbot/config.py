# valorbot/config.py
"""
Configuration and tuning knobs for the valor bot.

Everything comes from the environment (a local `.env` is loaded first), so a
deployment only needs:

    DISCORD_TOKEN=...
    EVENT_CHANNEL_ID=123456789012345678
    ADMIN_ROLE_IDS=111,222
    MANAGE_VALOR_ROLE_IDS=333

Older deployments kept the same values in config.json (token, eventChannelId,
adminRoleIds, manageValorRoleIds); the names above map one to one.
"""
from __future__ import annotations
import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

from .errors import ConfigError


load_dotenv()

def _get_env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}

def _get_env_id(key: str) -> int | None:
    try:
        return int(os.getenv(key, "0") or "0") or None
    except ValueError:
        return None

def _parse_role_list_env(key: str) -> list[int]:
    """Parse "111,222" or "[111, 222]" into ints, dropping anything non-numeric."""
    raw = (os.getenv(key, "") or "").strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1]
    out: list[int] = []
    for t in (s.strip() for s in raw.split(",")):
        if t.isdigit():
            out.append(int(t))
    return out


@dataclass
class Settings:
    # Discord
    discord_token: str = os.getenv("DISCORD_TOKEN", "")
    command_prefix: str = os.getenv("COMMAND_PREFIX", "!")
    guild_id: int | None = field(default_factory=lambda: _get_env_id("GUILD_ID"))
    event_channel_id: int | None = field(default_factory=lambda: _get_env_id("EVENT_CHANNEL_ID"))
    activity_name: str = os.getenv("ACTIVITY_NAME", "Roblox")

    # Roles allowed to run /update and /add, /remove
    admin_role_ids: list[int] = field(default_factory=lambda: _parse_role_list_env("ADMIN_ROLE_IDS"))
    manage_valor_role_ids: list[int] = field(default_factory=lambda: _parse_role_list_env("MANAGE_VALOR_ROLE_IDS"))

    # Snapshot file (valorData.json layout)
    data_path: str = os.getenv("VALOR_DATA_PATH", "./valorData.json")

    # Leaderboard
    leaderboard_page_size: int = int(os.getenv("LEADERBOARD_PAGE_SIZE", "10"))

    # History replay
    history_page_size: int = int(os.getenv("HISTORY_PAGE_SIZE", "100"))  # Discord caps at 100
    history_fetch_retries: int = int(os.getenv("HISTORY_FETCH_RETRIES", "3"))
    history_retry_delay: float = float(os.getenv("HISTORY_RETRY_DELAY", "2.0"))
    replay_on_startup: bool = field(default_factory=lambda: _get_env_bool("REPLAY_ON_STARTUP", True))
    # 0 disables the background loop; /update still works
    replay_interval_minutes: int = int(os.getenv("REPLAY_INTERVAL_MINUTES", "0"))

    # Where scheduled replay failures get reported (optional)
    ch_logging: int | None = field(default_factory=lambda: _get_env_id("CH_LOGGING"))
    silent_mode: bool = field(default_factory=lambda: _get_env_bool("SILENT_MODE", False))

    # Logging
    log_dir: str = os.getenv("LOG_DIR", "./logs")
    timezone: str = os.getenv("TIMEZONE", "UTC")

    def validate(self) -> None:
        """Raise ConfigError naming every problem; the bot must not start with any."""
        problems: list[str] = []
        if not self.discord_token:
            problems.append("DISCORD_TOKEN is not set")
        if not self.event_channel_id:
            problems.append("EVENT_CHANNEL_ID is not set or not numeric")
        if self.leaderboard_page_size < 1:
            problems.append("LEADERBOARD_PAGE_SIZE must be at least 1")
        if not 1 <= self.history_page_size <= 100:
            problems.append("HISTORY_PAGE_SIZE must be between 1 and 100")
        if self.history_fetch_retries < 1:
            problems.append("HISTORY_FETCH_RETRIES must be at least 1")
        if self.replay_interval_minutes < 0:
            problems.append("REPLAY_INTERVAL_MINUTES cannot be negative")
        if problems:
            raise ConfigError("; ".join(problems))


settings = Settings()
