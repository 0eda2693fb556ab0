from __future__ import annotations
from typing import Any
from ..config import settings
from ..logger import log_action

async def safe_send(ch: Any, text: str = "", **kwargs: Any) -> bool:
    """Send unless silent mode is on or the target cannot take messages."""
    if getattr(settings, "silent_mode", False):
        log_action("send_suppressed", f"ch={getattr(ch, 'id', None)}", (text or "").replace("\n", " ")[:120])
        return False
    if not hasattr(ch, "send"):
        log_action("send_target_invalid", f"type={type(ch).__name__}", "no_send")
        return False
    await ch.send(text, **kwargs)
    return True

async def notify_log_channel(bot: Any, text: str) -> bool:
    """Post an operator notice to CH_LOGGING, if one is configured and reachable."""
    ch_id = getattr(settings, "ch_logging", None)
    if not ch_id:
        return False
    ch = bot.get_channel(int(ch_id))
    if ch is None:
        log_action("log_channel_missing", f"ch={ch_id}", text[:120])
        return False
    return await safe_send(ch, text)
