from __future__ import annotations
from datetime import datetime

def mention(user_id: str | int) -> str:
    return f"<@{user_id}>"

def time_since_label(last_update_ms: int | None, now_ms: int) -> str:
    """"12 minutes ago" / "3 hours ago" / "2 days ago"; "never" without a timestamp."""
    if last_update_ms is None:
        return "never"
    minutes = max(0, (now_ms - last_update_ms) // 60000)
    if minutes < 60:
        return f"{minutes} minutes ago"
    if minutes < 1440:
        return f"{minutes // 60} hours ago"
    return f"{minutes // 1440} days ago"

def discord_timestamp(ts: datetime | None) -> str:
    # Rendered by the client in the reader's own timezone
    if ts is None:
        return "Unknown"
    return f"<t:{int(ts.timestamp())}:f>"
