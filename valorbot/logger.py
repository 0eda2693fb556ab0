from datetime import datetime
from zoneinfo import ZoneInfo
import json
from pathlib import Path

from typing import Any

from .config import settings

LOG_DIR_MACHINE = Path(settings.log_dir) / "machine"
LOG_DIR_HUMAN = Path(settings.log_dir) / "human"
LOG_DIR_MACHINE.mkdir(parents=True, exist_ok=True)
LOG_DIR_HUMAN.mkdir(parents=True, exist_ok=True)

TZ = ZoneInfo(settings.timezone or "UTC")

_COLW = {"event": 8, "col1": 25, "col2": 45}

def _pad(s: str, width: int) -> str:
    s = str(s or "")
    return s if len(s) >= width else s + (" " * (width - len(s)))

def _human_line(ts: str, event: str, col1: str = "", col2: str = "", tail: str = "") -> str:
    head = f"[{ts}] " + " || ".join([
        _pad(event, _COLW["event"]),
        _pad(col1, _COLW["col1"]),
        _pad(col2, _COLW["col2"]),
    ])
    return head + ((" || " + tail) if tail else "")


def log_event(event_data: dict) -> str:
    now = datetime.now(TZ)
    # Write machine log (raw NDJSON)
    with open(LOG_DIR_MACHINE / f"{now:%Y-%m-%d}.ndjson", "a", encoding="utf-8") as f:
        f.write(json.dumps(event_data, ensure_ascii=False, default=str) + "\n")

    ts = f"{now:%m/%d/%Y %I:%M:%S}.{now.microsecond//1000:03d} {'AM' if now.hour < 12 else 'PM'}"

    kind = str(event_data.get("event", "event")).lower()

    if kind == "online":
        human_line = _human_line(
            ts,
            "Online",
            f"User: {event_data.get('user','')}",
            f"Guilds: {event_data.get('guild_count','')}",
            "",
        )
    elif kind == "command":
        human_line = _human_line(
            ts,
            "Command",
            f"Cmd: /{event_data.get('cmd','')}",
            f"By: {event_data.get('by','')}",
            f"target={event_data['target']}" if event_data.get("target") else "",
        )
    elif kind == "replay":
        status = event_data.get("status", "?")
        if status == "ok":
            tail = (
                f"scanned={event_data.get('scanned', 0)}; events={event_data.get('applied', 0)}; "
                f"users={event_data.get('users', 0)}"
            )
        else:
            tail = f"error={event_data.get('error','')}"
        human_line = _human_line(
            ts,
            "Replay",
            f"Trigger: {event_data.get('trigger','')}",
            f"Status: {status}",
            tail,
        )
    elif kind == "adjust":
        human_line = _human_line(
            ts,
            "Adjust",
            f"User: {event_data.get('user_id','')}",
            f"Delta: {event_data.get('delta','')} -> {event_data.get('balance','')}",
            f"by={event_data['by']}" if event_data.get("by") else "",
        )
    elif kind == "health":
        comp = event_data.get("component", "?")
        status = event_data.get("status", "?")
        tail = ""
        if "channel_id" in event_data:
            tail = f"channel_id={event_data['channel_id']}"
        if event_data.get("error"):
            tail = (tail + "; " if tail else "") + f"error={event_data['error']}"
        human_line = _human_line(ts, "Health", f"Component: {comp}", f"Status: {status}", tail)
    elif kind == "action":
        human_line = _human_line(
            ts,
            "Action",
            f"Name: {event_data.get('name','')}",
            f"Trigger: {event_data.get('trigger','')}",
            f"Output: {event_data.get('output','')}",
        )
    else:
        human_line = _human_line(ts, "Event", "", "", json.dumps(event_data, ensure_ascii=False, default=str))

    with open(LOG_DIR_HUMAN / f"{now:%Y-%m-%d}.log", "a", encoding="utf-8") as f:
        f.write(human_line + "\n")
    return human_line


def log_action(name: str, trigger: str, output: str) -> str:
    return log_event({
        "event": "action",
        "name": name,
        "trigger": trigger,
        "output": output,
    })


def log_command(cmd: str, by: Any, **extras: Any) -> str:
    return log_event({"event": "command", "cmd": cmd, "by": by, **(extras or {})})
