"""Shared fixtures: fake history sources and an in-memory snapshot store."""
import os
import tempfile
from datetime import datetime, timedelta, timezone

# Keep log files out of the repo; must happen before valorbot.logger is imported
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="valorbot-logs-")

import pytest

from valorbot.errors import HistoryFetchError, SnapshotStoreError
from valorbot.models.ledger import Snapshot
from valorbot.services.replay import HistoryMessage

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def event_body(event_id: str, host: str | None, rows: list[tuple[str, str]]) -> str:
    lines = [f"Event ID: {event_id}"]
    if host:
        lines.append(f"Host: <@!{host}>")
    lines.append("Attendees:")
    lines += [f"- <@!{uid}> | {status}" for uid, status in rows]
    return "\n".join(lines)


class FakeHistory:
    """Newest-first pages over a fixed message list, like a chat channel."""

    def __init__(self, messages, fail_on_call=None, fail_times=1):
        self.messages = sorted(messages, key=lambda m: int(m.id), reverse=True)
        self.calls = []
        self.fail_on_call = fail_on_call
        self.fail_times = fail_times

    async def fetch_page(self, before_id, limit):
        self.calls.append((before_id, limit))
        if self.fail_on_call is not None and len(self.calls) >= self.fail_on_call and self.fail_times > 0:
            self.fail_times -= 1
            raise HistoryFetchError("channel unreachable")
        older = [m for m in self.messages if before_id is None or int(m.id) < int(before_id)]
        return older[:limit]


class MemoryStore:
    def __init__(self, snapshot=None, fail_save=False):
        self.snapshot = snapshot
        self.fail_save = fail_save
        self.saves = 0

    def load(self):
        return self.snapshot

    def save(self, snapshot: Snapshot):
        if self.fail_save:
            raise SnapshotStoreError("disk full")
        self.saves += 1
        self.snapshot = Snapshot.from_dict(snapshot.to_dict())


def msg(mid: int, minutes: int, body: str) -> HistoryMessage:
    return HistoryMessage(id=str(mid), body=body, created_at=at(minutes))


@pytest.fixture
def history_messages():
    return [
        msg(1, 0, event_body("P0001", "10", [("20", "3V"), ("30", "DO")])),
        msg(2, 5, "just chatting, not an event"),
        msg(3, 10, event_body("GT0002", "20", [("30", "V"), ("40", "INA"), ("50", "AFK")])),
        msg(4, 20, event_body("R0003", None, [("30", "DO"), ("30", "DO"), ("20", "2V")])),
        msg(5, 30, event_body("DT0004", "10", [("10", "V"), ("30", "V")])),
    ]
