"""
Full-history replay: rebuild balances and counters from the event channel.

History arrives newest-first in pages; replay always runs oldest-first because
clamping makes the fold order-dependent.
"""
from __future__ import annotations
import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol

from .event_parser import parse_message
from .ledger import apply_event
from ..errors import HistoryFetchError
from ..logger import log_action
from ..models.ledger import LedgerState


@dataclass
class HistoryMessage:
    id: str
    body: str
    created_at: datetime


class HistorySource(Protocol):
    async def fetch_page(self, before_id: str | None, limit: int) -> list[HistoryMessage]: ...


@dataclass
class ReplayResult:
    ok: bool
    state: LedgerState | None = None
    scanned: int = 0
    applied: int = 0
    error: str | None = None

    @staticmethod
    def failed(error: str) -> "ReplayResult":
        return ReplayResult(ok=False, error=error)


async def _fetch_with_retry(
    source: HistorySource,
    before_id: str | None,
    limit: int,
    retries: int,
    retry_delay: float,
) -> list[HistoryMessage]:
    attempts = max(1, retries)
    for attempt in range(1, attempts + 1):
        try:
            return await source.fetch_page(before_id, limit)
        except HistoryFetchError as e:
            log_action("history_fetch_retry", f"before={before_id} attempt={attempt}/{attempts}", str(e))
            if attempt == attempts:
                raise
            await asyncio.sleep(retry_delay)
    raise HistoryFetchError("unreachable")


async def fetch_all_messages(
    source: HistorySource,
    page_size: int = 100,
    retries: int = 3,
    retry_delay: float = 2.0,
) -> list[HistoryMessage]:
    """Walk history back to the first message. Raises HistoryFetchError."""
    out: list[HistoryMessage] = []
    before_id: str | None = None
    while True:
        page = await _fetch_with_retry(source, before_id, page_size, retries, retry_delay)
        if not page:
            break
        out.extend(page)
        if page[-1].id == before_id:
            raise HistoryFetchError(f"history did not advance past message {before_id}")
        before_id = page[-1].id
    return out


def replay_messages(messages: Iterable[HistoryMessage]) -> tuple[LedgerState, int]:
    """Rebuild state from scratch. Returns (state, number of events applied)."""
    state = LedgerState()
    applied = 0
    for msg in sorted(messages, key=lambda m: m.created_at):
        record = parse_message(msg.body, msg.created_at)
        if record is None:
            continue
        apply_event(record, state)
        applied += 1
    return state, applied


async def replay_history(
    source: HistorySource,
    page_size: int = 100,
    retries: int = 3,
    retry_delay: float = 2.0,
) -> ReplayResult:
    try:
        messages = await fetch_all_messages(source, page_size, retries, retry_delay)
    except HistoryFetchError as e:
        return ReplayResult.failed(str(e))
    state, applied = replay_messages(messages)
    return ReplayResult(ok=True, state=state, scanned=len(messages), applied=applied)
