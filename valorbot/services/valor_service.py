from __future__ import annotations
import asyncio
import time
from typing import Callable

from .ledger import adjust_points
from .replay import HistorySource, ReplayResult, replay_history
from ..errors import ReplayInProgressError, SnapshotStoreError
from ..logger import log_event
from ..models.ledger import LedgerState
from ..models.snapshot_store import SnapshotStore


class ValorService:
    """Owns the one authoritative ledger.

    Every mutation, including its snapshot write, runs under one lock so the
    file on disk always matches the last committed state.
    """

    def __init__(
        self,
        store: SnapshotStore,
        *,
        page_size: int = 100,
        retries: int = 3,
        retry_delay: float = 2.0,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.state = LedgerState()
        self.page_size = page_size
        self.retries = retries
        self.retry_delay = retry_delay
        self._clock = clock
        self._replaying = False
        self._lock = asyncio.Lock()

    @property
    def replaying(self) -> bool:
        return self._replaying

    def load(self) -> None:
        """Initialize from the stored snapshot. SnapshotStoreError propagates."""
        self.state = LedgerState.from_snapshot(self.store.load())

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _save(self, state: LedgerState) -> None:
        await asyncio.to_thread(self.store.save, state.to_snapshot())

    async def replay(self, source: HistorySource, trigger: str = "manual") -> ReplayResult:
        """Rebuild from history. The new state is only committed once it is on disk."""
        if self._replaying:
            log_event({"event": "replay", "trigger": trigger, "status": "rejected", "error": "in progress"})
            return ReplayResult.failed("a replay is already running")
        self._replaying = True
        try:
            # waits for an adjustment whose save is still in flight
            async with self._lock:
                return await self._replay_locked(source, trigger)
        finally:
            self._replaying = False

    async def _replay_locked(self, source: HistorySource, trigger: str) -> ReplayResult:
        result = await replay_history(source, self.page_size, self.retries, self.retry_delay)
        if not result.ok or result.state is None:
            log_event({"event": "replay", "trigger": trigger, "status": "failed", "error": result.error})
            return result
        result.state.last_update = self._now_ms()
        try:
            await self._save(result.state)
        except SnapshotStoreError as e:
            log_event({"event": "replay", "trigger": trigger, "status": "failed", "error": str(e)})
            return ReplayResult.failed(str(e))
        self.state = result.state
        log_event({
            "event": "replay",
            "trigger": trigger,
            "status": "ok",
            "scanned": result.scanned,
            "applied": result.applied,
            "users": len(result.state.valor),
        })
        return result

    async def adjust(self, user_id: str, delta: int, by: str | None = None) -> int:
        """Manual add/remove. Rolled back if the snapshot cannot be written."""
        if self._replaying:
            raise ReplayInProgressError("valor points are being rebuilt; try again shortly")
        async with self._lock:
            # a replay may have started while this call was queued
            if self._replaying:
                raise ReplayInProgressError("valor points are being rebuilt; try again shortly")
            uid = str(user_id)
            had = uid in self.state.valor
            before = self.state.valor.get(uid, 0)
            balance = adjust_points(uid, delta, self.state)
            try:
                await self._save(self.state)
            except SnapshotStoreError:
                if had:
                    self.state.valor[uid] = before
                else:
                    self.state.valor.pop(uid, None)
                raise
        log_event({"event": "adjust", "user_id": uid, "delta": delta, "balance": balance, "by": by})
        return balance
