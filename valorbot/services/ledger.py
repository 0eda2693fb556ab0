from __future__ import annotations

from ..models.ledger import EventRecord, LastEventMarker, LedgerState, UserStats


def clamp_add(balance: int, delta: int) -> int:
    return max(0, balance + delta)


def apply_event(record: EventRecord, state: LedgerState) -> LedgerState:
    """Fold one event into the running totals. Balances clamp at zero per event."""
    for uid, delta in record.deltas.items():
        state.valor[uid] = clamp_add(state.valor.get(uid, 0), delta.valor_change)
        stats = state.user_stats.get(uid)
        if stats is None:
            stats = state.user_stats[uid] = UserStats()
        stats.add(delta)

    last = state.last_event
    if last.id is None or last.timestamp is None or (
        record.timestamp is not None and record.timestamp >= last.timestamp
    ):
        state.last_event = LastEventMarker(id=record.event_id, timestamp=record.timestamp, host=record.host)
    return state


def adjust_points(user_id: str, delta: int, state: LedgerState) -> int:
    uid = str(user_id)
    state.valor[uid] = clamp_add(state.valor.get(uid, 0), int(delta))
    return state.valor[uid]
