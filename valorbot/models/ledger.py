from __future__ import annotations
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

# ---- Per-event records (transient) ------------------------------------------

@dataclass
class AttendeeDelta:
    valor_change: int = 0
    events_attended: int = 0
    ina_count: int = 0
    do_count: int = 0
    events_hosted: int = 0


@dataclass
class EventRecord:
    event_id: str
    host: str | None
    deltas: dict[str, AttendeeDelta]
    timestamp: datetime | None = None


# ---- Aggregate state ---------------------------------------------------------

@dataclass
class UserStats:
    events_attended: int = 0
    ina_count: int = 0
    do_count: int = 0
    events_hosted: int = 0

    def add(self, delta: AttendeeDelta) -> None:
        self.events_attended += delta.events_attended
        self.ina_count += delta.ina_count
        self.do_count += delta.do_count
        self.events_hosted += delta.events_hosted

    def to_dict(self) -> dict[str, int]:
        return {
            "eventsAttended": self.events_attended,
            "inaCount": self.ina_count,
            "doCount": self.do_count,
            "eventsHosted": self.events_hosted,
        }

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> "UserStats":
        data = data or {}
        return UserStats(
            events_attended=int(data.get("eventsAttended", 0)),
            ina_count=int(data.get("inaCount", 0)),
            do_count=int(data.get("doCount", 0)),
            events_hosted=int(data.get("eventsHosted", 0)),
        )


@dataclass
class LastEventMarker:
    id: str | None = None
    timestamp: datetime | None = None
    host: str | None = None


@dataclass
class Snapshot:
    """The persisted triple, keyed as in valorData.json."""
    valor: dict[str, int] = field(default_factory=dict)
    last_update: int | None = None  # epoch ms
    user_stats: dict[str, UserStats] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valorData": dict(self.valor),
            "lastUpdate": self.last_update,
            "userStats": {uid: s.to_dict() for uid, s in self.user_stats.items()},
        }

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> "Snapshot":
        data = data or {}
        last = data.get("lastUpdate")
        return Snapshot(
            valor={str(uid): max(0, int(v)) for uid, v in (data.get("valorData") or {}).items()},
            last_update=int(last) if last is not None else None,
            user_stats={str(uid): UserStats.from_dict(s) for uid, s in (data.get("userStats") or {}).items()},
        )


@dataclass
class LedgerState:
    """Mutable in-memory ledger: balances, counters and the last seen event."""
    valor: dict[str, int] = field(default_factory=dict)
    user_stats: dict[str, UserStats] = field(default_factory=dict)
    last_event: LastEventMarker = field(default_factory=LastEventMarker)
    last_update: int | None = None

    def points(self, user_id: str) -> int:
        return self.valor.get(str(user_id), 0)

    def stats(self, user_id: str) -> UserStats:
        return self.user_stats.get(str(user_id)) or UserStats()

    def to_snapshot(self) -> Snapshot:
        return Snapshot(
            valor=dict(self.valor),
            last_update=self.last_update,
            user_stats={uid: replace(s) for uid, s in self.user_stats.items()},
        )

    @staticmethod
    def from_snapshot(snap: Snapshot | None) -> "LedgerState":
        if snap is None:
            return LedgerState()
        return LedgerState(
            valor=dict(snap.valor),
            user_stats={uid: replace(s) for uid, s in snap.user_stats.items()},
            last_update=snap.last_update,
        )
