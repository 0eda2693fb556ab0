from __future__ import annotations
import math
from dataclasses import dataclass

from ..models.ledger import LedgerState


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    points: int


@dataclass
class LeaderboardPage:
    entries: list[LeaderboardEntry]
    page: int
    total_pages: int
    total_entries: int


def _tie_key(user_id: str) -> tuple:
    # Snowflakes compare numerically; anything else sorts after them as text
    return (0, int(user_id), "") if user_id.isdigit() else (1, 0, user_id)


def ranked(state: LedgerState) -> list[tuple[str, int]]:
    return sorted(state.valor.items(), key=lambda kv: (-kv[1], _tie_key(kv[0])))


def get_leaderboard_page(state: LedgerState, page: int = 1, page_size: int = 10) -> LeaderboardPage | None:
    """One page of the leaderboard, or None when nobody has a balance yet."""
    if page_size < 1:
        raise ValueError("page_size must be at least 1")
    rows = ranked(state)
    if not rows:
        return None
    total_pages = math.ceil(len(rows) / page_size)
    page = min(max(1, page), total_pages)
    start = (page - 1) * page_size
    entries = [
        LeaderboardEntry(rank=start + i + 1, user_id=uid, points=pts)
        for i, (uid, pts) in enumerate(rows[start:start + page_size])
    ]
    return LeaderboardPage(entries=entries, page=page, total_pages=total_pages, total_entries=len(rows))
