from __future__ import annotations
import asyncio
from typing import Any

import aiohttp
import discord

from .replay import HistoryMessage
from ..errors import HistoryFetchError


class DiscordChannelHistory:
    """HistorySource over a text channel's message history (newest first)."""

    def __init__(self, channel: Any, timeout: float = 30.0):
        self.channel = channel
        self.timeout = timeout

    async def _collect(self, before_id: str | None, limit: int) -> list[HistoryMessage]:
        before = discord.Object(id=int(before_id)) if before_id else None
        return [
            HistoryMessage(id=str(m.id), body=m.content or "", created_at=m.created_at)
            async for m in self.channel.history(limit=limit, before=before)
        ]

    async def fetch_page(self, before_id: str | None, limit: int) -> list[HistoryMessage]:
        try:
            return await asyncio.wait_for(self._collect(before_id, limit), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise HistoryFetchError(f"timed out reading history before {before_id}") from e
        except discord.HTTPException as e:
            raise HistoryFetchError(f"discord error {getattr(e, 'status', '?')}: {e}") from e
        except (aiohttp.ClientError, OSError) as e:
            raise HistoryFetchError(f"connection error reading history: {type(e).__name__}: {e}") from e


async def resolve_channel(bot: Any, channel_id: int) -> Any:
    """Cached channel first, then an API fetch. Raises HistoryFetchError."""
    ch = bot.get_channel(int(channel_id))
    if ch is not None:
        return ch
    try:
        return await bot.fetch_channel(int(channel_id))
    except (discord.NotFound, discord.Forbidden, discord.HTTPException, discord.InvalidData) as e:
        raise HistoryFetchError(f"event channel {channel_id} unavailable: {e}") from e
