from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import aiohttp
import discord
import pytest

from valorbot.errors import HistoryFetchError
from valorbot.services.discord_history import DiscordChannelHistory, resolve_channel
from valorbot.services.replay import replay_history

from conftest import at


class FakeChannel:
    def __init__(self, messages, error=None):
        self.messages = messages
        self.error = error
        self.calls = []

    def history(self, limit, before=None):
        self.calls.append((limit, before))
        return self._iter(limit, before)

    async def _iter(self, limit, before):
        if self.error:
            raise self.error
        cutoff = before.id if before is not None else None
        older = [m for m in self.messages if cutoff is None or m.id < cutoff]
        for m in older[:limit]:
            yield m


def _dmsg(mid, minutes, content):
    return SimpleNamespace(id=mid, content=content, created_at=at(minutes))


@pytest.mark.asyncio
async def test_fetch_page_maps_messages():
    ch = FakeChannel([_dmsg(30, 2, "c"), _dmsg(20, 1, None), _dmsg(10, 0, "a")])
    source = DiscordChannelHistory(ch)

    page = await source.fetch_page(None, 2)
    assert [(m.id, m.body) for m in page] == [("30", "c"), ("20", "")]
    assert ch.calls[0] == (2, None)

    page = await source.fetch_page("20", 100)
    assert [m.id for m in page] == ["10"]
    assert page[0].created_at == at(0)
    assert isinstance(ch.calls[1][1], discord.Object)
    assert ch.calls[1][1].id == 20


@pytest.mark.asyncio
async def test_http_errors_become_fetch_errors():
    err = discord.Forbidden(Mock(status=403, reason="Forbidden"), "Missing Access")
    with pytest.raises(HistoryFetchError):
        await DiscordChannelHistory(FakeChannel([], error=err)).fetch_page(None, 100)


@pytest.mark.asyncio
async def test_resolve_channel_prefers_cache():
    ch = object()
    bot = SimpleNamespace(get_channel=lambda cid: ch, fetch_channel=AsyncMock())
    assert await resolve_channel(bot, 5) is ch
    bot.fetch_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_channel_missing():
    gone = discord.NotFound(Mock(status=404, reason="Not Found"), "Unknown Channel")
    bot = SimpleNamespace(get_channel=lambda cid: None, fetch_channel=AsyncMock(side_effect=gone))
    with pytest.raises(HistoryFetchError):
        await resolve_channel(bot, 5)


@pytest.mark.asyncio
@pytest.mark.parametrize("err", [aiohttp.ClientOSError(104, "Connection reset by peer"), ConnectionResetError()])
async def test_connection_errors_become_fetch_errors(err):
    with pytest.raises(HistoryFetchError):
        await DiscordChannelHistory(FakeChannel([], error=err)).fetch_page(None, 100)


class DroppingChannel(FakeChannel):
    """Loses the connection on the first history call only."""

    def history(self, limit, before=None):
        self.error = aiohttp.ClientOSError(104, "Connection reset by peer") if not self.calls else None
        return super().history(limit, before)


@pytest.mark.asyncio
async def test_replay_retries_after_dropped_connection():
    ch = DroppingChannel([_dmsg(10, 0, "Event ID: P0001\nAttendees:\n- <@5> | 2V")])
    result = await replay_history(DiscordChannelHistory(ch), retries=2, retry_delay=0)
    assert result.ok
    assert result.state.valor == {"5": 2}
    assert len(ch.calls) == 3
