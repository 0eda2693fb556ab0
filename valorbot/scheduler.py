from __future__ import annotations
import asyncio
from typing import Any, Awaitable, Callable

from .logger import log_event
from .services.replay import HistorySource
from .services.valor_service import ValorService
from .utils.sender import notify_log_channel
from .errors import HistoryFetchError

async def run_scheduled_replay(
    bot: Any, service: ValorService, sources: Callable[[], Awaitable[HistorySource]], trigger: str
) -> bool:
    try:
        source = await sources()
    except HistoryFetchError as e:
        log_event({"event": "replay", "trigger": trigger, "status": "failed", "error": str(e)})
        await notify_log_channel(bot, f"Valor replay ({trigger}) failed: {e}")
        return False
    result = await service.replay(source, trigger=trigger)
    if not result.ok:
        await notify_log_channel(bot, f"Valor replay ({trigger}) failed: {result.error}")
    return result.ok

async def replay_loop(
    bot: Any, service: ValorService, sources: Callable[[], Awaitable[HistorySource]], interval_minutes: int
) -> None:
    while True:
        await asyncio.sleep(interval_minutes * 60)
        try:
            await run_scheduled_replay(bot, service, sources, trigger="scheduled")
        except Exception as e:
            log_event({"event": "replay_loop_error", "error": f"{type(e).__name__}: {e}"})
