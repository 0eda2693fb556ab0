from __future__ import annotations
import asyncio
import sys
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from .config import settings
from .errors import ConfigError, HistoryFetchError, SnapshotStoreError
from .logger import log_event, log_action
from .models.snapshot_store import JsonSnapshotStore
from .scheduler import replay_loop, run_scheduled_replay
from .services.discord_history import DiscordChannelHistory, resolve_channel
from .services.valor_service import ValorService
from .handlers.valor import (
    handle_add,
    handle_leaderboard,
    handle_profile,
    handle_remove,
    handle_update,
    handle_valor,
)


# ------- Discord intents & bot -------
intents = discord.Intents.default()
intents.message_content = True
intents.guilds = True
intents.messages = True

bot = commands.Bot(command_prefix=settings.command_prefix, intents=intents)

service = ValorService(
    JsonSnapshotStore(settings.data_path),
    page_size=settings.history_page_size,
    retries=settings.history_fetch_retries,
    retry_delay=settings.history_retry_delay,
)

_started = False


async def event_history() -> DiscordChannelHistory:
    channel = await resolve_channel(bot, settings.event_channel_id)
    return DiscordChannelHistory(channel)


# ------- Slash commands -------
@bot.tree.command(name="valor", description="View valor points for a user")
@app_commands.describe(user="The user to check valor for")
async def valor(interaction: discord.Interaction, user: Optional[discord.User] = None):
    await handle_valor(interaction, service, user)


@bot.tree.command(name="profile", description="View detailed profile statistics")
@app_commands.describe(user="The user to check profile for")
async def profile(interaction: discord.Interaction, user: Optional[discord.User] = None):
    await handle_profile(interaction, service, user)


@bot.tree.command(name="leaderboard", description="View the valor leaderboard")
async def leaderboard(interaction: discord.Interaction):
    await handle_leaderboard(interaction, service)


@bot.tree.command(name="update", description="Update valor points from channel messages")
async def update(interaction: discord.Interaction):
    await handle_update(interaction, service, event_history)


@bot.tree.command(name="add", description="Add valor points to a user")
@app_commands.describe(user="The user to add valor points to", amount="Amount of valor points to add")
async def add(interaction: discord.Interaction, user: discord.User, amount: int):
    await handle_add(interaction, service, user, amount)


@bot.tree.command(name="remove", description="Remove valor points from a user")
@app_commands.describe(user="The user to remove valor points from", amount="Amount of valor points to remove")
async def remove(interaction: discord.Interaction, user: discord.User, amount: int):
    await handle_remove(interaction, service, user, amount)


@bot.tree.error
async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError):
    cmd = interaction.command.name if interaction.command else "?"
    log_action("command_error", f"cmd={cmd}", f"{type(error).__name__}: {error}")
    msg = "An error occurred while processing the command."
    try:
        if interaction.response.is_done():
            await interaction.followup.send(msg, ephemeral=True)
        else:
            await interaction.response.send_message(msg, ephemeral=True)
    except discord.HTTPException as e:
        log_action("command_error_reply_failed", f"cmd={cmd}", str(e))


async def _sync_commands() -> None:
    if settings.guild_id:
        guild = discord.Object(id=settings.guild_id)
        bot.tree.copy_global_to(guild=guild)
        synced = await bot.tree.sync(guild=guild)
    else:
        synced = await bot.tree.sync()
    log_action("commands_synced", f"guild={settings.guild_id or 'global'}", f"{len(synced)} commands")


# ------- Lifecycle -------
@bot.event
async def on_ready():
    global _started
    print(f"[ValorBot] Logged in as {bot.user} in {len(bot.guilds)} guild(s).")
    log_event({
        "event": "online",
        "user": str(bot.user),
        "guild_count": len(bot.guilds),
    })
    # on_ready fires again after reconnects
    if _started:
        return
    _started = True

    await bot.change_presence(activity=discord.Game(name=settings.activity_name))

    try:
        await _sync_commands()
    except discord.HTTPException as e:
        log_event({"event": "health", "component": "commands", "status": "error", "error": str(e)})

    try:
        await resolve_channel(bot, settings.event_channel_id)
    except HistoryFetchError as e:
        log_event({
            "event": "health",
            "component": "event_channel",
            "status": "missing",
            "channel_id": settings.event_channel_id,
            "error": str(e),
        })
        print(f"[ValorBot] {e}; shutting down.")
        await bot.close()
        return
    log_event({"event": "health", "component": "event_channel", "status": "ok", "channel_id": settings.event_channel_id})

    if settings.replay_on_startup:
        asyncio.create_task(run_scheduled_replay(bot, service, event_history, trigger="startup"))
    if settings.replay_interval_minutes > 0:
        asyncio.create_task(replay_loop(bot, service, event_history, settings.replay_interval_minutes))


def run():
    try:
        settings.validate()
        service.load()
    except (ConfigError, SnapshotStoreError) as e:
        log_event({"event": "health", "component": "startup", "status": "fatal", "error": str(e)})
        print(f"[ValorBot] Failed to initialize: {e}", file=sys.stderr)
        sys.exit(1)
    bot.run(settings.discord_token)

if __name__ == "__main__":
    run()
