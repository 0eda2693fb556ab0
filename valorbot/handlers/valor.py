from __future__ import annotations
import time
from typing import Any, Awaitable, Callable, Iterable

import discord

from ..config import settings
from ..errors import HistoryFetchError, ReplayInProgressError, SnapshotStoreError
from ..logger import log_action, log_command
from ..models.ledger import LedgerState, UserStats
from ..services.leaderboard import get_leaderboard_page
from ..services.replay import HistorySource
from ..services.valor_service import ValorService
from ..utils.text import discord_timestamp, mention, time_since_label

COLOR_INFO = 0x0099FF
COLOR_ADDED = 0x00FF00
COLOR_REMOVED = 0xFF0000

NO_ROLE_MSG = "You need one of the required roles to use this command!"
NO_MANAGE_ROLE_MSG = "You need the required role to manage valor points!"
EMPTY_LEADERBOARD_MSG = "No valor points recorded yet!"
BLANK = "\u200b"  # spacer field keeps the profile grid at three columns

SourceProvider = Callable[[], Awaitable[HistorySource]]


def has_any_role(member: Any, role_ids: Iterable[int]) -> bool:
    wanted = {int(r) for r in role_ids}
    return any(int(getattr(r, "id", 0)) in wanted for r in (getattr(member, "roles", None) or []))


def _add_field(embed: discord.Embed, name: str, value: Any, inline: bool = True) -> None:
    embed.add_field(name=name, value=str(value), inline=inline)


def _avatar_url(user: Any) -> str | None:
    avatar = getattr(user, "display_avatar", None)
    return getattr(avatar, "url", None)


# ---- Embeds ------------------------------------------------------------------

def build_valor_embed(user: Any, points: int) -> discord.Embed:
    embed = discord.Embed(title="Valor Points", color=COLOR_INFO, timestamp=discord.utils.utcnow())
    if _avatar_url(user):
        embed.set_thumbnail(url=_avatar_url(user))
    _add_field(embed, "User", mention(user.id))
    _add_field(embed, "Points", points)
    return embed


def build_profile_embed(user: Any, points: int, stats: UserStats) -> discord.Embed:
    embed = discord.Embed(title="Member Profile", color=COLOR_INFO, timestamp=discord.utils.utcnow())
    if _avatar_url(user):
        embed.set_thumbnail(url=_avatar_url(user))
    _add_field(embed, "User", mention(user.id))
    _add_field(embed, "Valor Points", points)
    _add_field(embed, BLANK, BLANK)
    _add_field(embed, "Events Attended", stats.events_attended)
    _add_field(embed, "Events Hosted", stats.events_hosted)
    _add_field(embed, BLANK, BLANK)
    _add_field(embed, "Incomplete Attendance (INA)", stats.ina_count)
    _add_field(embed, "Disobeyed Orders (DO)", stats.do_count)
    return embed


def build_update_embed(state: LedgerState, now_ms: int) -> discord.Embed:
    embed = discord.Embed(title="✅ Valor Points Updated", color=COLOR_ADDED)
    _add_field(embed, "Last Update", time_since_label(state.last_update, now_ms), inline=False)
    last = state.last_event
    if last.id:
        _add_field(embed, "Last Event ID", last.id)
        _add_field(embed, "Host", mention(last.host) if last.host else "Unknown")
        _add_field(embed, "Timestamp", discord_timestamp(last.timestamp))
    return embed


def build_adjust_embed(user_id: int | str, amount: int, total: int, added: bool) -> discord.Embed:
    embed = discord.Embed(
        title="✅ Valor Points Added" if added else "✅ Valor Points Removed",
        color=COLOR_ADDED if added else COLOR_REMOVED,
        timestamp=discord.utils.utcnow(),
    )
    _add_field(embed, "User", mention(user_id))
    _add_field(embed, "Amount Added" if added else "Amount Removed", amount)
    _add_field(embed, "New Total", total)
    return embed


async def _is_member(guild: Any, user_id: str) -> bool:
    if guild is None:
        return True
    if guild.get_member(int(user_id)) is not None:
        return True
    try:
        await guild.fetch_member(int(user_id))
        return True
    except (discord.NotFound, discord.Forbidden, discord.HTTPException):
        return False


async def build_leaderboard_embed(
    guild: Any, state: LedgerState, page: int, page_size: int
) -> tuple[discord.Embed, int, int]:
    """Returns (embed, page shown, total pages). Users who left the guild are left out."""
    embed = discord.Embed(title="Valor Leaderboard", color=COLOR_INFO)
    lb = get_leaderboard_page(state, page, page_size)
    if lb is None:
        embed.description = EMPTY_LEADERBOARD_MSG
        return embed, 1, 1
    lines = [
        f"{e.rank}. {mention(e.user_id)} | {e.points} valor"
        for e in lb.entries
        if await _is_member(guild, e.user_id)
    ]
    embed.description = "\n".join(lines) or "Nobody on this page is still in the server."
    embed.set_footer(text=f"Page {lb.page}/{lb.total_pages}")
    return embed, lb.page, lb.total_pages


# ---- Leaderboard buttons -----------------------------------------------------

class LeaderboardView(discord.ui.View):
    def __init__(self, service: ValorService, page: int, total_pages: int, page_size: int):
        super().__init__(timeout=300)
        self.service = service
        self.page = page
        self.total_pages = total_pages
        self.page_size = page_size
        self._sync_buttons()

    def _sync_buttons(self) -> None:
        self.previous.disabled = self.page <= 1
        self.next.disabled = self.page >= self.total_pages

    async def _show(self, interaction: discord.Interaction, page: int) -> None:
        embed, self.page, self.total_pages = await build_leaderboard_embed(
            interaction.guild, self.service.state, page, self.page_size
        )
        self._sync_buttons()
        await interaction.response.edit_message(embed=embed, view=self)

    @discord.ui.button(label="Previous", style=discord.ButtonStyle.primary)
    async def previous(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._show(interaction, self.page - 1)

    @discord.ui.button(label="Next", style=discord.ButtonStyle.primary)
    async def next(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._show(interaction, self.page + 1)


# ---- Command handlers --------------------------------------------------------

async def handle_valor(interaction: discord.Interaction, service: ValorService, user: Any = None) -> None:
    target = user or interaction.user
    log_command("valor", interaction.user.id, target=target.id)
    await interaction.response.send_message(embed=build_valor_embed(target, service.state.points(str(target.id))))


async def handle_profile(interaction: discord.Interaction, service: ValorService, user: Any = None) -> None:
    target = user or interaction.user
    uid = str(target.id)
    log_command("profile", interaction.user.id, target=target.id)
    embed = build_profile_embed(target, service.state.points(uid), service.state.stats(uid))
    await interaction.response.send_message(embed=embed)


async def handle_leaderboard(interaction: discord.Interaction, service: ValorService) -> None:
    log_command("leaderboard", interaction.user.id)
    page_size = settings.leaderboard_page_size
    embed, page, total = await build_leaderboard_embed(interaction.guild, service.state, 1, page_size)
    view = LeaderboardView(service, page, total, page_size)
    await interaction.response.send_message(embed=embed, view=view)


async def handle_update(interaction: discord.Interaction, service: ValorService, sources: SourceProvider) -> None:
    if not has_any_role(interaction.user, settings.admin_role_ids):
        log_action("update_denied", f"user={interaction.user.id}", "missing role")
        await interaction.response.send_message(NO_ROLE_MSG, ephemeral=True)
        return
    if service.replaying:
        await interaction.response.send_message("An update is already running, try again shortly.", ephemeral=True)
        return
    log_command("update", interaction.user.id)
    await interaction.response.defer(thinking=True)
    try:
        source = await sources()
    except HistoryFetchError as e:
        await interaction.followup.send(f"Valor update failed: {e}")
        return
    result = await service.replay(source, trigger=f"user:{interaction.user.id}")
    if not result.ok:
        await interaction.followup.send(f"Valor update failed: {result.error}")
        return
    await interaction.followup.send(embed=build_update_embed(service.state, int(time.time() * 1000)))


async def _handle_adjust(
    interaction: discord.Interaction, service: ValorService, user: Any, amount: int, added: bool
) -> None:
    if not has_any_role(interaction.user, settings.manage_valor_role_ids):
        log_action("adjust_denied", f"user={interaction.user.id}", "missing role")
        await interaction.response.send_message(NO_MANAGE_ROLE_MSG, ephemeral=True)
        return
    if amount <= 0:
        verb = "add" if added else "remove"
        await interaction.response.send_message(
            f"Please provide a positive number of valor points to {verb}.", ephemeral=True
        )
        return
    log_command("add" if added else "remove", interaction.user.id, target=user.id, amount=amount)
    try:
        total = await service.adjust(str(user.id), amount if added else -amount, by=str(interaction.user.id))
    except ReplayInProgressError as e:
        await interaction.response.send_message(str(e), ephemeral=True)
        return
    except SnapshotStoreError as e:
        log_action("adjust_failed", f"user={user.id}", str(e))
        await interaction.response.send_message("Could not save valor points, nothing was changed.", ephemeral=True)
        return
    await interaction.response.send_message(embed=build_adjust_embed(user.id, amount, total, added))


async def handle_add(interaction: discord.Interaction, service: ValorService, user: Any, amount: int) -> None:
    await _handle_adjust(interaction, service, user, amount, added=True)


async def handle_remove(interaction: discord.Interaction, service: ValorService, user: Any, amount: int) -> None:
    await _handle_adjust(interaction, service, user, amount, added=False)
