"""
server 命令 - 显示当前服务器信息
Server command - shows information about the current guild.
"""

from __future__ import annotations

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.slash import SlashCommand


class ServerCommandPack(CommandPack):
    """server 命令扩展包 / Server command pack."""

    pack_name = "command-server"
    dependencies = ["client"]

    command_name = "server"
    data = SlashCommand(
        name="server",
        description="Replies with server info!",
        dm_permission=False,
        default_member_permissions="0",
    )

    def __init__(self, client: ChatClient) -> None:
        self._client = client

    async def on_command_interaction(self, interaction: Interaction) -> None:
        guild_id = interaction.require_guild()
        guild = await self._client.fetch_guild(guild_id)
        if guild is None:
            raise CommandError(f"Bot is not in guild {guild_id}", user_caused=False)

        await interaction.reply(
            f"Server name: {guild.name}\nTotal members: {guild.member_count}"
        )
