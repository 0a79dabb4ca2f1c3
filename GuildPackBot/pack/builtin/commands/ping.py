"""
ping 命令 - 回复 Pong! 并显示往返延迟
Ping command - replies with Pong! and the roundtrip latency.
"""

from __future__ import annotations

import time

from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.slash import SlashCommand

# ViewChannel
VIEW_CHANNEL = "1024"


class PingCommandPack(CommandPack):
    """ping 命令扩展包 / Ping command pack."""

    pack_name = "command-ping"
    dependencies = []

    command_name = "ping"
    data = SlashCommand(
        name="ping",
        description="Replies with Pong!",
        dm_permission=True,
        default_member_permissions=VIEW_CHANNEL,
    )

    async def on_command_interaction(self, interaction: Interaction) -> None:
        await interaction.reply("Pong!")
        latency = round((time.time() - interaction.created_at) * 1000)
        await interaction.edit_reply(f"Pong! Roundtrip latency: {latency}ms")
