"""
user 命令 - 显示调用者的信息
User command - shows information about the caller.
"""

from __future__ import annotations

from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.slash import SlashCommand


class UserCommandPack(CommandPack):
    pack_name = "command-user"
    dependencies = []

    command_name = "user"
    data = SlashCommand(
        name="user",
        description="Replies with user info!",
        dm_permission=False,
        default_member_permissions="0",
    )

    async def on_command_interaction(self, interaction: Interaction) -> None:
        await interaction.reply(
            f"Your tag: {interaction.user_name}\nYour id: {interaction.user_id}"
        )
