"""
op 命令 - 管理机器人操作员
Op command - manages the bot operators.

操作员与机器人所有者、服务器所有者一样可以使用所有命令。
Operators may use every command, just like the bot owner and the guild owner.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from GuildPackBot.config.settings import BotConfig
from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import Embed, EmbedFooter, MessagePayload
from GuildPackBot.gateway.events import GuildInfo, Interaction, MemberInfo
from GuildPackBot.kernel.signal_hub import Signal, SignalKind
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.slash import SlashCommand, subcommand, user

if TYPE_CHECKING:
    from GuildPackBot.pack.builtin.database import DatabasePack
    from GuildPackBot.pack.builtin.dispatch import CommandInteractionPack

logger = logging.getLogger(__name__)

OPS_KEY = "ops"


class OperatorsCommandPack(CommandPack):
    """
    op 命令扩展包
    Op command pack.
    """

    pack_name = "command-op"
    dependencies = ["database", "commandInteraction", "config", "client"]

    command_name = "op"
    data = SlashCommand(
        name="op",
        description=(
            "Assign and remove bot operators who receive permissions "
            "to the remaining commands."
        ),
        options=[
            subcommand(
                "add",
                "Assign a user as a bot operator",
                user("user", "The user to assign as a bot operator", required=True),
            ),
            subcommand(
                "remove",
                "Remove a user from the list of bot operator",
                user("user", "The user to unassign", required=True),
            ),
            subcommand("list", "List the currently assigned bot operators."),
        ],
        dm_permission=False,
        default_member_permissions="0",
    )

    def __init__(
        self,
        db: DatabasePack,
        commander: CommandInteractionPack,
        config: BotConfig,
        client: ChatClient,
    ) -> None:
        self._db = db
        self._commander = commander
        self._config = config
        self._client = client
        self._slot_id: str | None = None

    async def operators(self, guild_id: str) -> list[str]:
        return list(await self._db.get_guild_data(guild_id, OPS_KEY, []))

    async def redeploy_operators(self, guild_id: str) -> None:
        """
        更新服务器的命令权限，使所有操作员都能使用命令
        Update a guild's command permissions so that every operator can use them.
        """
        logger.info("正在为服务器 %s 重新部署操作员", guild_id)
        await self._commander.apply_command_permissions(
            guild_id, await self.operators(guild_id)
        )

    async def _redeploy_quietly(self, guild_id: str) -> None:
        try:
            await self.redeploy_operators(guild_id)
        except Exception:
            logger.exception("为服务器 %s 重新部署操作员失败", guild_id)

    async def _fetch_context(
        self, interaction: Interaction
    ) -> tuple[GuildInfo, MemberInfo]:
        guild_id = interaction.require_guild()
        guild = await self._client.fetch_guild(guild_id)
        if guild is None:
            raise CommandError("Could not establish connection to guild services.")

        user_id = str(interaction.get_option("user", required=True))
        member = await self._client.fetch_member(guild_id, user_id)
        if member is None:
            raise CommandError("The given user is not a member of this server.")

        if member.bot:
            raise CommandError("Cannot assign bots to operators.")
        if member.id == guild.owner_id:
            raise CommandError("The guild owner is already an operator.")
        if member.id == self._config.owner_user_id:
            raise CommandError("The bot owner is already an operator.")
        return guild, member

    async def on_add_command(self, interaction: Interaction) -> None:
        await interaction.defer()
        guild, member = await self._fetch_context(interaction)

        ops = await self.operators(guild.id)
        if member.id in ops:
            raise CommandError("User is already an operator.")
        await self._db.records.set(guild.id, f"{OPS_KEY}[]", member.id)

        await self._redeploy_quietly(guild.id)
        await interaction.edit_reply(
            f'✅ Successfully added user "{member.display_name}" to the list of operators!'
        )

    async def on_remove_command(self, interaction: Interaction) -> None:
        await interaction.defer()
        guild, member = await self._fetch_context(interaction)

        removed = await self._db.records.delete(guild.id, OPS_KEY, match_value=member.id)
        if not removed:
            raise CommandError("User is currently not an operator.")

        await self._redeploy_quietly(guild.id)
        await interaction.edit_reply(
            f'✅ Successfully removed user "{member.display_name}" '
            "from the list of operators!"
        )

    async def on_list_command(self, interaction: Interaction) -> None:
        await interaction.defer()
        guild_id = interaction.require_guild()
        guild = await self._client.fetch_guild(guild_id)
        if guild is None:
            raise CommandError("Could not establish connection to guild services.")

        # 机器人所有者与服务器所有者总是操作员
        ops = [*await self.operators(guild_id), self._config.owner_user_id]
        if guild.owner_id != self._config.owner_user_id:
            ops.append(guild.owner_id)

        lines = []
        for user_id in dict.fromkeys(op for op in ops if op):
            member = await self._client.fetch_member(guild_id, user_id)
            lines.append(
                f"- {member.display_name}" if member else "- <User left this server>"
            )

        embed = Embed(
            title="List of bot operators",
            description="\n".join(lines) or "No bot operators explicitly assigned.",
            footer=EmbedFooter(
                text="Note: The bot owner and the guild owner are always operators"
            ),
        )
        await interaction.edit_reply(MessagePayload(embeds=[embed]))

    async def on_command_interaction(self, interaction: Interaction) -> None:
        interaction.require_guild()

        if interaction.subcommand == "add":
            await self.on_add_command(interaction)
        elif interaction.subcommand == "remove":
            await self.on_remove_command(interaction)
        elif interaction.subcommand == "list":
            await self.on_list_command(interaction)
        else:
            raise CommandError("Please use the available sub-commands.")

    async def on_guild_commands_deployed(self, signal: Signal) -> None:
        await self._redeploy_quietly(str(signal.payload))

    async def start(self) -> None:
        self._slot_id = self._commander.signals.connect(
            SignalKind.GUILD_COMMANDS_DEPLOYED, self.on_guild_commands_deployed
        )

    async def stop(self) -> None:
        if self._slot_id is not None:
            self._commander.signals.disconnect(self._slot_id)
            self._slot_id = None
