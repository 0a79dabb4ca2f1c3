"""
help 命令 - 列出已登记的命令及其说明
Help command - lists the registered commands and their descriptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from GuildPackBot.gateway.components import Embed, EmbedField, EmbedFooter, MessagePayload
from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.slash import SlashCommand, string

if TYPE_CHECKING:
    from GuildPackBot.pack.builtin.dispatch import CommandInteractionPack


class HelpCommandPack(CommandPack):
    """
    help 命令扩展包
    Help command pack.

    命令表来自命令交互扩展包，因此总是反映当前已部署的命令。
    The command table comes from the command interaction pack, so it always
    reflects the deployed commands.
    """

    pack_name = "command-help"
    dependencies = ["commandInteraction"]

    command_name = "help"
    data = SlashCommand(
        name="help",
        description="List available commands and their use-cases.",
        options=[string("command", "Show the subcommands of a single command")],
        dm_permission=False,
    )

    def __init__(self, commander: CommandInteractionPack) -> None:
        self._commander = commander

    def global_help(self) -> Embed:
        fields = [
            EmbedField(
                name=f"/{name}",
                value=pack.data.description or "No description available.",
                inline=True,
            )
            for name, pack in sorted(self._commander.commands.items())
        ]
        return Embed(
            title="List of all available commands",
            fields=fields,
            footer=EmbedFooter(
                text="You can call /help <command> to list a command's subcommands."
            ),
        )

    def command_help(self, name: str) -> Embed:
        name = name.strip().lstrip("/")
        pack = self._commander.commands.get(name)
        if pack is None:
            raise CommandError(
                f"Couldn't find command `/{name}`. "
                "You can retrieve a list of all available commands by using `/help`."
            )

        subcommands = pack.data.subcommand_names()
        fields = []
        if subcommands:
            fields.append(
                EmbedField(
                    name="Subcommands",
                    value="\n".join(f"`/{name} {sub}`" for sub in subcommands),
                )
            )
        return Embed(
            title=f"About /{name}", description=pack.data.description, fields=fields
        )

    async def on_command_interaction(self, interaction: Interaction) -> None:
        command = interaction.get_option("command")
        embed = self.command_help(command) if command else self.global_help()
        await interaction.reply(MessagePayload(embeds=[embed]), ephemeral=True)
