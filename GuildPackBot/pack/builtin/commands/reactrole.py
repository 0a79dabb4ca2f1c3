"""
reactrole 命令 - 通过表情回应分配身份组
Reactrole command - assigns roles through message reactions.

每个服务器的数据布局：
Per-guild data layout:

- reactrole/config/<名称>: 配置（消息模板、表情配对、发布位置）
- reactrole/link/linkers/<名称>: 右侧邻居 / right neighbour
- reactrole/link/linkees/<名称>: 左侧邻居 / left neighbour

已链接的配置组成一条链，链上的所有消息共用一个监听器。
Linked configs form a chain; all messages of a chain share one listener.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from GuildPackBot.config.settings import BotConfig
from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import Embed, EmbedField, MessagePayload
from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.helpers import check_name, message_link, parse_emoji
from GuildPackBot.pack.slash import (
    CommandOption,
    SlashCommand,
    channel,
    group,
    role,
    string,
    subcommand,
)
from GuildPackBot.reactrole.chain import ChainLinks
from GuildPackBot.reactrole.listener import ReactRoleChainListener
from GuildPackBot.reactrole.models import Observable, ReactionPair, ReactRoleConfig

if TYPE_CHECKING:
    from GuildPackBot.pack.builtin.commands.message import MessageCommandPack
    from GuildPackBot.pack.builtin.database import DatabasePack

logger = logging.getLogger(__name__)

CONFIG_PATH = "reactrole/config"
LINKERS_PATH = "reactrole/link/linkers"
LINKEES_PATH = "reactrole/link/linkees"

CHAIN_SEPARATOR = " 🔗 "


def _config_name(description: str) -> CommandOption:
    return string("config-name", description, required=True)


class ReactRoleCommandPack(CommandPack):
    """
    reactrole 命令扩展包
    Reactrole command pack.
    """

    pack_name = "command-reactrole"
    dependencies = ["client", "config", "database", "command-message"]

    command_name = "reactrole"
    data = SlashCommand(
        name="reactrole",
        description="Lets members pick roles by reacting to bot messages.",
        options=[
            subcommand(
                "add",
                "Creates a new reactrole config.",
                _config_name("Unique name of the new config"),
                string("message-name", "The saved message to post for this config"),
            ),
            subcommand(
                "remove",
                "Deletes a reactrole config.",
                _config_name("The config to delete"),
            ),
            group(
                "reaction",
                "Manages the emoji/role pairs of a config.",
                subcommand(
                    "add",
                    "Binds an emoji to a role.",
                    _config_name("The config to change"),
                    string("emoji", "The emoji members react with", required=True),
                    role("role", "The role members receive", required=True),
                ),
                subcommand(
                    "remove",
                    "Removes an emoji from a config.",
                    _config_name("The config to change"),
                    string("emoji", "The emoji to remove", required=True),
                ),
            ),
            subcommand(
                "link",
                "Links a config to another one, forming a chain.",
                _config_name("The left config of the link"),
                string("linked-config", "The right config of the link", required=True),
            ),
            subcommand(
                "unlink",
                "Removes all links of a config.",
                _config_name("The config to unlink"),
            ),
            group(
                "message",
                "Manages the message template of a config.",
                subcommand(
                    "set",
                    "Sets the saved message that is posted for a config.",
                    _config_name("The config to change"),
                    string("message-name", "The saved message to use", required=True),
                ),
            ),
            group(
                "channel",
                "Posts or removes a config chain.",
                subcommand(
                    "set",
                    "Posts the config's whole chain to a text-channel.",
                    _config_name("Any config of the chain"),
                    channel("channel", "The text-channel to post to", required=True),
                ),
                subcommand(
                    "remove",
                    "Removes the config's whole chain from its text-channel.",
                    _config_name("Any config of the chain"),
                ),
            ),
            subcommand(
                "clearreactions",
                "Resets the reactions on a posted config.",
                _config_name("The config to reset"),
            ),
            subcommand(
                "list",
                "Lists all config chains or shows details about a single config.",
                string("config-name", "The config to show details about"),
            ),
        ],
        dm_permission=False,
        default_member_permissions="0",
    )

    def __init__(
        self,
        client: ChatClient,
        config: BotConfig,
        db: DatabasePack,
        messenger: MessageCommandPack,
    ) -> None:
        self._client = client
        self._config = config
        self._db = db
        self._messenger = messenger
        # (服务器 ID, 链首名称) -> 监听器
        self.listeners: dict[tuple[str, str], ReactRoleChainListener] = {}

    # ── 存储 ──

    async def get_config(self, guild_id: str, name: str) -> ReactRoleConfig:
        check_name(name)
        data = await self._db.records.get(guild_id, f"{CONFIG_PATH}/{name}")
        if not data:
            raise CommandError("No config with given name was found")
        return ReactRoleConfig.from_record(name, data)

    async def save_observables(
        self, guild_id: str, name: str, observables: Observable
    ) -> None:
        await self._db.records.set(
            guild_id,
            f"{CONFIG_PATH}/{name}/observables",
            observables.model_dump(),
            overwrite=True,
        )

    async def load_links(self, guild_id: str) -> ChainLinks:
        """读取链接快照 / Read a snapshot of the links."""
        return ChainLinks.from_records(
            await self._db.records.get(guild_id, LINKERS_PATH),
            await self._db.records.get(guild_id, LINKEES_PATH),
        )

    async def _require_unused(self, guild_id: str, name: str) -> ReactRoleConfig:
        config = await self.get_config(guild_id, name)
        if config.observables.in_use:
            raise CommandError(
                f"Config `{name}` is currently used in a text-channel.\n"
                f"Please remove it first with `/reactrole channel remove {name}`"
            )
        return config

    # ── 发布 ──

    def _unload_listener(self, guild_id: str, root: str) -> None:
        listener = self.listeners.pop((guild_id, root), None)
        if listener is not None:
            listener.unload()

    async def assign_config_to_channel(
        self, guild_id: str, name: str, channel_id: str
    ) -> list[str]:
        """
        从链首开始依次把整条链发布到频道，返回已发布的配置名称
        Post the whole chain to a channel starting at its root; returns the
        names of the posted configs.

        表情附加在每个配置的最后一条消息上，旧消息在新消息发出后删除。
        Reactions go on each config's last message; the old messages are
        deleted once the new ones are out.
        """
        links = await self.load_links(guild_id)
        root = links.root_of(name)
        chain = links.members(root)

        # 先校验整条链，避免发布一半
        configs = [await self.get_config(guild_id, member) for member in chain]
        for config in configs:
            if not config.template_name:
                raise CommandError(
                    f"Config `{config.name}` does not have a message template defined. "
                    f"Please use `/reactrole message set {config.name}` first."
                )

        self._unload_listener(guild_id, root)
        listener: ReactRoleChainListener | None = None
        for config in configs:
            message_id = await self._messenger.send_message(
                guild_id, channel_id, config.template_name
            )
            for pair in config.reactions:
                await self._client.add_reaction(channel_id, message_id, pair.emoji)

            if config.observables.in_use:
                await self._delete_posted_messages(config)

            config.observables = Observable(channel_id=channel_id, message_ids=[message_id])
            await self.save_observables(guild_id, config.name, config.observables)

            if listener is None:
                listener = ReactRoleChainListener(
                    self._client, guild_id, config, self._config.reactrole_cooldown
                )
            else:
                listener.add_config(config)

        if listener is not None:
            self.listeners[(guild_id, root)] = listener
        logger.info("服务器 %s 的配置链 %s 已发布到频道 %s", guild_id, root, channel_id)
        return chain

    async def _delete_posted_messages(self, config: ReactRoleConfig) -> None:
        observables = config.observables
        for message_id in observables.message_ids:
            deleted = await self._client.delete_message(observables.channel_id, message_id)
            if not deleted:
                logger.warning("消息 %s 已不存在，跳过删除", message_id)

    async def remove_config_from_channel(self, guild_id: str, name: str) -> list[str]:
        """
        从频道撤下整条链，返回被撤下的配置名称
        Take the whole chain down from its channel; returns the removed names.
        """
        links = await self.load_links(guild_id)
        root = links.root_of(name)
        self._unload_listener(guild_id, root)

        removed = []
        for member in links.members(root):
            config = await self.get_config(guild_id, member)
            if not config.observables.in_use:
                continue
            await self._delete_posted_messages(config)
            await self.save_observables(guild_id, member, Observable())
            removed.append(member)

        if not removed:
            raise CommandError("The given config is currently unused.")
        return removed

    async def reset_reactions(self, guild_id: str, config: ReactRoleConfig) -> bool:
        """
        清除最后一条消息上的表情并重新添加监听的表情
        Clear the reactions of the last message and re-add the watched ones.
        """
        message_id = config.observables.last_message_id
        if not config.observables.in_use or message_id is None:
            return False

        channel_id = config.observables.channel_id
        await self._client.clear_reactions(channel_id, message_id)
        for pair in config.reactions:
            await self._client.add_reaction(channel_id, message_id, pair.emoji)
        return True

    async def load_configs_in_use(self) -> None:
        """
        为每条已发布的链重建监听器
        Rebuild a listener for every posted chain.
        """
        for guild_id in await self._db.relevant_guilds():
            try:
                await self._load_guild(guild_id)
            except Exception:
                logger.exception("恢复服务器 %s 的表情身份组失败", guild_id)

    async def _load_guild(self, guild_id: str) -> None:
        records = await self._db.records.get(guild_id, CONFIG_PATH) or {}
        configs = {
            name: ReactRoleConfig.from_record(name, data)
            for name, data in records.items()
        }
        links = await self.load_links(guild_id)

        for chain in links.chains(configs):
            root = configs.get(chain[0])
            if root is None or not root.observables.in_use:
                continue

            await self.reset_reactions(guild_id, root)
            listener = ReactRoleChainListener(
                self._client, guild_id, root, self._config.reactrole_cooldown
            )
            for member in chain[1:]:
                config = configs.get(member)
                if config is None:
                    continue
                await self.reset_reactions(guild_id, config)
                listener.add_config(config)

            self.listeners[(guild_id, root.name)] = listener
            logger.info("已恢复服务器 %s 的配置链: %s", guild_id, CHAIN_SEPARATOR.join(chain))

    # ── 子命令 ──

    async def on_add_command(self, interaction: Interaction, guild_id: str) -> str:
        name = check_name(interaction.get_option("config-name", required=True))
        template = interaction.get_option("message-name") or ""

        if await self._db.records.get(guild_id, f"{CONFIG_PATH}/{name}"):
            raise CommandError("There is already a config with this name.")
        if template and not await self._messenger.get_message_info(guild_id, template):
            raise CommandError(f'Message "{template}" was not found.')

        config = ReactRoleConfig(name=name, template_name=template)
        await self._db.records.set(
            guild_id, f"{CONFIG_PATH}/{name}", config.to_record(), overwrite=True
        )
        return f'✅ Successfully created config "{name}".'

    async def on_remove_command(self, interaction: Interaction, guild_id: str) -> str:
        name = interaction.get_option("config-name", required=True)
        await self._require_unused(guild_id, name)

        links = await self.load_links(guild_id)
        if links.is_linked(name):
            await self._unlink(guild_id, name, links)

        await self._db.records.delete(guild_id, f"{CONFIG_PATH}/{name}")
        return f'✅ Successfully removed config "{name}".'

    async def on_reaction_add_command(self, interaction: Interaction, guild_id: str) -> str:
        name = interaction.get_option("config-name", required=True)
        config = await self.get_config(guild_id, name)

        emoji = parse_emoji(interaction.get_option("emoji", required=True))
        if emoji is None:
            raise CommandError("Invalid emoji, please try another one")

        role_id = str(interaction.get_option("role", required=True))
        if await self._client.fetch_role(guild_id, role_id) is None:
            raise CommandError("The given role does not exist in this guild.")

        path = f"{CONFIG_PATH}/{name}/reactions"
        if await self._db.records.index_of(guild_id, path, role_id, "role") >= 0:
            raise CommandError("Role already bound to an emoji in this configuration")
        if config.role_for(emoji) is not None:
            raise CommandError("Emoji already bound to a role in this configuration")

        pair = ReactionPair(emoji=emoji, role=role_id)
        await self._db.records.set(guild_id, f"{path}[]", pair.model_dump())
        return self._with_repost_hint(f"✅ Successfully bound {emoji} to <@&{role_id}>.", config)

    async def on_reaction_remove_command(
        self, interaction: Interaction, guild_id: str
    ) -> str:
        name = interaction.get_option("config-name", required=True)
        config = await self.get_config(guild_id, name)
        emoji = interaction.get_option("emoji", required=True).strip()

        removed = await self._db.records.delete(
            guild_id, f"{CONFIG_PATH}/{name}/reactions", match_value=emoji, match_key="emoji"
        )
        if not removed:
            raise CommandError("The given emoji is not bound in this configuration.")
        return self._with_repost_hint(f"✅ Successfully removed {emoji}.", config)

    @staticmethod
    def _with_repost_hint(text: str, config: ReactRoleConfig) -> str:
        if not config.observables.in_use:
            return text
        return (
            f"{text}\nThe config is currently posted. Use "
            f"`/reactrole channel set {config.name}` again to apply the change."
        )

    async def on_link_command(self, interaction: Interaction, guild_id: str) -> str:
        linker = interaction.get_option("config-name", required=True)
        linkee = interaction.get_option("linked-config", required=True)
        if linker == linkee:
            raise CommandError("A config can't be linked to itself.")

        for name in (linker, linkee):
            await self._require_unused(guild_id, name)

        links = await self.load_links(guild_id)
        if linker in links.chain_of(linkee):
            raise CommandError("Both configs are already part of the same chain.")

        notes = []
        previous_right = links.right_of(linker)
        if previous_right:
            await self._db.records.delete(guild_id, f"{LINKEES_PATH}/{previous_right}")
            notes.append(
                f"The config `{linker}` was linked to `{previous_right}` until now. "
                "This has now been **overwritten**."
            )
        previous_left = links.left_of(linkee)
        if previous_left:
            await self._db.records.delete(guild_id, f"{LINKERS_PATH}/{previous_left}")
            notes.append(f"The config `{previous_left}` is no longer linked to `{linkee}`.")

        await self._db.records.set(guild_id, f"{LINKERS_PATH}/{linker}", linkee, overwrite=True)
        await self._db.records.set(guild_id, f"{LINKEES_PATH}/{linkee}", linker, overwrite=True)
        return "\n".join([f"✅ Successfully linked `{linker}` to `{linkee}`.", *notes])

    async def _unlink(self, guild_id: str, name: str, links: ChainLinks) -> tuple[str, str]:
        left = links.left_of(name) or ""
        right = links.right_of(name) or ""
        if left:
            await self._db.records.delete(guild_id, f"{LINKERS_PATH}/{left}")
            await self._db.records.delete(guild_id, f"{LINKEES_PATH}/{name}")
        if right:
            await self._db.records.delete(guild_id, f"{LINKERS_PATH}/{name}")
            await self._db.records.delete(guild_id, f"{LINKEES_PATH}/{right}")
        return left, right

    async def on_unlink_command(
        self, interaction: Interaction, guild_id: str
    ) -> MessagePayload:
        name = interaction.get_option("config-name", required=True)
        await self._require_unused(guild_id, name)

        links = await self.load_links(guild_id)
        if not links.is_linked(name):
            raise CommandError(f"`{name}` is currently not linked to anything.")

        left, right = await self._unlink(guild_id, name, links)
        description = (
            (f"--[{left}]    " if left else "--")
            + f"[{name}]"
            + (f"    [{right}]--" if right else "--")
        )
        return MessagePayload(embeds=[Embed(title="Unlink successful", description=description)])

    async def on_message_set_command(self, interaction: Interaction, guild_id: str) -> str:
        name = interaction.get_option("config-name", required=True)
        template = interaction.get_option("message-name", required=True)
        await self.get_config(guild_id, name)
        if not await self._messenger.get_message_info(guild_id, template):
            raise CommandError(f'Message "{template}" was not found.')

        await self._db.records.set(
            guild_id, f"{CONFIG_PATH}/{name}/template_name", template, overwrite=True
        )
        return f'✅ Config "{name}" now uses the message "{template}".'

    async def on_channel_set_command(self, interaction: Interaction, guild_id: str) -> str:
        name = interaction.get_option("config-name", required=True)
        channel_id = str(interaction.get_option("channel", required=True))

        target = await self._client.fetch_channel(guild_id, channel_id)
        if target is None:
            raise CommandError("The given channel does not exist in this guild.")
        if not target.is_text:
            raise CommandError("The given channel is not a text-channel.")

        chain = await self.assign_config_to_channel(guild_id, name, target.id)
        return f"✅ Successfully posted {CHAIN_SEPARATOR.join(chain)} to <#{target.id}>!"

    async def on_channel_remove_command(
        self, interaction: Interaction, guild_id: str
    ) -> str:
        name = interaction.get_option("config-name", required=True)
        removed = await self.remove_config_from_channel(guild_id, name)
        return f"✅ Successfully removed {CHAIN_SEPARATOR.join(removed)} from its channel."

    async def on_clear_command(self, interaction: Interaction, guild_id: str) -> str:
        name = interaction.get_option("config-name", required=True)
        config = await self.get_config(guild_id, name)
        if not await self.reset_reactions(guild_id, config):
            raise CommandError("The given config is currently unused.")
        return f'✅ Successfully reset the reactions of "{name}".'

    async def on_list_command(
        self, interaction: Interaction, guild_id: str
    ) -> MessagePayload:
        name = interaction.get_option("config-name")
        links = await self.load_links(guild_id)

        if not name:
            configs = await self._db.records.get(guild_id, CONFIG_PATH) or {}
            chains = [CHAIN_SEPARATOR.join(chain) for chain in links.chains(configs)]
            description = "\n".join(chains) or (
                "There are no configs yet. Create one with `/reactrole add` first."
            )
            return MessagePayload(
                embeds=[Embed(title="List of reactrole configs", description=description)]
            )

        config = await self.get_config(guild_id, name)
        reactions = []
        for pair in config.reactions:
            found = await self._client.fetch_role(guild_id, pair.role)
            reactions.append(f"{pair.emoji} => {found.name if found else '_[DELETED ROLE]_'}")

        observables = config.observables
        usage = (
            "Click [here]("
            f"{message_link(guild_id, observables.channel_id, observables.message_ids[0])}"
            ") to see the config in action."
            if observables.in_use and observables.message_ids
            else "The config is currently not in use."
        )
        fields = [
            EmbedField(
                name="Reactions/Roles",
                value="\n".join(reactions) or "There are no reactions set yet.",
            ),
            EmbedField(name="Usage", value=usage),
        ]

        chain = links.chain_of(name)
        if len(chain) > 1:
            fields.append(
                EmbedField(
                    name="Chain relation",
                    value=CHAIN_SEPARATOR.join(
                        f"__{member}__" if member == name else member for member in chain
                    ),
                )
            )
        return MessagePayload(embeds=[Embed(title=f'About "{name}"', fields=fields)])

    async def on_command_interaction(self, interaction: Interaction) -> None:
        guild_id = interaction.require_guild()
        route = " ".join(
            part for part in (interaction.subcommand_group, interaction.subcommand) if part
        )
        handlers = {
            "add": self.on_add_command,
            "remove": self.on_remove_command,
            "reaction add": self.on_reaction_add_command,
            "reaction remove": self.on_reaction_remove_command,
            "link": self.on_link_command,
            "unlink": self.on_unlink_command,
            "message set": self.on_message_set_command,
            "channel set": self.on_channel_set_command,
            "channel remove": self.on_channel_remove_command,
            "clearreactions": self.on_clear_command,
            "list": self.on_list_command,
        }
        handler = handlers.get(route)
        if handler is None:
            raise CommandError("Please use the available sub-commands.")

        await interaction.defer(ephemeral=True)
        await interaction.edit_reply(await handler(interaction, guild_id))

    async def start(self) -> None:
        await self.load_configs_in_use()

    async def stop(self) -> None:
        for listener in self.listeners.values():
            listener.unload()
        self.listeners.clear()
