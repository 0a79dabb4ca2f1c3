"""
roleselector 命令 - 通过消息按钮自助选择身份组
Roleselector command - lets members pick roles through message buttons.

数据保存在服务器作用域的 "roleselectors" 键下，按钮 ID 为
"<配置名>:<身份组 ID>"。
Data lives under the guild's "roleselectors" key; buttons carry the local id
"<config name>:<role id>".
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import Button, Embed, MessagePayload
from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.helpers import INVALID_NAME_CHARS, message_link, parse_emoji
from GuildPackBot.pack.slash import SlashCommand, channel, group, role, string, subcommand

if TYPE_CHECKING:
    from GuildPackBot.pack.builtin.buttons import ButtonInteractionPack
    from GuildPackBot.pack.builtin.commands.message import MessageCommandPack
    from GuildPackBot.pack.builtin.database import DatabasePack

logger = logging.getLogger(__name__)

SELECTORS_KEY = "roleselectors"
MAX_OPTIONS = 25


class SelectorOption(BaseModel):
    """按钮选项 / Button option."""

    emoji: str | None = None
    label: str | None = None


class SelectorObservable(BaseModel):
    """已发布的消息位置 / Where the selector is posted."""

    channel_id: str
    message_id: str


class RoleSelectorConfig(BaseModel):
    """身份组选择器配置 / Role selector configuration."""

    message_name: str = ""
    observable: SelectorObservable | None = None
    # 身份组 ID -> 选项，按添加顺序
    options: dict[str, SelectorOption] = Field(default_factory=dict)


def local_button_id(config_name: str, role_id: str) -> str:
    return f"{config_name}:{role_id}"


class RoleSelectorCommandPack(CommandPack):
    """
    roleselector 命令扩展包
    Roleselector command pack.
    """

    pack_name = "command-roleselector"
    dependencies = ["database", "command-message", "buttonInteraction", "client"]

    command_name = "roleselector"
    data = SlashCommand(
        name="roleselector",
        description="Allow users to select their own role through an interactive message.",
        options=[
            subcommand(
                "add",
                "Create a new role selector config",
                string("config-name", "A unique identifier for the role selector.", required=True),
                string(
                    "message-name",
                    'The unique identifier of a bot message. You can create one via "/message editor".',
                ),
            ),
            subcommand(
                "remove",
                "Remove a config and deletes any message bound to it.",
                string("config-name", "The role selector you'd like to delete", required=True),
            ),
            group(
                "channel",
                "Define which channel to post the role selector to.",
                subcommand(
                    "set",
                    "Assign a role selector to a text-channel.",
                    string("config-name", "The role selector to post", required=True),
                    channel("channel", "The text-channel to post the role selector to.", required=True),
                ),
                subcommand(
                    "remove",
                    "Remove a role selector from its assigned text-channel.",
                    string("config-name", "The role selector to take down", required=True),
                ),
            ),
            subcommand("list", "List all available role selector configurations."),
            group(
                "option",
                "Pair a role with a selector.",
                subcommand(
                    "add",
                    "Add a new role option to a selector.",
                    string("config-name", "The role selector to extend", required=True),
                    role("role", "The guild role to add to the selector as an option.", required=True),
                    string("button-label", "The text shown on the button for the given role."),
                    string("button-emoji", "The emoji prepending the button label."),
                ),
                subcommand(
                    "remove",
                    "Remove a role option from a selector.",
                    string("config-name", "The role selector to change", required=True),
                    role("role", "The guild role to remove from the selector.", required=True),
                ),
                subcommand(
                    "remove-stale",
                    "Remove all role options from a selector which do not exist anymore.",
                    string("config-name", "The role selector to inspect", required=True),
                ),
            ),
            group(
                "message",
                "Manage the messages that are shown along the role selector.",
                subcommand(
                    "set",
                    "Tell a role selector which message to accompany the buttons with.",
                    string("config-name", "The role selector to change", required=True),
                    string("message-name", 'A bot message managed via "/message".', required=True),
                ),
            ),
        ],
        dm_permission=False,
        default_member_permissions="0",
    )

    def __init__(
        self,
        db: DatabasePack,
        messenger: MessageCommandPack,
        buttons: ButtonInteractionPack,
        client: ChatClient,
    ) -> None:
        self._db = db
        self._messenger = messenger
        self._buttons = buttons
        self._client = client
        # (服务器 ID, 配置名) -> 已注册的按钮 ID
        self._registered: dict[tuple[str, str], list[str]] = {}

    # ── 存储 ──

    async def get_selectors(self, guild_id: str) -> dict[str, RoleSelectorConfig]:
        data = await self._db.get_guild_data(guild_id, SELECTORS_KEY, {})
        return {
            name: RoleSelectorConfig.model_validate(value)
            for name, value in data.items()
            if value
        }

    async def get_selector(self, guild_id: str, name: str) -> RoleSelectorConfig:
        data = await self._db.records.get(guild_id, f"{SELECTORS_KEY}/{name}")
        if not data:
            raise CommandError(f'There is no role selector configuration called "{name}".')
        return RoleSelectorConfig.model_validate(data)

    async def save_selector(
        self, guild_id: str, name: str, selector: RoleSelectorConfig
    ) -> None:
        await self._db.records.set(
            guild_id, f"{SELECTORS_KEY}/{name}", selector.model_dump(), overwrite=True
        )

    @staticmethod
    def config_name(interaction: Interaction) -> str:
        name = interaction.get_option("config-name", required=True)
        if INVALID_NAME_CHARS.search(name):
            raise CommandError(
                "Parameter `config-name` may only contain alphanumeric characters "
                "as well as `-` and `_`."
            )
        return name

    # ── 按钮 ──

    def _unregister_buttons(self, guild_id: str, name: str) -> None:
        for custom_id in self._registered.pop((guild_id, name), []):
            self._buttons.remove_button_listener(custom_id)

    async def register_buttons(
        self, guild_id: str, name: str, selector: RoleSelectorConfig
    ) -> list[Button]:
        """
        为每个选项注册按钮回调并生成按钮
        Register a button callback for every option and build the buttons.
        """
        self._unregister_buttons(guild_id, name)

        buttons = []
        for role_id, option in selector.options.items():
            custom_id = self._buttons.set_button_listener(
                self, local_button_id(name, role_id), self.handle_button_interaction
            )
            label = option.label
            if not label:
                found = await self._client.fetch_role(guild_id, role_id)
                label = found.name if found else "<ROLE DELETED>"
            buttons.append(Button(custom_id=custom_id, label=label, emoji=option.emoji))

        self._registered[(guild_id, name)] = [button.custom_id for button in buttons]
        return buttons

    async def handle_button_interaction(self, interaction: Interaction) -> None:
        """
        切换成员的对应身份组
        Toggle the pressed role for the member.
        """
        guild_id = interaction.require_guild()
        name, _, role_id = interaction.custom_id.rpartition(":")

        selector = await self.get_selector(guild_id, name)
        if role_id not in selector.options:
            raise CommandError("This option is not available anymore.")

        found = await self._client.fetch_role(guild_id, role_id)
        if found is None:
            raise CommandError("The role of this option does not exist anymore.")

        member = await self._client.fetch_member(guild_id, interaction.user_id)
        if member is None:
            raise CommandError("Could not establish connection to guild services.", False)

        if role_id in member.role_ids:
            await self._client.remove_member_roles(guild_id, member.id, [role_id])
            await interaction.reply(f'✅ Removed the role "{found.name}".', ephemeral=True)
        else:
            await self._client.add_member_roles(guild_id, member.id, [role_id])
            await interaction.reply(f'✅ You now have the role "{found.name}".', ephemeral=True)

    # ── 发布 ──

    async def _build_payload(
        self, guild_id: str, name: str, selector: RoleSelectorConfig
    ) -> MessagePayload:
        if not selector.message_name:
            raise CommandError("No message is paired to the given role selector")
        payload = await self._messenger.fetch_message_object(guild_id, selector.message_name)
        return payload.with_buttons(await self.register_buttons(guild_id, name, selector))

    async def post(
        self, guild_id: str, channel_id: str, name: str, selector: RoleSelectorConfig
    ) -> None:
        payload = await self._build_payload(guild_id, name, selector)
        message_id = await self._client.send_message(channel_id, payload)
        selector.observable = SelectorObservable(channel_id=channel_id, message_id=message_id)

    async def repost(self, guild_id: str, name: str, selector: RoleSelectorConfig) -> None:
        """
        在已发布的消息上更新内容与按钮
        Update the content and buttons of the posted message.
        """
        observable = selector.observable
        if observable is None:
            return

        if not await self._client.message_exists(observable.channel_id, observable.message_id):
            self._unregister_buttons(guild_id, name)
            selector.observable = None
            await self.save_selector(guild_id, name, selector)
            raise CommandError(
                "The message to which the role selector is currently assigned, "
                "does not exist (anymore)."
            )

        payload = await self._build_payload(guild_id, name, selector)
        await self._client.edit_message(observable.channel_id, observable.message_id, payload)

    async def unpost(self, guild_id: str, name: str, selector: RoleSelectorConfig) -> None:
        observable = selector.observable
        if observable is None:
            return

        deleted = await self._client.delete_message(observable.channel_id, observable.message_id)
        if not deleted:
            logger.warning("选择器 %s 的消息已不存在", name)
        self._unregister_buttons(guild_id, name)
        selector.observable = None

    async def hydrate(self) -> None:
        """
        为已发布的选择器重新注册按钮回调
        Re-register the button callbacks of every posted selector.
        """
        for guild_id in await self._db.relevant_guilds():
            try:
                selectors = await self.get_selectors(guild_id)
            except Exception:
                logger.exception("读取服务器 %s 的选择器失败", guild_id)
                continue

            for name, selector in selectors.items():
                observable = selector.observable
                if observable is None:
                    continue
                try:
                    exists = await self._client.message_exists(
                        observable.channel_id, observable.message_id
                    )
                except Exception:
                    logger.exception("无法获取选择器 %s 的消息", name)
                    exists = False

                if not exists:
                    selector.observable = None
                    await self.save_selector(guild_id, name, selector)
                    continue

                await self.register_buttons(guild_id, name, selector)

    # ── 子命令 ──

    async def on_add_command(self, interaction: Interaction, guild_id: str) -> str:
        name = self.config_name(interaction)
        message_name = interaction.get_option("message-name") or ""

        if name in await self.get_selectors(guild_id):
            raise CommandError(f'There is already a roleselector configuration called "{name}".')
        if message_name and not await self._messenger.get_message_info(guild_id, message_name):
            raise CommandError(f'Message "{message_name}" was not found.')

        await self.save_selector(guild_id, name, RoleSelectorConfig(message_name=message_name))
        return f'✅ Successfully created role selector "{name}"!'

    async def on_remove_command(self, interaction: Interaction, guild_id: str) -> str:
        name = self.config_name(interaction)
        selector = await self.get_selector(guild_id, name)

        await self.unpost(guild_id, name, selector)
        await self._db.records.delete(guild_id, f"{SELECTORS_KEY}/{name}")
        return f'✅ Successfully removed role selector "{name}"!'

    async def on_list_command(
        self, interaction: Interaction, guild_id: str
    ) -> MessagePayload:
        entries = []
        for name, selector in (await self.get_selectors(guild_id)).items():
            observable = selector.observable
            status = (
                f"[In use]({message_link(guild_id, observable.channel_id, observable.message_id)})"
                if observable
                else "`Unused`"
            )
            lines = [
                f"**{name}** - [Message ID: `{selector.message_name or '<EMPTY>'}`]"
                f" - [Status: {status}]"
            ]
            for role_id, option in selector.options.items():
                found = await self._client.fetch_role(guild_id, role_id)
                role_name = found.name if found else "_<DELETED ROLE>_"
                label = option.label or role_name
                if option.emoji:
                    label = f"{option.emoji} {label}"
                lines.append(f"    • {label} - [Role: `{role_name}`]")
            entries.append("\n".join(lines) + "\n")

        description = "\n".join(entries) or (
            "There are currently 0 configurations in this guild. "
            "Create one with `/roleselector add` first."
        )
        return MessagePayload(
            embeds=[Embed(title="List of role selectors and their options:", description=description)]
        )

    async def on_option_command(self, interaction: Interaction, guild_id: str) -> str:
        name = self.config_name(interaction)
        selector = await self.get_selector(guild_id, name)

        if interaction.subcommand == "remove-stale":
            stale = [
                role_id
                for role_id in selector.options
                if await self._client.fetch_role(guild_id, role_id) is None
            ]
            if not stale:
                raise CommandError(
                    f'There are no stale roles as options in the role selector "{name}".'
                )
            for role_id in stale:
                del selector.options[role_id]
            await self.save_selector(guild_id, name, selector)
            await self.repost(guild_id, name, selector)
            plural = "" if len(stale) == 1 else "s"
            return f'✅ Successfully removed `{len(stale)}` stale role{plural} from the selector "{name}"!'

        role_id = str(interaction.get_option("role", required=True))
        found = await self._client.fetch_role(guild_id, role_id)
        role_name = found.name if found else role_id

        if interaction.subcommand == "add":
            if found is None:
                raise CommandError("The given role does not exist in this guild.")
            if role_id not in selector.options and len(selector.options) >= MAX_OPTIONS:
                raise CommandError("A role selector can't have more than 25 options.")

            emoji = interaction.get_option("button-emoji") or None
            if emoji is not None and parse_emoji(emoji) is None:
                raise CommandError("Invalid emoji, please try another one")

            selector.options[role_id] = SelectorOption(
                emoji=emoji, label=interaction.get_option("button-label") or None
            )
            await self.save_selector(guild_id, name, selector)
            await self.repost(guild_id, name, selector)
            return f'✅ Successfully added role "{role_name}" as an option to the selector "{name}"!'

        if interaction.subcommand == "remove":
            if role_id not in selector.options:
                raise CommandError(
                    f'Role "{role_name}" is not listed as an option in the selector "{name}".'
                )
            del selector.options[role_id]
            await self.save_selector(guild_id, name, selector)
            await self.repost(guild_id, name, selector)
            return f'✅ Successfully removed role "{role_name}" as an option from the selector "{name}"!'

        raise CommandError("Please use the available sub-commands.")

    async def on_message_command(self, interaction: Interaction, guild_id: str) -> str:
        name = self.config_name(interaction)
        message_name = interaction.get_option("message-name", required=True)
        if interaction.subcommand != "set":
            raise CommandError("Please use the available sub-commands.")

        if not await self._messenger.get_message_info(guild_id, message_name):
            raise CommandError(
                f'Message "{message_name}" was not found. Create one via `/message editor`'
            )
        selector = await self.get_selector(guild_id, name)
        selector.message_name = message_name
        await self.save_selector(guild_id, name, selector)
        await self.repost(guild_id, name, selector)
        return f'✅ Successfully assigned message "{message_name}" to the role selector "{name}"!'

    async def on_channel_command(self, interaction: Interaction, guild_id: str) -> str:
        name = self.config_name(interaction)
        selector = await self.get_selector(guild_id, name)

        if interaction.subcommand == "set":
            if not selector.message_name:
                raise CommandError("No message is paired to the given role selector")
            channel_id = str(interaction.get_option("channel", required=True))
            target = await self._client.fetch_channel(guild_id, channel_id)
            if target is None:
                raise CommandError("Channel not found.")
            if not target.is_text:
                raise CommandError("Channel is not a text-channel.")

            await self.unpost(guild_id, name, selector)
            await self.post(guild_id, target.id, name, selector)
            await self.save_selector(guild_id, name, selector)
            return f'✅ Successfully assigned role selector "{name}" to <#{target.id}>!'

        if interaction.subcommand == "remove":
            if selector.observable is None:
                raise CommandError("The role selector is not currently visible anywhere.")
            await self.unpost(guild_id, name, selector)
            await self.save_selector(guild_id, name, selector)
            return f'✅ Successfully removed role selector "{name}" from all text-channels!'

        raise CommandError("Please use the available sub-commands.")

    async def on_command_interaction(self, interaction: Interaction) -> None:
        guild_id = interaction.require_guild()
        if not interaction.subcommand:
            raise CommandError("Please use the available sub-commands.")

        group_handlers = {
            "option": self.on_option_command,
            "message": self.on_message_command,
            "channel": self.on_channel_command,
        }
        handlers = {
            "add": self.on_add_command,
            "remove": self.on_remove_command,
            "list": self.on_list_command,
        }
        if interaction.subcommand_group:
            handler = group_handlers.get(interaction.subcommand_group)
        else:
            handler = handlers.get(interaction.subcommand)
        if handler is None:
            raise CommandError("Please use the available sub-commands.")

        reply = await handler(interaction, guild_id)
        await interaction.reply(reply, ephemeral=interaction.subcommand == "list")

    async def start(self) -> None:
        await self.hydrate()

    async def stop(self) -> None:
        for guild_id, name in list(self._registered):
            self._unregister_buttons(guild_id, name)
