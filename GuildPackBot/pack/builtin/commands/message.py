"""
message 命令 - 保存、发布与编辑机器人消息模板
Message command - saves, posts and edits bot message templates.

消息内容在 discohook 编辑器中编写，通过编辑器链接中的 ``?data=`` 参数
（URL 安全的 base64 JSON）往返传递。
Message content is authored in the discohook editor and travels through the
``?data=`` parameter of the editor link (URL-safe base64 JSON).
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, quote, unquote, urlsplit

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import Embed, EmbedField, EmbedFooter, MessagePayload
from GuildPackBot.gateway.events import Interaction
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.helpers import INVALID_NAME_CHARS, check_name
from GuildPackBot.pack.slash import SlashCommand, channel, string, subcommand

if TYPE_CHECKING:
    from GuildPackBot.pack.builtin.database import DatabasePack

logger = logging.getLogger(__name__)

EDITOR_URL = "https://discohook.org"
MESSAGES_KEY = "messages"


def base64_encode(text: str) -> str:
    """UTF-8 文本 -> URL 安全且无填充的 base64 / UTF-8 text -> unpadded URL-safe base64."""
    encoded = base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")


def base64_decode(data: str) -> str:
    """URL 安全的 base64 -> UTF-8 文本 / URL-safe base64 -> UTF-8 text."""
    data = data.replace("+", "-").replace("/", "_")
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded).decode("utf-8")


def build_editor_url(message: dict[str, Any] | None = None) -> str:
    """
    生成编辑器链接，给出消息时把消息数据编码进链接
    Build an editor link, encoding the message data into it when given.
    """
    if not message:
        return EDITOR_URL

    encodable = json.dumps(
        {"messages": [{"data": message}]}, ensure_ascii=False, separators=(",", ":")
    )
    return f"{EDITOR_URL}/?data={quote(base64_encode(encodable), safe='')}"


def parse_editor_url(url: str) -> dict[str, Any]:
    """
    从编辑器链接中解出第一条消息的数据
    Extract the first message's data from an editor link.
    """
    parts = urlsplit(url.strip())
    host = parts.hostname or ""
    if not host.endswith(("discohook.org", "discohook.app")):
        raise CommandError(
            "The URL may only be a link from <https://discohook.org>. "
            "_(Hint: Use `/message editor` to open the editor.)_"
        )

    data = parse_qs(parts.query).get("data")
    if not data:
        if host.startswith("share."):
            raise CommandError(
                "Short-links can't be resolved. Please paste the full editor URL "
                "(the one containing `?data=`) from your browser's address bar."
            )
        raise CommandError("The given editor URL does not contain any message data.")

    try:
        decoded = json.loads(base64_decode(unquote(data[0])))
        message = decoded["messages"][0]["data"]
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, IndexError, TypeError):
        raise CommandError("Could not parse data from Discohook") from None

    if not isinstance(message, dict):
        raise CommandError("Could not parse data from Discohook")
    return message


class MessageCommandPack(CommandPack):
    """
    message 命令扩展包
    Message command pack.

    其他扩展包（reactrole、roleselector）通过 fetch_message_object 与
    send_message 使用已保存的消息。
    Other packs (reactrole, roleselector) use the saved messages through
    fetch_message_object and send_message.
    """

    pack_name = "command-message"
    dependencies = ["database", "client"]

    command_name = "message"
    data = SlashCommand(
        name="message",
        description="Allows to create bot messages for use in other modules.",
        options=[
            subcommand(
                "editor",
                "Lets you edit or create new bot messages.",
                string(
                    "message-name",
                    "If you want to edit an existing message, assign its name to this field.",
                ),
            ),
            subcommand(
                "set",
                "Assigns the message from a (valid) editor URL to the given name.",
                string(
                    "message-name",
                    "Unique name used to refer to this message later.",
                    required=True,
                ),
                string(
                    "discohook-url",
                    "A discohook.org editor URL. Use `/message editor` to open one.",
                    required=True,
                ),
            ),
            subcommand(
                "list",
                "Shows a list of all currently saved messages and when they were last modified.",
            ),
            subcommand(
                "post",
                "Sends a pre-saved message to a given text-channel.",
                string("message-name", "The name of the message to post", required=True),
                channel(
                    "channel",
                    "The text-channel to post this message to. (Default: This text-channel)",
                ),
            ),
            subcommand(
                "remove",
                "Removes a previously saved message",
                string(
                    "message-name",
                    "Unique name of the message you wish to remove",
                    required=True,
                ),
            ),
        ],
        dm_permission=False,
        default_member_permissions="0",
    )

    def __init__(self, db: DatabasePack, client: ChatClient) -> None:
        self._db = db
        self._client = client

    async def get_message_info(
        self, guild_id: str, message_name: str
    ) -> dict[str, Any] | None:
        """
        读取已保存消息的记录
        Read the record of a saved message.
        """
        if not message_name or INVALID_NAME_CHARS.search(message_name):
            raise CommandError("Invalid message name")
        return await self._db.records.get(guild_id, f"{MESSAGES_KEY}/{message_name}")

    async def fetch_message_object(self, guild_id: str, message_name: str) -> MessagePayload:
        """
        读取已保存的消息并构建载荷
        Load a saved message and build its payload.
        """
        info = await self.get_message_info(guild_id, message_name)
        if not info or not isinstance(info.get("data"), dict):
            raise CommandError("Invalid message name")
        return MessagePayload.from_stored(info["data"])

    async def send_message(self, guild_id: str, channel_id: str, message_name: str) -> str:
        """
        把已保存的消息发送到频道，返回新消息 ID
        Send a saved message to a channel and return the new message id.
        """
        payload = await self.fetch_message_object(guild_id, message_name)
        return await self._client.send_message(channel_id, payload)

    async def on_editor_command(self, interaction: Interaction, guild_id: str) -> None:
        message_name = interaction.get_option("message-name") or ""
        message = None
        if message_name:
            info = await self.get_message_info(guild_id, message_name)
            if not info:
                raise CommandError(f'Message "{message_name}" was not found.')
            message = info.get("data")

        title = (
            "How to edit the bot message"
            if message_name
            else "How to create a new bot message"
        )
        description = "\n".join(
            [
                "You can access the editor through the URL below.",
                "",
                "Do _not_ populate the following fields, as they won't work:",
                "`Webhook URL`, `Message Link`, `Files`",
                "",
                "After you've finished, copy the editor URL from your browser's address bar.",
                "You can apply your changes by using "
                f"`/message set {message_name or '<NAME>'} <URL>`",
            ]
        )
        embed = Embed(
            title=f":pencil: {title}",
            description=description,
            fields=[EmbedField(name="Editor:", value=build_editor_url(message))],
        )
        await interaction.reply(MessagePayload(embeds=[embed]), ephemeral=True)

    async def on_set_command(self, interaction: Interaction, guild_id: str) -> None:
        message_name = check_name(interaction.get_option("message-name", required=True))
        message = parse_editor_url(interaction.get_option("discohook-url", required=True))

        await self._db.records.set(
            guild_id,
            f"{MESSAGES_KEY}/{message_name}",
            {
                "data": message,
                "last_edited_user_id": interaction.user_id,
                "last_edited_date": interaction.created_at,
            },
            overwrite=True,
        )
        logger.info("服务器 %s 保存了消息 %s", guild_id, message_name)

        await interaction.reply(
            f'✅ Successfully added message "{message_name}" to this server. '
            f"You can post it with `/message post {message_name} [CHANNEL]`."
        )

    async def on_list_command(self, interaction: Interaction, guild_id: str) -> None:
        infos = await self._db.get_guild_data(guild_id, MESSAGES_KEY, {})

        lines = []
        for name, info in infos.items():
            user_id = info.get("last_edited_user_id", "")
            member = await self._client.fetch_member(guild_id, user_id) if user_id else None
            username = member.display_name if member else "<User left this server>"
            edited = datetime.fromtimestamp(info.get("last_edited_date") or time.time())
            lines.append(
                f"**{name}** | Last edited by {username} @ {edited:%Y-%m-%d %H:%M}"
            )

        embed = Embed(
            title="List of saved bot messages",
            description="\n".join(lines) or "No messages saved yet.",
            footer=None
            if lines
            else EmbedFooter(text="👀 To add new messages, use /message editor"),
        )
        await interaction.reply(MessagePayload(embeds=[embed]))

    async def on_post_command(self, interaction: Interaction, guild_id: str) -> None:
        message_name = interaction.get_option("message-name", required=True)
        channel_id = str(interaction.get_option("channel") or interaction.channel_id)

        target = await self._client.fetch_channel(guild_id, channel_id)
        if target is None:
            raise CommandError("The given channel does not exist in this guild.")
        if not target.is_text:
            raise CommandError("The given channel is not a text-channel.")

        await self.send_message(guild_id, target.id, message_name)

        # 发布到当前频道时只对自己可见
        await interaction.reply(
            f'✅ Successfully posted message "{message_name}" to <#{target.id}>!',
            ephemeral=target.id == interaction.channel_id,
        )

    async def on_remove_command(self, interaction: Interaction, guild_id: str) -> None:
        message_name = interaction.get_option("message-name", required=True)
        if not await self.get_message_info(guild_id, message_name):
            raise CommandError(f'Message "{message_name}" was not found.')

        await self._db.records.delete(guild_id, f"{MESSAGES_KEY}/{message_name}")
        await interaction.reply(f'✅ Successfully removed message "{message_name}"!')

    async def on_command_interaction(self, interaction: Interaction) -> None:
        guild_id = interaction.require_guild()
        handlers = {
            "editor": self.on_editor_command,
            "set": self.on_set_command,
            "list": self.on_list_command,
            "post": self.on_post_command,
            "remove": self.on_remove_command,
        }
        handler = handlers.get(interaction.subcommand or "")
        if handler is None:
            raise CommandError("Please use the available sub-commands.")
        await handler(interaction, guild_id)
