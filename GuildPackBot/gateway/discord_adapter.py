"""
Discord 网关适配器 - 通过 py-cord 实现聊天客户端能力
Discord gateway adapter - implements the chat client capability with py-cord.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import discord
from discord.http import Route

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import Button, MessagePayload
from GuildPackBot.gateway.events import (
    ChannelInfo,
    GatewayEvent,
    GuildInfo,
    Interaction,
    InteractionKind,
    MemberInfo,
    ReactionEvent,
    RoleInfo,
)

logger = logging.getLogger(__name__)

# 应用命令权限类型：用户
PERMISSION_TYPE_USER = 2


def flatten_command_options(
    options: list[dict[str, Any]] | None,
) -> tuple[dict[str, Any], str | None, str | None]:
    """
    展开原始命令选项
    Flatten raw command options.

    返回 (选项值, 子命令, 子命令组)。
    Returns (option values, subcommand, subcommand group).
    """
    values: dict[str, Any] = {}
    subcommand: str | None = None
    group: str | None = None

    for option in options or []:
        option_type = option.get("type")
        if option_type == 2:
            group = option["name"]
            inner, subcommand, _ = flatten_command_options(option.get("options"))
            values.update(inner)
        elif option_type == 1:
            subcommand = option["name"]
            inner, _, _ = flatten_command_options(option.get("options"))
            values.update(inner)
        else:
            values[option["name"]] = option.get("value")

    return values, subcommand, group


def build_components(rows: list[list[Button]]) -> list[dict[str, Any]]:
    """把按钮行转为原始组件载荷 / Convert button rows into raw component payloads."""
    components: list[dict[str, Any]] = []
    for row in rows:
        buttons = []
        for button in row:
            raw: dict[str, Any] = {
                "type": 2,
                "style": discord.ButtonStyle.secondary.value,
                "label": button.label,
                "custom_id": button.custom_id,
            }
            if button.emoji:
                raw["emoji"] = discord.PartialEmoji.from_str(button.emoji).to_dict()
            buttons.append(raw)
        components.append({"type": 1, "components": buttons})
    return components


def _embeds(payload: MessagePayload) -> list[discord.Embed]:
    return [discord.Embed.from_dict(embed.to_dict()) for embed in payload.embeds]


class DiscordInteraction(Interaction):
    """包装 py-cord 交互对象 / Wraps a py-cord interaction."""

    def __init__(self, raw: discord.Interaction, kind: InteractionKind, **fields: Any) -> None:
        super().__init__(kind, **fields)
        self._raw = raw

    async def _send_reply(self, payload: MessagePayload, ephemeral: bool) -> None:
        if self._raw.response.is_done():
            await self._raw.followup.send(
                content=payload.content, embeds=_embeds(payload), ephemeral=ephemeral
            )
            return
        await self._raw.response.send_message(
            content=payload.content, embeds=_embeds(payload), ephemeral=ephemeral
        )

    async def _edit_reply(self, payload: MessagePayload) -> None:
        await self._raw.edit_original_response(
            content=payload.content, embeds=_embeds(payload)
        )

    async def _defer(self, ephemeral: bool) -> None:
        await self._raw.response.defer(ephemeral=ephemeral)


def wrap_interaction(raw: discord.Interaction) -> DiscordInteraction | None:
    """
    把 py-cord 交互转为框架交互，不支持的类型返回 None
    Convert a py-cord interaction; unsupported types return None.
    """
    data: dict[str, Any] = raw.data or {}
    common: dict[str, Any] = {
        "guild_id": str(raw.guild_id) if raw.guild_id else None,
        "channel_id": str(raw.channel_id) if raw.channel_id else "",
        "user_id": str(raw.user.id) if raw.user else "",
        "user_name": raw.user.name if raw.user else "",
        "created_at": discord.utils.snowflake_time(raw.id).timestamp(),
    }

    if raw.type == discord.InteractionType.application_command:
        options, subcommand, group = flatten_command_options(data.get("options"))
        return DiscordInteraction(
            raw,
            InteractionKind.COMMAND,
            name=data.get("name", ""),
            options=options,
            subcommand=subcommand,
            subcommand_group=group,
            **common,
        )

    if raw.type == discord.InteractionType.component:
        return DiscordInteraction(
            raw, InteractionKind.BUTTON, custom_id=data.get("custom_id", ""), **common
        )

    return None


class DiscordClient(ChatClient):
    """
    Discord 客户端 - 通过 py-cord 库连接
    Discord client - connects via the py-cord library.
    """

    def __init__(self, token: str, application_id: str) -> None:
        super().__init__()
        self._token = token
        self._application_id = int(application_id) if application_id else 0
        self._ready = asyncio.Event()

        intents = discord.Intents.default()
        intents.members = True
        self._bot = discord.Client(intents=intents)
        self._register_events()

    def _register_events(self) -> None:
        bot = self._bot

        @bot.event
        async def on_ready() -> None:
            logger.info("Discord 机器人已登录: %s", bot.user)
            if not self._application_id and bot.application_id:
                self._application_id = bot.application_id
            self._ready.set()
            await self.dispatch(GatewayEvent.READY)

        @bot.event
        async def on_guild_join(guild: discord.Guild) -> None:
            await self.dispatch(GatewayEvent.GUILD_JOIN, self._guild_info(guild))

        @bot.event
        async def on_raw_reaction_add(payload: discord.RawReactionActionEvent) -> None:
            await self.dispatch(GatewayEvent.REACTION_ADD, self._reaction_event(payload))

        @bot.event
        async def on_raw_reaction_remove(payload: discord.RawReactionActionEvent) -> None:
            await self.dispatch(
                GatewayEvent.REACTION_REMOVE, self._reaction_event(payload)
            )

        @bot.event
        async def on_interaction(raw: discord.Interaction) -> None:
            interaction = wrap_interaction(raw)
            if interaction is not None:
                await self.dispatch(GatewayEvent.INTERACTION, interaction)

    @staticmethod
    def _reaction_event(payload: discord.RawReactionActionEvent) -> ReactionEvent:
        return ReactionEvent(
            guild_id=str(payload.guild_id) if payload.guild_id else None,
            channel_id=str(payload.channel_id),
            message_id=str(payload.message_id),
            user_id=str(payload.user_id),
            emoji=str(payload.emoji),
        )

    @staticmethod
    def _guild_info(guild: discord.Guild) -> GuildInfo:
        return GuildInfo(
            id=str(guild.id),
            name=guild.name,
            owner_id=str(guild.owner_id),
            member_count=guild.member_count or 0,
        )

    # ── 生命周期 ──

    async def launch(self) -> None:
        """启动 Discord 客户端（阻塞直到断开） / Start the client; blocks until closed."""
        await self._bot.start(self._token)

    async def wait_until_ready(self) -> None:
        await self._ready.wait()

    async def halt(self) -> None:
        """停止客户端 / Stop the client."""
        if not self._bot.is_closed():
            await self._bot.close()

    @property
    def user_id(self) -> str:
        return str(self._bot.user.id) if self._bot.user else ""

    # ── 服务器与成员 ──

    def guild_ids(self) -> list[str]:
        return [str(guild.id) for guild in self._bot.guilds]

    async def _guild(self, guild_id: str) -> discord.Guild | None:
        guild = self._bot.get_guild(int(guild_id))
        if guild is not None:
            return guild
        try:
            return await self._bot.fetch_guild(int(guild_id))
        except (discord.NotFound, discord.Forbidden):
            return None

    async def _member(self, guild_id: str, user_id: str) -> discord.Member | None:
        guild = await self._guild(guild_id)
        if guild is None:
            return None
        member = guild.get_member(int(user_id))
        if member is not None:
            return member
        try:
            return await guild.fetch_member(int(user_id))
        except discord.NotFound:
            return None

    async def fetch_guild(self, guild_id: str) -> GuildInfo | None:
        guild = await self._guild(guild_id)
        return self._guild_info(guild) if guild is not None else None

    async def fetch_member(self, guild_id: str, user_id: str) -> MemberInfo | None:
        member = await self._member(guild_id, user_id)
        if member is None:
            return None
        return MemberInfo(
            id=str(member.id),
            display_name=member.display_name,
            bot=member.bot,
            role_ids=[str(role.id) for role in member.roles if not role.is_default()],
        )

    async def set_member_roles(
        self, guild_id: str, user_id: str, role_ids: list[str]
    ) -> None:
        member = await self._member(guild_id, user_id)
        if member is None:
            raise LookupError(f"Member {user_id} not found in guild {guild_id}")
        await member.edit(roles=[discord.Object(id=int(role)) for role in role_ids])

    async def add_member_roles(
        self, guild_id: str, user_id: str, role_ids: list[str]
    ) -> None:
        member = await self._member(guild_id, user_id)
        if member is None:
            raise LookupError(f"Member {user_id} not found in guild {guild_id}")
        await member.add_roles(*(discord.Object(id=int(role)) for role in role_ids))

    async def remove_member_roles(
        self, guild_id: str, user_id: str, role_ids: list[str]
    ) -> None:
        member = await self._member(guild_id, user_id)
        if member is None:
            raise LookupError(f"Member {user_id} not found in guild {guild_id}")
        await member.remove_roles(*(discord.Object(id=int(role)) for role in role_ids))

    async def fetch_role(self, guild_id: str, role_id: str) -> RoleInfo | None:
        guild = await self._guild(guild_id)
        if guild is None:
            return None
        role = guild.get_role(int(role_id))
        if role is None:
            role = discord.utils.get(await guild.fetch_roles(), id=int(role_id))
        return RoleInfo(id=str(role.id), name=role.name) if role is not None else None

    async def fetch_channel(self, guild_id: str, channel_id: str) -> ChannelInfo | None:
        channel = self._bot.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self._bot.fetch_channel(int(channel_id))
            except (discord.NotFound, discord.Forbidden):
                return None
        if str(getattr(channel, "guild_id", "") or getattr(channel.guild, "id", "")) != guild_id:
            return None
        return ChannelInfo(
            id=str(channel.id),
            name=getattr(channel, "name", ""),
            is_text=isinstance(channel, discord.TextChannel),
        )

    # ── 消息 ──

    async def _partial_message(self, channel_id: str, message_id: str) -> discord.PartialMessage:
        channel = self._bot.get_channel(int(channel_id))
        if channel is None:
            channel = await self._bot.fetch_channel(int(channel_id))
        return channel.get_partial_message(int(message_id))

    async def send_message(self, channel_id: str, payload: MessagePayload) -> str:
        data = await self._bot.http.send_message(
            int(channel_id),
            payload.content,
            embeds=[embed.to_dict() for embed in payload.embeds] or None,
            components=build_components(payload.components) or None,
        )
        return str(data["id"])

    async def edit_message(
        self, channel_id: str, message_id: str, payload: MessagePayload
    ) -> None:
        await self._bot.http.edit_message(
            int(channel_id),
            int(message_id),
            content=payload.content,
            embeds=[embed.to_dict() for embed in payload.embeds],
            components=build_components(payload.components),
        )

    async def delete_message(self, channel_id: str, message_id: str) -> bool:
        try:
            await self._bot.http.delete_message(int(channel_id), int(message_id))
        except discord.NotFound:
            return False
        return True

    async def message_exists(self, channel_id: str, message_id: str) -> bool:
        try:
            await self._bot.http.get_message(int(channel_id), int(message_id))
        except discord.NotFound:
            return False
        return True

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        message = await self._partial_message(channel_id, message_id)
        await message.add_reaction(emoji)

    async def fetch_reaction_users(
        self, channel_id: str, message_id: str
    ) -> dict[str, list[str]]:
        message = await (await self._partial_message(channel_id, message_id)).fetch()
        result: dict[str, list[str]] = {}
        for reaction in message.reactions:
            users = await reaction.users().flatten()
            result[str(reaction.emoji)] = [str(user.id) for user in users]
        return result

    async def remove_user_reaction(
        self, channel_id: str, message_id: str, emoji: str, user_id: str
    ) -> None:
        message = await self._partial_message(channel_id, message_id)
        await message.remove_reaction(emoji, discord.Object(id=int(user_id)))

    async def clear_reactions(self, channel_id: str, message_id: str) -> None:
        message = await self._partial_message(channel_id, message_id)
        await message.clear_reactions()

    # ── 命令 ──

    async def register_guild_commands(
        self, guild_id: str, payloads: list[dict[str, Any]]
    ) -> dict[str, str]:
        data = await self._bot.http.bulk_upsert_guild_commands(
            self._application_id, int(guild_id), payloads
        )
        return {command["name"]: str(command["id"]) for command in data}

    async def set_command_permissions(
        self, guild_id: str, command_ids: list[str], user_ids: list[str]
    ) -> None:
        route = Route(
            "PUT",
            "/applications/{application_id}/guilds/{guild_id}/commands/permissions",
            application_id=self._application_id,
            guild_id=int(guild_id),
        )
        payload = [
            {
                "id": command_id,
                "permissions": [
                    {"id": user_id, "type": PERMISSION_TYPE_USER, "permission": True}
                    for user_id in dict.fromkeys(user_ids)
                    if user_id
                ],
            }
            for command_id in command_ids
        ]
        await self._bot.http.request(route, json=payload)
