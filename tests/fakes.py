"""In-memory doubles for the chat client and interactions."""

from __future__ import annotations

import itertools
from typing import Any

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import MessagePayload
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

BOT_ID = "bot"


class FakeChatClient(ChatClient):
    def __init__(self) -> None:
        super().__init__()
        self.guilds: dict[str, GuildInfo] = {}
        self.members: dict[tuple[str, str], MemberInfo] = {}
        self.roles: dict[tuple[str, str], RoleInfo] = {}
        self.channels: dict[tuple[str, str], ChannelInfo] = {}
        # message id -> {"channel_id", "payload"}
        self.messages: dict[str, dict[str, Any]] = {}
        # (channel, message) -> {emoji: [user ids]}
        self.reactions: dict[tuple[str, str], dict[str, list[str]]] = {}
        self.calls: list[tuple[str, Any]] = []
        self.registered: dict[str, list[dict[str, Any]]] = {}
        self.permissions: dict[str, list[str]] = {}
        self.failing_guilds: set[str] = set()
        self.dispatch_removals = False
        self._ids = itertools.count(1000)

    # ── setup helpers ──

    def add_guild(self, guild_id: str, owner_id: str = "guild-owner", name: str = "Guild") -> GuildInfo:
        guild = GuildInfo(id=guild_id, name=name, owner_id=owner_id, member_count=3)
        self.guilds[guild_id] = guild
        return guild

    def add_member(self, guild_id: str, user_id: str, *roles: str, bot: bool = False) -> MemberInfo:
        member = MemberInfo(id=user_id, display_name=f"user-{user_id}", bot=bot, role_ids=list(roles))
        self.members[(guild_id, user_id)] = member
        return member

    def add_role(self, guild_id: str, role_id: str, name: str | None = None) -> RoleInfo:
        role = RoleInfo(id=role_id, name=name or f"role-{role_id}")
        self.roles[(guild_id, role_id)] = role
        return role

    def add_channel(self, guild_id: str, channel_id: str, is_text: bool = True) -> ChannelInfo:
        channel = ChannelInfo(id=channel_id, name=f"channel-{channel_id}", is_text=is_text)
        self.channels[(guild_id, channel_id)] = channel
        return channel

    def calls_named(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]

    # ── ChatClient ──

    @property
    def user_id(self) -> str:
        return BOT_ID

    def guild_ids(self) -> list[str]:
        return list(self.guilds)

    async def fetch_guild(self, guild_id: str) -> GuildInfo | None:
        return self.guilds.get(guild_id)

    async def fetch_member(self, guild_id: str, user_id: str) -> MemberInfo | None:
        return self.members.get((guild_id, user_id))

    async def set_member_roles(self, guild_id: str, user_id: str, role_ids: list[str]) -> None:
        self.calls.append(("set_member_roles", (guild_id, user_id, list(role_ids))))
        self.members[(guild_id, user_id)].role_ids = list(role_ids)

    async def add_member_roles(self, guild_id: str, user_id: str, role_ids: list[str]) -> None:
        self.calls.append(("add_member_roles", (guild_id, user_id, list(role_ids))))
        member = self.members[(guild_id, user_id)]
        member.role_ids = list(dict.fromkeys(member.role_ids + role_ids))

    async def remove_member_roles(self, guild_id: str, user_id: str, role_ids: list[str]) -> None:
        self.calls.append(("remove_member_roles", (guild_id, user_id, list(role_ids))))
        member = self.members[(guild_id, user_id)]
        member.role_ids = [role for role in member.role_ids if role not in role_ids]

    async def fetch_role(self, guild_id: str, role_id: str) -> RoleInfo | None:
        return self.roles.get((guild_id, role_id))

    async def fetch_channel(self, guild_id: str, channel_id: str) -> ChannelInfo | None:
        return self.channels.get((guild_id, channel_id))

    async def send_message(self, channel_id: str, payload: MessagePayload) -> str:
        message_id = str(next(self._ids))
        self.messages[message_id] = {"channel_id": channel_id, "payload": payload}
        self.calls.append(("send_message", (channel_id, message_id)))
        return message_id

    async def edit_message(self, channel_id: str, message_id: str, payload: MessagePayload) -> None:
        self.calls.append(("edit_message", (channel_id, message_id)))
        self.messages[message_id] = {"channel_id": channel_id, "payload": payload}

    async def delete_message(self, channel_id: str, message_id: str) -> bool:
        self.calls.append(("delete_message", (channel_id, message_id)))
        return self.messages.pop(message_id, None) is not None

    async def message_exists(self, channel_id: str, message_id: str) -> bool:
        return message_id in self.messages

    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None:
        self.calls.append(("add_reaction", (channel_id, message_id, emoji)))
        users = self.reactions.setdefault((channel_id, message_id), {}).setdefault(emoji, [])
        if BOT_ID not in users:
            users.append(BOT_ID)

    async def fetch_reaction_users(self, channel_id: str, message_id: str) -> dict[str, list[str]]:
        return {
            emoji: list(users)
            for emoji, users in self.reactions.get((channel_id, message_id), {}).items()
        }

    async def remove_user_reaction(
        self, channel_id: str, message_id: str, emoji: str, user_id: str
    ) -> None:
        self.calls.append(("remove_user_reaction", (channel_id, message_id, emoji, user_id)))
        users = self.reactions.get((channel_id, message_id), {}).get(emoji, [])
        if user_id in users:
            users.remove(user_id)
        if self.dispatch_removals:
            guild_id = next(
                (gid for (gid, cid) in self.channels if cid == channel_id), None
            )
            await self.dispatch(
                GatewayEvent.REACTION_REMOVE,
                ReactionEvent(guild_id, channel_id, message_id, user_id, emoji),
            )

    async def clear_reactions(self, channel_id: str, message_id: str) -> None:
        self.calls.append(("clear_reactions", (channel_id, message_id)))
        self.reactions.pop((channel_id, message_id), None)

    async def register_guild_commands(
        self, guild_id: str, payloads: list[dict[str, Any]]
    ) -> dict[str, str]:
        if guild_id in self.failing_guilds:
            raise RuntimeError(f"guild {guild_id} rejected the commands")
        self.registered[guild_id] = payloads
        return {payload["name"]: f"cmd-{payload['name']}" for payload in payloads}

    async def set_command_permissions(
        self, guild_id: str, command_ids: list[str], user_ids: list[str]
    ) -> None:
        self.permissions[guild_id] = list(user_ids)

    # ── simulation ──

    async def react(self, guild_id: str, channel_id: str, message_id: str, user_id: str, emoji: str) -> None:
        users = self.reactions.setdefault((channel_id, message_id), {}).setdefault(emoji, [])
        if user_id not in users:
            users.append(user_id)
        await self.dispatch(
            GatewayEvent.REACTION_ADD,
            ReactionEvent(guild_id, channel_id, message_id, user_id, emoji),
        )

    async def unreact(self, guild_id: str, channel_id: str, message_id: str, user_id: str, emoji: str) -> None:
        users = self.reactions.get((channel_id, message_id), {}).get(emoji, [])
        if user_id in users:
            users.remove(user_id)
        await self.dispatch(
            GatewayEvent.REACTION_REMOVE,
            ReactionEvent(guild_id, channel_id, message_id, user_id, emoji),
        )


class FakeInteraction(Interaction):
    """Records every reply instead of talking to a chat service."""

    def __init__(self, kind: InteractionKind = InteractionKind.COMMAND, **fields: Any) -> None:
        fields.setdefault("guild_id", "g1")
        fields.setdefault("channel_id", "c1")
        fields.setdefault("user_id", "u1")
        fields.setdefault("user_name", "tester")
        super().__init__(kind, **fields)
        self.sent: list[tuple[MessagePayload, bool]] = []
        self.edits: list[MessagePayload] = []

    @property
    def last_text(self) -> str:
        payload = self.edits[-1] if self.edits else self.sent[-1][0]
        return payload.content or ""

    @property
    def last_payload(self) -> MessagePayload:
        return self.edits[-1] if self.edits else self.sent[-1][0]

    async def _send_reply(self, payload: MessagePayload, ephemeral: bool) -> None:
        self.sent.append((payload, ephemeral))

    async def _edit_reply(self, payload: MessagePayload) -> None:
        self.edits.append(payload)

    async def _defer(self, ephemeral: bool) -> None:
        pass


def command(name: str, subcommand: str | None = None, group: str | None = None, **options: Any) -> FakeInteraction:
    return FakeInteraction(
        InteractionKind.COMMAND,
        name=name,
        subcommand=subcommand,
        subcommand_group=group,
        options=options,
    )
