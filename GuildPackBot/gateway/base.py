"""
聊天客户端基类 - 注入给扩展包的 "client" 能力
Chat client base - the "client" capability injected into packs.

扩展包只通过这个窄接口访问聊天服务：事件监听、服务器/成员/身份组查询、
消息收发与命令注册。
Packs reach the chat service only through this narrow interface: event
listeners, guild/member/role lookups, messaging and command registration.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from GuildPackBot.gateway.components import MessagePayload
from GuildPackBot.gateway.events import (
    ChannelInfo,
    GatewayEvent,
    GuildInfo,
    MemberInfo,
    RoleInfo,
)

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Awaitable[None]]


class ChatClient(ABC):
    """
    聊天客户端抽象基类
    Chat client abstract base.

    网关事件按注册顺序分发给监听器，单个监听器出错不会影响其他监听器。
    Gateway events reach listeners in registration order; a failing listener
    does not affect the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[GatewayEvent, list[Listener]] = {}

    @property
    @abstractmethod
    def user_id(self) -> str:
        """机器人自身的用户 ID / The bot's own user id."""

    def add_listener(self, event: GatewayEvent, handler: Listener) -> None:
        """
        注册事件监听器
        Register an event listener.
        """
        self._listeners.setdefault(event, []).append(handler)

    def remove_listener(self, event: GatewayEvent, handler: Listener) -> bool:
        """
        移除事件监听器
        Remove an event listener.
        """
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def listener_count(self, event: GatewayEvent) -> int:
        return len(self._listeners.get(event, []))

    async def dispatch(self, event: GatewayEvent, payload: Any = None) -> None:
        """
        把网关事件分发给所有监听器
        Dispatch a gateway event to every listener.
        """
        for handler in list(self._listeners.get(event, [])):
            try:
                await handler(payload)
            except Exception:
                logger.exception("网关事件 %s 的监听器出错", event.value)

    # ── 服务器与成员 ──

    @abstractmethod
    def guild_ids(self) -> list[str]:
        """机器人所在的所有服务器 / All guilds the bot is in."""

    @abstractmethod
    async def fetch_guild(self, guild_id: str) -> GuildInfo | None: ...

    @abstractmethod
    async def fetch_member(self, guild_id: str, user_id: str) -> MemberInfo | None: ...

    @abstractmethod
    async def set_member_roles(
        self, guild_id: str, user_id: str, role_ids: list[str]
    ) -> None:
        """一次性替换成员的全部身份组 / Replace a member's whole role set."""

    @abstractmethod
    async def add_member_roles(
        self, guild_id: str, user_id: str, role_ids: list[str]
    ) -> None: ...

    @abstractmethod
    async def remove_member_roles(
        self, guild_id: str, user_id: str, role_ids: list[str]
    ) -> None: ...

    @abstractmethod
    async def fetch_role(self, guild_id: str, role_id: str) -> RoleInfo | None: ...

    @abstractmethod
    async def fetch_channel(
        self, guild_id: str, channel_id: str
    ) -> ChannelInfo | None: ...

    # ── 消息 ──

    @abstractmethod
    async def send_message(self, channel_id: str, payload: MessagePayload) -> str:
        """发送消息并返回消息 ID / Send a message and return its id."""

    @abstractmethod
    async def edit_message(
        self, channel_id: str, message_id: str, payload: MessagePayload
    ) -> None: ...

    @abstractmethod
    async def delete_message(self, channel_id: str, message_id: str) -> bool: ...

    @abstractmethod
    async def message_exists(self, channel_id: str, message_id: str) -> bool: ...

    @abstractmethod
    async def add_reaction(self, channel_id: str, message_id: str, emoji: str) -> None: ...

    @abstractmethod
    async def fetch_reaction_users(
        self, channel_id: str, message_id: str
    ) -> dict[str, list[str]]:
        """表情 -> 回应过的用户 ID 列表 / Emoji -> ids of users who reacted."""

    @abstractmethod
    async def remove_user_reaction(
        self, channel_id: str, message_id: str, emoji: str, user_id: str
    ) -> None: ...

    @abstractmethod
    async def clear_reactions(self, channel_id: str, message_id: str) -> None: ...

    # ── 命令 ──

    @abstractmethod
    async def register_guild_commands(
        self, guild_id: str, payloads: list[dict[str, Any]]
    ) -> dict[str, str]:
        """
        覆盖服务器的命令集合，返回 命令名 -> 命令 ID
        Overwrite a guild's command set and return command name -> command id.
        """

    @abstractmethod
    async def set_command_permissions(
        self, guild_id: str, command_ids: list[str], user_ids: list[str]
    ) -> None:
        """允许指定用户使用这些命令 / Allow the given users to use these commands."""
