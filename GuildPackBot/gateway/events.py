"""
网关事件 - 聊天服务推送给扩展包的事件与查询结果
Gateway events - events and lookup results handed to packs.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from GuildPackBot.gateway.components import MessagePayload
from GuildPackBot.pack.errors import CommandError


class GatewayEvent(str, Enum):
    """网关事件类型 / Gateway event kinds."""

    READY = "ready"
    INTERACTION = "interaction"
    GUILD_JOIN = "guild_join"
    REACTION_ADD = "reaction_add"
    REACTION_REMOVE = "reaction_remove"


class InteractionKind(str, Enum):
    """交互类型 / Interaction kind."""

    COMMAND = "command"
    BUTTON = "button"


@dataclass
class GuildInfo:
    """服务器信息 / Guild info."""

    id: str
    name: str = ""
    owner_id: str = ""
    member_count: int = 0


@dataclass
class MemberInfo:
    """成员信息 / Member info."""

    id: str
    display_name: str = ""
    bot: bool = False
    role_ids: list[str] = field(default_factory=list)


@dataclass
class RoleInfo:
    """身份组信息 / Role info."""

    id: str
    name: str = ""


@dataclass
class ChannelInfo:
    """频道信息 / Channel info."""

    id: str
    name: str = ""
    is_text: bool = True


@dataclass
class ReactionEvent:
    """
    表情回应事件
    Reaction add/remove event.
    """

    guild_id: str | None
    channel_id: str
    message_id: str
    user_id: str
    emoji: str


class Interaction(ABC):
    """
    交互 - 命令调用或按钮点击
    Interaction - a command invocation or a button press.

    选项已被展开为 名称 -> 值 的字典，子命令与子命令组单独记录。
    Options are flattened into a name -> value dict, with the subcommand and
    subcommand group recorded separately.
    """

    def __init__(
        self,
        kind: InteractionKind,
        *,
        name: str = "",
        custom_id: str = "",
        guild_id: str | None = None,
        channel_id: str = "",
        user_id: str = "",
        user_name: str = "",
        options: dict[str, Any] | None = None,
        subcommand: str | None = None,
        subcommand_group: str | None = None,
        created_at: float | None = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.custom_id = custom_id
        self.guild_id = guild_id
        self.channel_id = channel_id
        self.user_id = user_id
        self.user_name = user_name
        self.options = options or {}
        self.subcommand = subcommand
        self.subcommand_group = subcommand_group
        self.created_at = created_at if created_at is not None else time.time()
        self.replied = False
        self.deferred = False

    @property
    def in_guild(self) -> bool:
        return self.guild_id is not None

    def get_option(self, name: str, required: bool = False) -> Any:
        """
        获取选项值，必填选项缺失时抛出 CommandError
        Get an option value, raising CommandError when a required one is missing.
        """
        value = self.options.get(name)
        if required and value in (None, ""):
            raise CommandError(f"Missing required option `{name}`.")
        return value

    def require_guild(self) -> str:
        """仅允许在服务器内执行 / Only allow execution inside a guild."""
        if self.guild_id is None:
            raise CommandError("This command is only executable in guild text-channels.")
        return self.guild_id

    async def reply(
        self, payload: MessagePayload | str, *, ephemeral: bool = False
    ) -> None:
        """回复交互 / Reply to the interaction."""
        await self._send_reply(MessagePayload.of(payload), ephemeral)
        self.replied = True

    async def edit_reply(self, payload: MessagePayload | str) -> None:
        """编辑已发送或已延迟的回复 / Edit the sent or deferred reply."""
        await self._edit_reply(MessagePayload.of(payload))
        self.replied = True

    async def defer(self, *, ephemeral: bool = False) -> None:
        """延迟回复 / Defer the reply."""
        await self._defer(ephemeral)
        self.deferred = True

    @abstractmethod
    async def _send_reply(self, payload: MessagePayload, ephemeral: bool) -> None: ...

    @abstractmethod
    async def _edit_reply(self, payload: MessagePayload) -> None: ...

    @abstractmethod
    async def _defer(self, ephemeral: bool) -> None: ...
