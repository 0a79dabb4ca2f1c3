"""
扩展包错误 - 加载错误与命令错误
Pack errors - load errors and command errors.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from GuildPackBot.gateway.events import Interaction

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = (
    "We've encountered an unexpected error. "
    "If this happens regularly, please notify the server admin."
)


class PackLoadError(Exception):
    """扩展包形状非法或请求了不允许的依赖 / Malformed pack or forbidden dependency."""


class UnresolvedDependencyError(RuntimeError):
    """
    构造时依赖缺失 - 解析器的不变量被破坏
    A dependency was missing at construction time; the resolver's invariant broke.
    """

    def __init__(self, pack_name: str, dependency: str) -> None:
        super().__init__(
            f'Unresolved dependency found for "{pack_name}". '
            f'The pack "{dependency}" should have been initialized beforehand.'
        )
        self.pack_name = pack_name
        self.dependency = dependency


class DependencyCycleError(PackLoadError):
    """扩展包之间存在循环依赖 / Packs wait on each other in a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        super().__init__("Dependency cycle detected: " + " -> ".join(cycle))
        self.cycle = cycle


class CommandError(Exception):
    """
    命令错误 - 区分用户造成的错误与内部错误
    Command error - separates user-caused rejections from internal failures.

    用户错误会原样展示给用户；内部错误带上前缀展示。
    User-caused errors are shown verbatim; internal ones get a prefix.
    """

    def __init__(self, reason: str, user_caused: bool = True) -> None:
        super().__init__(reason)
        self.reason = reason
        self.user_caused = user_caused


def format_error_reply(error: BaseException | str | None = None) -> str:
    """
    生成错误回复文本
    Render the reply text shown to the user for an error.
    """
    if isinstance(error, CommandError):
        message = (
            error.reason
            if error.user_caused
            else f"Unexpected server error: {error.reason}"
        )
    elif isinstance(error, str) and error:
        message = error
    else:
        message = GENERIC_ERROR_MESSAGE
    return f":x: {message}"


async def reply_error(
    interaction: Interaction, error: BaseException | str | None = None
) -> None:
    """
    以仅自己可见的消息回复错误，已回复或已延迟时改为编辑回复
    Reply ephemerally with an error, editing the reply once it was sent or deferred.
    """
    content = format_error_reply(error)
    if interaction.replied or interaction.deferred:
        await interaction.edit_reply(content)
    else:
        await interaction.reply(content, ephemeral=True)
