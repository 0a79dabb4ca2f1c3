"""
扩展包基类 - 所有扩展包的父类
Pack base - parent of all extension packs.

扩展包通过类属性 pack_name 与 dependencies 描述自己，依赖按声明顺序注入构造函数。
A pack describes itself through the pack_name and dependencies class
attributes; dependencies are injected positionally into the constructor
in declared order.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from GuildPackBot.gateway.events import Interaction
    from GuildPackBot.pack.slash import SlashCommand

logger = logging.getLogger(__name__)


class Pack:
    """
    扩展包基类 - 内置与用户扩展包都继承此类
    Pack base - built-in and user packs inherit from this.

    生命周期：
    1. __init__(*dependencies) - 按声明顺序注入依赖
    2. start() - 构造后立即调用，完成后才算上线
    3. stop() - 卸载前调用，此时依赖不一定仍在线
    """

    pack_name: ClassVar[str] = ""
    dependencies: ClassVar[list[str]] = []

    @property
    def name(self) -> str:
        """包名 / Pack name."""
        return type(self).pack_name

    async def start(self) -> None:
        """
        上线时调用 - 可在此处进行初始化
        Called right after construction; the pack is live once this returns.
        """

    async def stop(self) -> None:
        """
        卸载时调用 - 可在此处进行清理
        Called before the pack is removed from the live registry.
        """


class CommandPack(Pack):
    """
    命令扩展包 - 一个斜杠命令对应一个扩展包
    Command pack - one slash command per pack.
    """

    command_name: ClassVar[str] = ""
    data: ClassVar[SlashCommand]

    async def on_command_interaction(self, interaction: Interaction) -> None:
        """
        每次用户调用该命令时执行
        Runs every time a user invokes the command.
        """
        raise NotImplementedError


def is_pack_class(candidate: Any) -> bool:
    """
    检查对象是否为可用的扩展包类
    Check whether an object is a usable pack class.
    """
    if not isinstance(candidate, type):
        return False

    name = getattr(candidate, "pack_name", None)
    if not isinstance(name, str) or not name:
        return False

    deps = getattr(candidate, "dependencies", None)
    if not isinstance(deps, (list, tuple)):
        return False
    if not all(isinstance(dep, str) for dep in deps):
        return False

    return callable(getattr(candidate, "start", None)) and callable(
        getattr(candidate, "stop", None)
    )


def is_command_pack(candidate: Any) -> bool:
    """
    检查实例是否满足命令扩展包的形状
    Check whether a live instance has the shape of a command pack.
    """
    data = getattr(candidate, "data", None)
    if data is None:
        return False
    if not isinstance(getattr(data, "name", None), str):
        return False
    if not isinstance(getattr(data, "description", None), str):
        return False
    if not isinstance(getattr(candidate, "command_name", None), str):
        return False
    return callable(getattr(candidate, "on_command_interaction", None))
