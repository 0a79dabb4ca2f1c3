"""
扩展包系统 - Pack 是 GuildPackBot 的核心扩展机制
Pack system - Pack is the core extension mechanism of GuildPackBot.

扩展包通过类属性声明名称与依赖，由加载器解析依赖并按声明顺序注入构造函数。
Packs declare their name and dependencies as class attributes; the loader
resolves the dependencies and injects them into the constructor in order.
"""

from GuildPackBot.pack.base import CommandPack, Pack
from GuildPackBot.pack.descriptor import PackDescriptor
from GuildPackBot.pack.errors import (
    CommandError,
    DependencyCycleError,
    PackLoadError,
    UnresolvedDependencyError,
)
from GuildPackBot.pack.loader import LoadReport, PackLoader, discover

__all__ = [
    "CommandError",
    "CommandPack",
    "DependencyCycleError",
    "LoadReport",
    "Pack",
    "PackDescriptor",
    "PackLoadError",
    "PackLoader",
    "UnresolvedDependencyError",
    "discover",
]
