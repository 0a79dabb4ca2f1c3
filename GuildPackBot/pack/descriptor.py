"""
包描述符 - 扩展包的静态元数据
Pack descriptor - static metadata of an extension pack.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from GuildPackBot.pack.base import is_pack_class
from GuildPackBot.pack.errors import PackLoadError


@dataclass(frozen=True)
class PackDescriptor:
    """
    包描述符 - 名称、依赖与构造工厂
    Pack descriptor - name, dependencies and constructing factory.
    """

    # 包名（唯一标识，区分大小写）
    name: str
    # 依赖列表，顺序即构造函数的注入顺序
    dependencies: tuple[str, ...] = ()
    factory: Callable[..., Any] | None = field(default=None, compare=False)
    # 来源文件路径
    source: str = ""

    @classmethod
    def from_class(cls, pack_cls: Any, source: str = "") -> PackDescriptor:
        """
        从扩展包类构建描述符，校验其静态形状
        Build a descriptor from a pack class, validating its static shape.
        """
        if not is_pack_class(pack_cls):
            raise PackLoadError(
                f"{pack_cls!r} is not a pack class: it needs a non-empty string "
                "pack_name, a list of string dependencies and start/stop methods"
            )
        return cls(
            name=pack_cls.pack_name,
            dependencies=tuple(pack_cls.dependencies),
            factory=pack_cls,
            source=source,
        )

    def to_dict(self) -> dict[str, Any]:
        """转为字典 / Convert to dictionary."""
        return {
            "name": self.name,
            "dependencies": list(self.dependencies),
            "source": self.source,
        }
