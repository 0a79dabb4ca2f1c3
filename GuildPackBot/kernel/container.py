"""
能力注册表 - 在任何扩展包加载前注入的共享对象
Capability registry - shared objects seeded before any pack loads.

扩展包通过名称声明依赖，保留名称（如 "client"、"config"）直接解析为这里登记的实例。
Packs declare dependencies by name; reserved names such as "client" and
"config" resolve to the instances registered here.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

CLIENT = "client"
CONFIG = "config"
PACK_LOADER = "pack_loader"


class CapabilityRegistry:
    """
    能力注册表 - 名称到既有对象的映射
    Capability registry - a mapping from well-known names to existing objects.
    """

    def __init__(self) -> None:
        # 名称 -> 实例（保持插入顺序）
        self._capabilities: dict[str, Any] = {}

    def register(self, name: str, instance: Any) -> None:
        """
        登记一个能力实例
        Register a capability instance under a name.
        """
        if not name:
            raise ValueError("Capability name must be a non-empty string")
        if name in self._capabilities:
            raise KeyError(f"Capability already registered: {name}")

        self._capabilities[name] = instance
        logger.debug("已登记能力: %s (%s)", name, type(instance).__name__)

    def get(self, name: str) -> Any:
        """
        按名称获取能力
        Get a capability by name.
        """
        try:
            return self._capabilities[name]
        except KeyError:
            raise KeyError(f"Capability not found: {name}") from None

    def has(self, name: str) -> bool:
        """检查是否登记了指定名称 / Check if a name is registered."""
        return name in self._capabilities

    def names(self) -> list[str]:
        """获取所有能力名称 / Get all capability names."""
        return list(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities
