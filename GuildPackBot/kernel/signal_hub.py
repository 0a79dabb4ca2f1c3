"""
信号中枢 - 基于发布/订阅模式的类型化事件系统
Signal Hub - typed event system based on publish/subscribe pattern.

信号中枢由运行时显式持有并作为协作者传递，而不是全局单例。
The hub is owned by the runtime and passed around as an explicit
collaborator rather than living as a global emitter.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SignalKind(str, Enum):
    """
    预定义的信号类型 / Predefined signal kinds.
    """

    # 系统信号
    SYSTEM_READY = "system.ready"
    SYSTEM_SHUTDOWN = "system.shutdown"

    # 扩展包运行时信号，负载为扩展包名称
    DEPENDENCY_RESOLVED = "dependency-resolved"
    PACK_FAILED = "pack-failed"

    # 命令部署信号，负载为服务器 ID
    GUILD_COMMANDS_DEPLOYED = "guild-commands-deployed"


@dataclass
class Signal:
    """
    信号对象 - 在系统中传递的消息载体
    Signal object - the message carrier in the system.
    """

    kind: SignalKind | str
    payload: Any = None
    source: str = ""


@dataclass
class SlotBinding:
    """
    槽绑定 - 将处理器绑定到信号上
    Slot binding - binds a handler to a signal.
    """

    signal_kind: SignalKind | str
    handler: Callable[..., Any]
    slot_id: str = ""


def _kind_key(kind: SignalKind | str) -> str:
    return kind.value if isinstance(kind, SignalKind) else kind


class SignalHub:
    """
    信号中枢 - 管理所有信号的订阅和分发
    Signal hub - manages all signal subscriptions and dispatching.

    处理器按连接顺序执行；处理器抛出的异常会被记录，不会中断其余处理器。
    Handlers run in connection order; a failing handler is logged and the
    remaining handlers still receive the signal.
    """

    def __init__(self) -> None:
        # 信号类型 -> 槽绑定列表
        self._slots: dict[str, list[SlotBinding]] = {}
        self._counter = 0

    def connect(self, signal_kind: SignalKind | str, handler: Callable[..., Any]) -> str:
        """
        连接处理器到信号
        Connect a handler to a signal kind.

        返回 slot_id，可用于 disconnect。
        Returns slot_id for later disconnection.
        """
        kind_key = _kind_key(signal_kind)
        self._counter += 1
        slot_id = f"slot_{self._counter}"

        self._slots.setdefault(kind_key, []).append(
            SlotBinding(signal_kind=signal_kind, handler=handler, slot_id=slot_id)
        )

        logger.debug("已连接槽 %s 到信号 %s", slot_id, kind_key)
        return slot_id

    def disconnect(self, slot_id: str) -> bool:
        """
        断开指定 slot 的连接
        Disconnect a specific slot.
        """
        for bindings in self._slots.values():
            for binding in bindings:
                if binding.slot_id == slot_id:
                    bindings.remove(binding)
                    logger.debug("已断开槽 %s", slot_id)
                    return True
        return False

    async def emit(self, signal: Signal) -> Signal:
        """
        发射信号，触发所有匹配的处理器
        Emit a signal, triggering all matching handlers.

        处理器在分发期间可以安全地连接或断开槽。
        Handlers may connect or disconnect slots while the signal is dispatched.
        """
        kind_key = _kind_key(signal.kind)
        # 快照，允许处理器在分发期间修改订阅
        bindings = list(self._slots.get(kind_key, []))

        for binding in bindings:
            # 已在分发过程中被断开
            if binding not in self._slots.get(kind_key, []):
                continue

            try:
                result = binding.handler(signal)
                if asyncio.iscoroutine(result) or asyncio.isfuture(result):
                    await result
            except Exception:
                logger.exception(
                    "信号处理器 %s 处理 %s 时出错",
                    binding.slot_id,
                    kind_key,
                )

        return signal

    async def emit_new(
        self,
        kind: SignalKind | str,
        payload: Any = None,
        source: str = "",
    ) -> Signal:
        """
        便捷方法：创建并发射一个新信号
        Convenience: create and emit a new signal.
        """
        return await self.emit(Signal(kind=kind, payload=payload, source=source))

    def slot_count(self, signal_kind: SignalKind | str | None = None) -> int:
        """获取槽绑定数量 / Get the number of slot bindings."""
        if signal_kind is None:
            return sum(len(bindings) for bindings in self._slots.values())
        return len(self._slots.get(_kind_key(signal_kind), []))

    def clear(self) -> None:
        """清除所有槽绑定 / Clear all slot bindings."""
        self._slots.clear()
