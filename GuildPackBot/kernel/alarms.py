"""
闹钟 - 按键去抖的一次性定时任务
Alarm clock - keyed, one-shot timers for debouncing.

同一个键上重新调度会取消之前的闹钟，最后一次调度生效。
Scheduling under a key that already has an alarm cancels the old one, so
the last schedule always wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

AlarmCallback = Callable[[], Awaitable[None]]


class AlarmClock:
    """
    闹钟 - 在事件循环上调度按键区分的延迟回调
    Alarm clock - schedules keyed, delayed callbacks on the event loop.
    """

    def __init__(self) -> None:
        # 键 -> 等待触发的任务
        self._alarms: dict[Hashable, asyncio.Task[None]] = {}

    def schedule(
        self, key: Hashable, delay: float, callback: AlarmCallback
    ) -> asyncio.Task[None]:
        """
        调度一个闹钟，取消同键的旧闹钟
        Schedule an alarm, cancelling any previous alarm under the same key.
        """
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(
            self._fire(key, delay, callback)
        )
        self._alarms[key] = task
        return task

    async def _fire(self, key: Hashable, delay: float, callback: AlarmCallback) -> None:
        await asyncio.sleep(delay)

        # 触发后不再视为等待中
        if self._alarms.get(key) is asyncio.current_task():
            del self._alarms[key]

        try:
            await callback()
        except Exception:
            logger.exception("闹钟 %r 回调执行出错", key)

    def cancel(self, key: Hashable) -> bool:
        """
        取消指定键的闹钟
        Cancel the alarm under a key.
        """
        task = self._alarms.pop(key, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all(self) -> None:
        """取消所有闹钟 / Cancel every pending alarm."""
        for task in self._alarms.values():
            task.cancel()
        self._alarms.clear()

    def pending(self, key: Hashable) -> bool:
        """检查键上是否有等待中的闹钟 / Whether an alarm is pending for a key."""
        return key in self._alarms

    def __len__(self) -> int:
        return len(self._alarms)

    async def wait_idle(self) -> None:
        """
        等待所有当前闹钟触发完毕
        Wait until every currently scheduled alarm has fired.
        """
        while self._alarms:
            await asyncio.gather(*self._alarms.values(), return_exceptions=True)
