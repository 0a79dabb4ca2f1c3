"""
微内核模块 - 框架的最小化核心
Microkernel module - the minimal core of the framework.

包含能力注册表、信号中枢、定时器和启动引导。
Contains the capability registry, signal hub, alarm clock and bootstrap logic.
"""

from GuildPackBot.kernel.alarms import AlarmClock
from GuildPackBot.kernel.container import CapabilityRegistry
from GuildPackBot.kernel.signal_hub import Signal, SignalHub, SignalKind

__all__ = ["AlarmClock", "CapabilityRegistry", "Signal", "SignalHub", "SignalKind"]
