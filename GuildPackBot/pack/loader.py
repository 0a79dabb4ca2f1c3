"""
包加载器 - 发现、解析依赖、注入并管理扩展包的生命周期
Pack loader - discovers packs, resolves their dependencies, injects them
and manages their lifecycle.
"""

from __future__ import annotations

import importlib.util
import logging
import re
import sys
from collections import deque
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import ModuleType
from typing import Any

from GuildPackBot.kernel.container import PACK_LOADER, CapabilityRegistry
from GuildPackBot.kernel.signal_hub import SignalHub, SignalKind
from GuildPackBot.pack.base import is_pack_class
from GuildPackBot.pack.descriptor import PackDescriptor
from GuildPackBot.pack.errors import (
    DependencyCycleError,
    PackLoadError,
    UnresolvedDependencyError,
)
from GuildPackBot.pack.graph import DependencyGraph

logger = logging.getLogger(__name__)

# 允许请求加载器本身作为依赖的扩展包
TRUSTED_PACKS = ("commandInteraction",)


@dataclass
class LoadReport:
    """
    一次加载的结果
    Outcome of one load call.
    """

    loaded: list[str] = field(default_factory=list)
    stalled: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def found(self) -> list[str]:
        return self.loaded + self.stalled


def _module_name(path: Path) -> str:
    raw = f"guildpack_{path.parent.name}_{path.stem}"
    return re.sub(r"[^0-9A-Za-z_]", "_", raw)


def _import_file(path: Path) -> ModuleType:
    name = _module_name(path)
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise PackLoadError(f"Cannot import pack file: {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


def _find_pack_class(module: ModuleType) -> Any:
    # 显式声明优先
    declared = getattr(module, "__pack__", None)
    if declared is not None:
        return declared

    candidates = [
        attr
        for attr in vars(module).values()
        if is_pack_class(attr) and attr.__module__ == module.__name__
    ]
    if len(candidates) != 1:
        raise PackLoadError(
            f"Expected exactly one pack class in {module.__name__}, "
            f"found {len(candidates)}; set __pack__ to pick one"
        )
    return candidates[0]


def discover(directory: str | Path) -> list[PackDescriptor]:
    """
    扫描目录（不递归），按文件名排序返回描述符
    Scan a directory (non-recursive) and return descriptors in file-name order.

    形状非法的文件只记录诊断并跳过。
    Files that fail shape validation are logged and skipped.
    """
    root = Path(directory)
    if not root.is_dir():
        logger.warning("扩展包目录不存在: %s", root)
        return []

    descriptors: list[PackDescriptor] = []
    for path in sorted(root.glob("*.py")):
        if path.name.startswith("_"):
            continue
        try:
            module = _import_file(path)
            descriptors.append(
                PackDescriptor.from_class(_find_pack_class(module), str(path))
            )
        except PackLoadError as exc:
            logger.warning("跳过未知的扩展包文件 %s: %s", path.name, exc)
        except Exception:
            logger.exception("导入扩展包文件失败: %s", path)
    return descriptors


class PackLoader:
    """
    包加载器 - 依赖解析、依赖注入与生命周期管理
    Pack loader - dependency resolution, injection and lifecycle management.

    每个扩展包在任意时刻只处于等待集合或在线注册表之一。
    A pack is in exactly one of the waiting set or the live registry at a time.
    """

    def __init__(
        self,
        registry: CapabilityRegistry,
        signals: SignalHub | None = None,
        trusted: tuple[str, ...] = TRUSTED_PACKS,
    ) -> None:
        self._registry = registry
        self.signals = signals or SignalHub()
        self._trusted = frozenset(trusted)
        # 在线扩展包，按上线顺序排列
        self._live: dict[str, Any] = {}
        # 已读取描述符但依赖尚未满足的扩展包
        self._waiting: dict[str, PackDescriptor] = {}
        # 正在构造或启动中的扩展包
        self._starting: set[str] = set()
        self._graph = DependencyGraph()
        self._queue: deque[str] = deque()
        # 解析过程中启动失败的扩展包
        self._failures: list[str] = []

        if not registry.has(PACK_LOADER):
            registry.register(PACK_LOADER, self)

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def get(self, name: str) -> Any:
        """获取在线扩展包实例 / Get a live pack instance."""
        return self._live.get(name)

    def is_live(self, name: str) -> bool:
        return name in self._live

    def is_waiting(self, name: str) -> bool:
        return name in self._waiting

    def live_names(self) -> list[str]:
        return list(self._live)

    def waiting_names(self) -> list[str]:
        return list(self._waiting)

    def _is_available(self, name: str) -> bool:
        return name in self._live or self._registry.has(name)

    def _is_known(self, name: str) -> bool:
        return (
            name in self._live
            or name in self._waiting
            or name in self._starting
            or self._registry.has(name)
        )

    async def load_packs(self, directory: str | Path) -> LoadReport:
        """
        扫描目录并加载其中的扩展包
        Scan a directory and load the packs in it.
        """
        report = await self.register(discover(directory))
        logger.info(
            "目录 %s: 已加载 %d 个，等待中 %d 个，失败 %d 个",
            directory,
            len(report.loaded),
            len(report.stalled),
            len(report.failed),
        )
        return report

    async def register(self, descriptors: list[PackDescriptor]) -> LoadReport:
        """
        按顺序处理一组描述符
        Process a list of descriptors in order.

        返回前解析队列已被完全清空。
        The resolution queue is fully drained before this returns.
        """
        report = LoadReport()
        for descriptor in descriptors:
            await self._register_one(descriptor, report)
        return report

    async def _register_one(self, descriptor: PackDescriptor, report: LoadReport) -> None:
        name = descriptor.name

        if self._is_known(name):
            logger.warning(
                "无法加载扩展包 %s (%s): 已存在同名扩展包", name, descriptor.source
            )
            report.failed.append(name)
            return

        if PACK_LOADER in descriptor.dependencies and name not in self._trusted:
            logger.error("扩展包 %s 无权请求 %s", name, PACK_LOADER)
            report.failed.append(name)
            return

        if name in descriptor.dependencies:
            logger.warning("扩展包 %s 把自己声明为依赖，已忽略该项", name)
            descriptor = replace(
                descriptor,
                dependencies=tuple(d for d in descriptor.dependencies if d != name),
            )

        open_deps: list[str] = []
        for dep in descriptor.dependencies:
            if not self._is_available(dep) and dep not in open_deps:
                open_deps.append(dep)

        if open_deps:
            self._graph.add_wait(name, open_deps)
            self._waiting[name] = descriptor
            report.stalled.append(name)
            logger.info("扩展包 %s 等待依赖: %s", name, ", ".join(open_deps))
            self._reject_cycle(name, report)
            return

        mark = len(self._failures)
        if await self._bring_live(descriptor):
            report.loaded.append(name)
            self.enqueue_resolution(name)
            await self.drain_resolution_queue()
        else:
            report.failed.append(name)
        report.failed.extend(self._failures[mark:])

    def _reject_cycle(self, name: str, report: LoadReport) -> None:
        cycle = self._graph.find_cycle(name)
        if cycle is None:
            return

        logger.error("%s", DependencyCycleError(cycle))
        for member in dict.fromkeys(cycle):
            self._graph.discard(member)
            self._waiting.pop(member, None)
            if member in report.stalled:
                report.stalled.remove(member)
            report.failed.append(member)

    def enqueue_resolution(self, name: str) -> None:
        """把刚上线的名称放入解析队列 / Queue a newly available name."""
        self._queue.append(name)

    async def drain_resolution_queue(self) -> None:
        """
        广度优先地处理解析队列直至为空
        Drain the resolution queue breadth-first until it is empty.
        """
        while self._queue:
            await self._resolve_dependees(self._queue.popleft())

    async def _resolve_dependees(self, name: str) -> None:
        for pack_name in self._graph.satisfy(name):
            descriptor = self._waiting.pop(pack_name, None)
            if descriptor is None:
                logger.error("扩展包 %s 在等待依赖期间丢失", pack_name)
                continue

            if await self._bring_live(descriptor):
                logger.info("扩展包 %s 的依赖已全部满足", pack_name)
                self.enqueue_resolution(pack_name)
            else:
                self._failures.append(pack_name)

    def instantiate(self, descriptor: PackDescriptor) -> Any:
        """
        按声明顺序注入依赖并构造扩展包
        Construct a pack, injecting its dependencies in declared order.
        """
        args: list[Any] = []
        for dep in descriptor.dependencies:
            if dep == PACK_LOADER and descriptor.name not in self._trusted:
                raise PackLoadError(
                    f"Pack {descriptor.name!r} is not allowed to use {PACK_LOADER!r}"
                )
            if self._registry.has(dep):
                args.append(self._registry.get(dep))
            elif dep in self._live:
                args.append(self._live[dep])
            else:
                raise UnresolvedDependencyError(descriptor.name, dep)

        if descriptor.factory is None:
            raise PackLoadError(f"Pack {descriptor.name!r} has no factory")
        return descriptor.factory(*args)

    async def _bring_live(self, descriptor: PackDescriptor) -> bool:
        name = descriptor.name
        self._starting.add(name)
        try:
            instance = self.instantiate(descriptor)
        except UnresolvedDependencyError:
            self._starting.discard(name)
            raise
        except Exception:
            self._starting.discard(name)
            logger.exception("构造扩展包 %s 失败", name)
            await self._report_failure(name)
            return False

        try:
            await instance.start()
        except Exception:
            self._starting.discard(name)
            logger.exception("启动扩展包 %s 失败", name)
            await self._report_failure(name)
            return False
        self._starting.discard(name)

        self._live[name] = instance
        logger.info("扩展包已上线: %s", name)
        await self.signals.emit_new(
            SignalKind.DEPENDENCY_RESOLVED, payload=name, source="pack_loader"
        )
        return True

    async def _report_failure(self, name: str) -> None:
        await self.signals.emit_new(
            SignalKind.PACK_FAILED, payload=name, source="pack_loader"
        )

    async def unload_pack(self, name: str) -> bool:
        """
        停止并移除一个在线扩展包
        Stop and remove one live pack.
        """
        instance = self._live.pop(name, None)
        if instance is None:
            return False
        await self._stop(name, instance)
        return True

    async def stop_all(self) -> None:
        """
        按上线的相反顺序停止所有在线扩展包
        Stop every live pack in reverse order of going live.
        """
        for name in reversed(list(self._live)):
            instance = self._live.pop(name, None)
            if instance is not None:
                await self._stop(name, instance)

    async def _stop(self, name: str, instance: Any) -> None:
        try:
            await instance.stop()
            logger.info("已停止扩展包: %s", name)
        except Exception:
            logger.exception("停止扩展包 %s 时出错", name)

