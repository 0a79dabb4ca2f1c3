"""
启动引导器 - 机器人的生命周期管理
Bootstrap - bot lifecycle management.

负责按正确顺序初始化所有子系统，并管理关闭流程。
Responsible for initializing all subsystems in the correct order
and managing the shutdown process.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from GuildPackBot.config.defaults import build_default_config
from GuildPackBot.config.manager import ConfigManager
from GuildPackBot.config.settings import BotConfig
from GuildPackBot.kernel.container import CLIENT, CONFIG, CapabilityRegistry
from GuildPackBot.kernel.logging import setup_logging
from GuildPackBot.kernel.paths import get_builtin_pack_dir
from GuildPackBot.kernel.signal_hub import SignalHub, SignalKind
from GuildPackBot.pack.loader import PackLoader

logger = logging.getLogger(__name__)

ClientFactory = Callable[[BotConfig], Any]


def _discord_client(config: BotConfig) -> Any:
    from GuildPackBot.gateway.discord_adapter import DiscordClient

    return DiscordClient(config.token, config.application_id)


class Bootstrap:
    """
    引导器 - 编排整个机器人的启动和关闭
    Bootstrap - orchestrates the startup and shutdown of the whole bot.

    启动顺序：
    1. 加载并校验配置
    2. 初始化日志系统
    3. 登记能力（client、config、pack_loader）
    4. 登录网关并等待就绪
    5. 加载内置扩展包，然后加载额外扩展包目录
    6. 发射 SYSTEM_READY 信号
    """

    def __init__(
        self,
        config_path: str | None = None,
        debug: bool = False,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.registry = CapabilityRegistry()
        self.signal_hub = SignalHub()
        self.config_manager = ConfigManager(
            defaults=build_default_config(), config_path=config_path
        )
        self.config: BotConfig | None = None
        self.client: Any = None
        self.loader: PackLoader | None = None
        self._debug = debug
        self._client_factory = client_factory or _discord_client
        self._shutdown_event = asyncio.Event()
        self._gateway_task: asyncio.Task[Any] | None = None

    async def start(self) -> None:
        """
        启动机器人
        Start the bot.
        """
        await self._init_config()
        logger.info("GuildPackBot 正在启动...")

        self.client = self._client_factory(self.config)
        self.registry.register(CLIENT, self.client)
        self.registry.register(CONFIG, self.config)
        self.loader = PackLoader(self.registry, self.signal_hub)
        logger.debug("已登记能力: %s", ", ".join(self.registry.names()))

        await self._start_gateway()
        await self._load_packs()

        await self.signal_hub.emit_new(SignalKind.SYSTEM_READY, source="bootstrap")
        logger.info("GuildPackBot 启动成功")

    async def _init_config(self) -> None:
        """加载配置并初始化日志 / Load the configuration and set up logging."""
        await self.config_manager.load()
        self.config = BotConfig.from_manager(self.config_manager)
        self.config.validate_required()

        level = "DEBUG" if self._debug else self.config.log_level
        setup_logging(level, self.config_manager.get("logging.dir"))
        logger.info("配置已加载: %s", self.config_manager.config_path)

    async def _start_gateway(self) -> None:
        """
        登录网关并等待就绪，登录失败时抛出异常
        Log in to the gateway and wait until ready; login failures propagate.
        """
        self._gateway_task = asyncio.create_task(self.client.launch())
        ready = asyncio.create_task(self.client.wait_until_ready())

        done, _ = await asyncio.wait(
            {self._gateway_task, ready}, return_when=asyncio.FIRST_COMPLETED
        )
        if ready not in done:
            ready.cancel()
            error = self._gateway_task.exception()
            raise RuntimeError("Gateway closed before becoming ready") from error

        self._gateway_task.add_done_callback(self._on_gateway_closed)
        logger.info("网关已就绪")

    def _on_gateway_closed(self, task: asyncio.Task[Any]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("网关异常断开: %s", task.exception())
        self._shutdown_event.set()

    async def _load_packs(self) -> None:
        """加载内置与额外扩展包 / Load the built-in and extra packs."""
        await self.loader.load_packs(get_builtin_pack_dir())

        extra = self.config.packs_directory
        if extra and Path(extra).is_dir():
            await self.loader.load_packs(extra)

        for name in self.loader.waiting_names():
            logger.warning(
                "扩展包 %s 仍在等待依赖: %s",
                name,
                ", ".join(self.loader.graph.waiting_on(name)),
            )

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def run_forever(self) -> None:
        """
        持续运行直到收到关闭信号
        Run until a shutdown signal is received.
        """
        loop = asyncio.get_running_loop()

        # 注册系统信号（仅 Unix）
        if sys.platform != "win32":
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._shutdown_event.set)

        try:
            await self._shutdown_event.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """
        优雅关闭
        Graceful shutdown.
        """
        logger.info("GuildPackBot 正在关闭...")

        await self.signal_hub.emit_new(SignalKind.SYSTEM_SHUTDOWN, source="bootstrap")

        if self.loader is not None:
            await self.loader.stop_all()

        if self.client is not None:
            await self.client.halt()
        if self._gateway_task is not None and not self._gateway_task.done():
            self._gateway_task.cancel()
            await asyncio.gather(self._gateway_task, return_exceptions=True)

        self.signal_hub.clear()
        logger.info("GuildPackBot 已完全关闭")
