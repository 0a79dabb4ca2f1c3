"""
命令交互扩展包 - 加载命令扩展包、部署命令并路由命令交互
Command interaction pack - loads command packs, deploys the commands and
routes command interactions.

状态流转：Fetching -> Stalled / Registering -> Deployed
State flow: Fetching -> Stalled / Registering -> Deployed
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any

from GuildPackBot.config.settings import BotConfig
from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.events import (
    GatewayEvent,
    GuildInfo,
    Interaction,
    InteractionKind,
)
from GuildPackBot.kernel.signal_hub import Signal, SignalHub, SignalKind
from GuildPackBot.pack.base import Pack, is_command_pack
from GuildPackBot.pack.errors import CommandError, reply_error
from GuildPackBot.pack.loader import PackLoader

logger = logging.getLogger(__name__)

BUILTIN_COMMANDS_DIR = Path(__file__).resolve().parent / "commands"


class DispatchState(str, Enum):
    """命令部署状态 / Command deployment state."""

    FETCHING = "fetching"
    STALLED = "stalled"
    REGISTERING = "registering"
    DEPLOYED = "deployed"


class CommandInteractionPack(Pack):
    """
    命令交互扩展包
    Command interaction pack.
    """

    pack_name = "commandInteraction"
    dependencies = ["client", "config", "pack_loader"]

    def __init__(self, client: ChatClient, config: BotConfig, loader: PackLoader) -> None:
        self._client = client
        self._config = config
        self._loader = loader
        self.state = DispatchState.FETCHING
        # 等待依赖解析的命令扩展包
        self.stalled: list[str] = []
        # 已上线但尚未登记的命令扩展包
        self.unregistered: list[str] = []
        # 命令名 -> 命令扩展包
        self.commands: dict[str, Any] = {}
        # 服务器 ID -> {命令名: 命令 ID}
        self.guild_command_ids: dict[str, dict[str, str]] = {}
        self._slot_ids: list[str] = []

    @property
    def signals(self) -> SignalHub:
        return self._loader.signals

    @property
    def commands_directory(self) -> Path:
        configured = self._config.commands_directory
        return Path(configured) if configured else BUILTIN_COMMANDS_DIR

    async def fetch_commands(self) -> None:
        """
        加载命令扩展包；有命令在等待依赖时推迟登记
        Load the command packs, deferring registration while any is stalled.
        """
        self.state = DispatchState.FETCHING
        report = await self._loader.load_packs(self.commands_directory)
        self.unregistered = list(report.loaded)
        self.stalled = list(report.stalled)

        if self._has_stalled():
            self.state = DispatchState.STALLED
            logger.info("命令扩展包等待依赖: %s", ", ".join(self.stalled))
            self._slot_ids = [
                self.signals.connect(kind, self._check_stalled)
                for kind in (SignalKind.DEPENDENCY_RESOLVED, SignalKind.PACK_FAILED)
            ]
            return

        await self._finish_registration()

    def _has_stalled(self) -> bool:
        return any(self._loader.is_waiting(name) for name in self.stalled)

    async def _check_stalled(self, signal: Signal) -> None:
        if self._has_stalled():
            return

        self._disconnect_slots()
        await self._finish_registration()

    def _disconnect_slots(self) -> None:
        for slot_id in self._slot_ids:
            self.signals.disconnect(slot_id)
        self._slot_ids = []

    async def _finish_registration(self) -> None:
        self.unregistered.extend(self.stalled)
        self.stalled = []
        self.register_commands()
        await self.deploy_commands_to_all_guilds()

    def register_commands(self) -> None:
        """
        把已上线且形状正确的命令扩展包登记到命令表
        Add every live, well-shaped command pack to the command table.
        """
        self.state = DispatchState.REGISTERING
        for name in self.unregistered:
            pack = self._loader.get(name)
            if pack is None:
                continue
            if not is_command_pack(pack):
                logger.warning("扩展包 %s 已加载，但不是有效的命令扩展包", name)
                continue
            self.commands[pack.command_name] = pack
        self.unregistered = []

    def command_payloads(self) -> list[dict[str, Any]]:
        return [pack.data.to_payload() for pack in self.commands.values()]

    async def deploy_commands_to_all_guilds(self) -> None:
        """向机器人所在的所有服务器部署命令 / Deploy commands to every guild."""
        for guild_id in self._client.guild_ids():
            await self.deploy_commands_to_guild(guild_id)
        self.state = DispatchState.DEPLOYED

    async def deploy_commands_to_guild(self, guild_id: str) -> bool:
        """
        向单个服务器部署命令，失败只记录日志
        Deploy commands to one guild; failures are only logged.
        """
        logger.info("正在向服务器 %s 部署 %d 个命令", guild_id, len(self.commands))
        try:
            command_ids = await self._client.register_guild_commands(
                guild_id, self.command_payloads()
            )
        except Exception:
            logger.exception("向服务器 %s 部署命令失败", guild_id)
            return False

        self.guild_command_ids[guild_id] = dict(command_ids)
        try:
            await self.apply_command_permissions(guild_id)
        except Exception:
            logger.exception("设置服务器 %s 的默认命令权限失败", guild_id)

        await self.signals.emit_new(
            SignalKind.GUILD_COMMANDS_DEPLOYED, payload=guild_id, source=self.pack_name
        )
        return True

    async def apply_command_permissions(
        self, guild_id: str, extra_user_ids: list[str] | None = None
    ) -> None:
        """
        允许机器人所有者、服务器所有者及额外用户使用所有命令
        Let the bot owner, the guild owner and any extra users use every command.
        """
        command_ids = self.guild_command_ids.get(guild_id)
        if not command_ids:
            raise CommandError(
                "The given guild has no command ids cached.", user_caused=False
            )

        guild = await self._client.fetch_guild(guild_id)
        if guild is None:
            raise CommandError(f"Bot is not in guild {guild_id}", user_caused=False)

        users = [self._config.owner_user_id, guild.owner_id, *(extra_user_ids or [])]
        await self._client.set_command_permissions(
            guild_id,
            list(command_ids.values()),
            [user_id for user_id in dict.fromkeys(users) if user_id],
        )

    async def handle_interaction(self, interaction: Interaction) -> None:
        """
        把命令交互转发给对应的命令扩展包
        Forward a command interaction to the matching command pack.

        未知命令直接忽略。
        Unknown commands are ignored.
        """
        if interaction.kind != InteractionKind.COMMAND:
            return

        command = self.commands.get(interaction.name)
        if command is None:
            return

        try:
            await command.on_command_interaction(interaction)
        except CommandError as err:
            if not err.user_caused:
                logger.error("/%s 出错: %s", interaction.name, err.reason)
            await reply_error(interaction, err)
        except Exception:
            logger.exception("/%s 出错", interaction.name)
            await reply_error(interaction)

    async def handle_guild_join(self, guild: GuildInfo) -> None:
        await self.deploy_commands_to_guild(guild.id)

    async def start(self) -> None:
        await self.fetch_commands()
        self._client.add_listener(GatewayEvent.INTERACTION, self.handle_interaction)
        self._client.add_listener(GatewayEvent.GUILD_JOIN, self.handle_guild_join)

    async def stop(self) -> None:
        self._client.remove_listener(GatewayEvent.INTERACTION, self.handle_interaction)
        self._client.remove_listener(GatewayEvent.GUILD_JOIN, self.handle_guild_join)
        self._disconnect_slots()
