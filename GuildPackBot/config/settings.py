"""
机器人设置 - 注入给扩展包的 "config" 能力
Bot settings - the "config" capability injected into packs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from GuildPackBot.config.manager import ConfigManager


class BotConfig(BaseModel):
    """
    机器人静态配置
    Static bot configuration.
    """

    model_config = ConfigDict(frozen=True)

    token: str = ""
    application_id: str = ""
    owner_user_id: str = ""
    guild_id: str = ""
    db_path: str = ""
    packs_directory: str = ""
    commands_directory: str = ""
    reactrole_cooldown: float = Field(default=1.0, ge=0)
    log_level: str = "INFO"

    @classmethod
    def from_manager(cls, manager: ConfigManager) -> BotConfig:
        """从配置管理器构建 / Build from a config manager."""
        return cls(
            token=str(manager.get("discord.token", "")),
            application_id=str(manager.get("discord.application_id", "")),
            owner_user_id=str(manager.get("discord.owner_user_id", "")),
            guild_id=str(manager.get("discord.guild_id", "")),
            db_path=str(manager.get("store.db_path", "")),
            packs_directory=str(manager.get("packs.directory", "")),
            commands_directory=str(manager.get("packs.commands_directory", "")),
            reactrole_cooldown=float(manager.get("reactrole.cooldown_seconds", 1.0)),
            log_level=str(manager.get("logging.level", "INFO")),
        )

    def validate_required(self) -> None:
        """
        检查必填项，缺失时抛出 ValueError
        Check obligatory values and raise ValueError listing the missing ones.
        """
        missing = [
            name
            for name, value in (
                ("discord.token", self.token),
                ("discord.application_id", self.application_id),
            )
            if not value
        ]
        if missing:
            raise ValueError("Missing required configuration: " + ", ".join(missing))
