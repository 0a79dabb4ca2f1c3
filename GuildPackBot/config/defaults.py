"""
默认配置 - 机器人的所有默认配置值
Default configuration - all default configuration values of the bot.
"""

from __future__ import annotations

from typing import Any

from GuildPackBot import __version__
from GuildPackBot.kernel.paths import get_db_path, get_log_dir, get_pack_dir

VERSION = __version__


def build_default_config() -> dict[str, Any]:
    """
    构建默认配置
    Build the default configuration.
    """
    return {
        # Discord 连接配置
        "discord": {
            "token": "",
            "application_id": "",
            "owner_user_id": "",
            "guild_id": "",
        },
        # 存储配置
        "store": {
            "db_path": str(get_db_path()),
        },
        # 扩展包配置
        "packs": {
            # 额外的扩展包目录，内置扩展包之后加载
            "directory": str(get_pack_dir()),
            # 命令扩展包目录，留空使用内置命令
            "commands_directory": "",
        },
        # 表情身份组配置
        "reactrole": {
            "cooldown_seconds": 1.0,
        },
        # 日志配置
        "logging": {
            "level": "INFO",
            "dir": str(get_log_dir()),
        },
    }
