"""
配置模块 - 管理机器人配置
Config module - manages bot configuration.
"""

from GuildPackBot.config.defaults import build_default_config
from GuildPackBot.config.manager import ConfigManager
from GuildPackBot.config.settings import BotConfig

__all__ = ["BotConfig", "ConfigManager", "build_default_config"]
