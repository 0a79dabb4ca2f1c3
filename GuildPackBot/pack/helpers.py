"""
命令扩展包共用的小工具
Small helpers shared by command packs.
"""

from __future__ import annotations

import re

from GuildPackBot.pack.errors import CommandError

# 名称中不允许出现的字符
INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")

# 自定义表情，如 <:name:123> 或 <a:name:123>
CUSTOM_EMOJI = re.compile(r"^<a?:[A-Za-z0-9_]+:\d+>$")


def check_name(value: str, label: str = "Name") -> str:
    """
    校验配置或消息名称，只允许字母数字、"-" 与 "_"
    Validate a config or message name: alphanumerics, "-" and "_" only.
    """
    if not value or INVALID_NAME_CHARS.search(value):
        raise CommandError(
            f"{label} may only contain alphanumeric characters as well as `-` and `_`."
        )
    return value


def parse_emoji(value: str) -> str | None:
    """
    识别单个表情，无法识别时返回 None
    Recognize a single emoji, returning None when it is not one.

    支持自定义表情标记与 Unicode 表情（含组合序列）。
    Accepts custom emoji markup and Unicode emoji, including joined sequences.
    """
    value = (value or "").strip()
    if not value:
        return None
    if CUSTOM_EMOJI.match(value):
        return value
    if len(value) > 16 or any(ch.isspace() or ch.isalnum() for ch in value):
        return None
    if all(ord(ch) < 0x2000 for ch in value):
        return None
    return value


def message_link(guild_id: str, channel_id: str, message_id: str) -> str:
    """消息跳转链接 / Jump link to a message."""
    return f"https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"
