"""
GuildPackBot - 基于扩展包运行时的 Discord 服务器机器人
GuildPackBot - a Discord guild bot built around a pack runtime.
"""

__app_name__ = "GuildPackBot"
__version__ = "1.0.0"
