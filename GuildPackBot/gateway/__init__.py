"""
网关模块 - 聊天服务适配层
Gateway module - chat service adapter layer.

扩展包只依赖 ChatClient 接口；Discord 适配器位于 discord_adapter 模块。
Packs depend only on the ChatClient interface; the Discord adapter lives in
the discord_adapter module.
"""

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.components import Button, Embed, EmbedField, MessagePayload
from GuildPackBot.gateway.events import (
    ChannelInfo,
    GatewayEvent,
    GuildInfo,
    Interaction,
    InteractionKind,
    MemberInfo,
    ReactionEvent,
    RoleInfo,
)

__all__ = [
    "Button",
    "ChannelInfo",
    "ChatClient",
    "Embed",
    "EmbedField",
    "GatewayEvent",
    "GuildInfo",
    "Interaction",
    "InteractionKind",
    "MemberInfo",
    "MessagePayload",
    "ReactionEvent",
    "RoleInfo",
]
