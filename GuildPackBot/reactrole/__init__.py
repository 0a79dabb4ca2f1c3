"""
表情身份组模块 - 配置模型、链遍历与链监听器
Reaction role module - configuration models, chain traversal and the chain listener.
"""

from GuildPackBot.reactrole.chain import ChainLinks
from GuildPackBot.reactrole.listener import ReactRoleChainListener
from GuildPackBot.reactrole.models import Observable, ReactionPair, ReactRoleConfig

__all__ = [
    "ChainLinks",
    "Observable",
    "ReactRoleChainListener",
    "ReactRoleConfig",
    "ReactionPair",
]
