"""
表情身份组配置模型
Reaction role configuration models.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ReactionPair(BaseModel):
    """表情与身份组的配对 / An emoji paired with a role."""

    emoji: str
    role: str


class Observable(BaseModel):
    """
    配置当前发布的位置
    Where a configuration is currently posted.

    channel_id 为空表示配置未被使用；表情附加在最后一条消息上。
    An empty channel_id means the configuration is unused; reactions are
    attached to the last message.
    """

    channel_id: str = ""
    message_ids: list[str] = Field(default_factory=list)

    @property
    def in_use(self) -> bool:
        return bool(self.channel_id)

    @property
    def last_message_id(self) -> str | None:
        return self.message_ids[-1] if self.message_ids else None


class ReactRoleConfig(BaseModel):
    """
    表情身份组配置
    Reaction role configuration.
    """

    name: str = Field(default="", exclude=True)
    template_name: str = ""
    reactions: list[ReactionPair] = Field(default_factory=list)
    observables: Observable = Field(default_factory=Observable)

    @classmethod
    def from_record(cls, name: str, data: dict[str, Any]) -> ReactRoleConfig:
        """从存储记录构建 / Build from a stored record."""
        return cls.model_validate({**data, "name": name})

    def to_record(self) -> dict[str, Any]:
        """转为存储记录 / Convert to a stored record."""
        return self.model_dump()

    def role_for(self, emoji: str) -> str | None:
        """查找表情对应的身份组 / Find the role paired with an emoji."""
        for pair in self.reactions:
            if pair.emoji == emoji:
                return pair.role
        return None
