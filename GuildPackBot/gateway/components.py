"""
消息载荷 - 发送到聊天服务的消息结构
Message payloads - structures sent to the chat service.

使用 Pydantic v2 进行序列化与校验。
Uses Pydantic v2 for serialization and validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# 每个操作行最多 5 个按钮，每条消息最多 5 行
BUTTONS_PER_ROW = 5
MAX_ROWS = 5


class EmbedField(BaseModel):
    """嵌入字段 / Embed field."""

    name: str
    value: str
    inline: bool = False


class EmbedFooter(BaseModel):
    """嵌入页脚 / Embed footer."""

    text: str


class Embed(BaseModel):
    """
    嵌入内容 - 兼容 Discord embed 结构，未知键原样保留
    Embed - mirrors the Discord embed shape, unknown keys are kept.
    """

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    description: str | None = None
    url: str | None = None
    color: int | None = None
    fields: list[EmbedField] = Field(default_factory=list)
    footer: EmbedFooter | None = None

    def to_dict(self) -> dict[str, Any]:
        """转为字典 / Convert to dictionary."""
        return self.model_dump(exclude_none=True, exclude_defaults=False)


class Button(BaseModel):
    """交互按钮 / Interactive button."""

    custom_id: str
    label: str
    emoji: str | None = None


class MessagePayload(BaseModel):
    """
    消息载荷 - 文本、嵌入与按钮行
    Message payload - text, embeds and button rows.
    """

    model_config = ConfigDict(extra="ignore")

    content: str | None = None
    embeds: list[Embed] = Field(default_factory=list)
    components: list[list[Button]] = Field(default_factory=list)

    @classmethod
    def of(cls, value: MessagePayload | str | None) -> MessagePayload:
        """把字符串或载荷统一为载荷 / Normalize a string or payload."""
        if isinstance(value, MessagePayload):
            return value
        return cls(content=value)

    @classmethod
    def from_stored(cls, data: dict[str, Any]) -> MessagePayload:
        """
        从保存的消息数据构建（忽略按钮等额外键）
        Build from saved message data, ignoring extra keys.
        """
        return cls(content=data.get("content"), embeds=data.get("embeds") or [])

    def with_buttons(self, buttons: list[Button]) -> MessagePayload:
        """
        把按钮按每行 5 个排列
        Lay buttons out five per row.
        """
        rows = [
            buttons[i : i + BUTTONS_PER_ROW]
            for i in range(0, len(buttons), BUTTONS_PER_ROW)
        ]
        return self.model_copy(update={"components": rows})

    def to_dict(self) -> dict[str, Any]:
        """转为字典 / Convert to dictionary."""
        data: dict[str, Any] = {"embeds": [embed.to_dict() for embed in self.embeds]}
        if self.content is not None:
            data["content"] = self.content
        return data
