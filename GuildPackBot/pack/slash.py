"""
斜杠命令元数据 - 用于向聊天服务注册命令
Slash command metadata - used to register commands with the chat service.

使用 Pydantic v2 序列化为 Discord 应用命令载荷。
Serialized into Discord application command payloads with Pydantic v2.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field


class OptionType(IntEnum):
    """命令选项类型 / Command option type."""

    SUB_COMMAND = 1
    SUB_COMMAND_GROUP = 2
    STRING = 3
    INTEGER = 4
    BOOLEAN = 5
    USER = 6
    CHANNEL = 7
    ROLE = 8


class CommandOption(BaseModel):
    """命令选项 / Command option."""

    type: OptionType
    name: str
    description: str
    required: bool | None = None
    options: list[CommandOption] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": int(self.type),
            "name": self.name,
            "description": self.description,
        }
        if self.required is not None:
            payload["required"] = self.required
        if self.options:
            payload["options"] = [option.to_payload() for option in self.options]
        return payload


class SlashCommand(BaseModel):
    """
    斜杠命令 - 名称、描述与选项结构
    Slash command - name, description and option schema.
    """

    name: str
    description: str
    options: list[CommandOption] = Field(default_factory=list)
    dm_permission: bool = True
    # 为 None 时所有成员可用；"0" 表示默认仅管理员
    default_member_permissions: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """
        转为应用命令注册载荷
        Convert to an application command registration payload.
        """
        payload: dict[str, Any] = {
            "type": 1,
            "name": self.name,
            "description": self.description,
            "options": [option.to_payload() for option in self.options],
            "dm_permission": self.dm_permission,
        }
        if self.default_member_permissions is not None:
            payload["default_member_permissions"] = self.default_member_permissions
        return payload

    def subcommand_names(self) -> list[str]:
        """列出所有子命令（含子命令组下的） / List every subcommand path."""
        names: list[str] = []
        for option in self.options:
            if option.type == OptionType.SUB_COMMAND:
                names.append(option.name)
            elif option.type == OptionType.SUB_COMMAND_GROUP:
                names.extend(f"{option.name} {sub.name}" for sub in option.options)
        return names


def subcommand(name: str, description: str, *options: CommandOption) -> CommandOption:
    return CommandOption(
        type=OptionType.SUB_COMMAND,
        name=name,
        description=description,
        options=list(options),
    )


def group(name: str, description: str, *subcommands: CommandOption) -> CommandOption:
    return CommandOption(
        type=OptionType.SUB_COMMAND_GROUP,
        name=name,
        description=description,
        options=list(subcommands),
    )


def string(name: str, description: str, required: bool = False) -> CommandOption:
    return CommandOption(
        type=OptionType.STRING, name=name, description=description, required=required
    )


def user(name: str, description: str, required: bool = False) -> CommandOption:
    return CommandOption(
        type=OptionType.USER, name=name, description=description, required=required
    )


def role(name: str, description: str, required: bool = False) -> CommandOption:
    return CommandOption(
        type=OptionType.ROLE, name=name, description=description, required=required
    )


def channel(name: str, description: str, required: bool = False) -> CommandOption:
    return CommandOption(
        type=OptionType.CHANNEL, name=name, description=description, required=required
    )
