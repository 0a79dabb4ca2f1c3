"""
按钮交互扩展包 - 把按钮点击路由到注册的回调
Button interaction pack - routes button presses to registered callbacks.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from GuildPackBot.gateway.base import ChatClient
from GuildPackBot.gateway.events import GatewayEvent, Interaction, InteractionKind
from GuildPackBot.pack.base import Pack
from GuildPackBot.pack.errors import CommandError, reply_error

logger = logging.getLogger(__name__)

ButtonHandler = Callable[[Interaction], Awaitable[None]]


def button_custom_id(caller: Pack | str, local_id: str) -> str:
    """"<包名>:<本地 ID>" / "<pack name>:<local id>"."""
    pack_name = caller if isinstance(caller, str) else caller.name
    return f"{pack_name}:{local_id}"


class ButtonInteractionPack(Pack):
    """
    按钮交互扩展包
    Button interaction pack.

    按钮 ID 带有注册方扩展包的前缀，调用回调前会去掉前缀。
    Button ids carry the registering pack's prefix, which is stripped before
    the callback runs.
    """

    pack_name = "buttonInteraction"
    dependencies = ["client"]

    def __init__(self, client: ChatClient) -> None:
        self._client = client
        self.button_handlers: dict[str, ButtonHandler] = {}

    def set_button_listener(
        self, caller: Pack, local_id: str, callback: ButtonHandler
    ) -> str:
        """
        为按钮注册回调，返回应当设置在按钮上的 ID
        Register a callback for a button and return the id to put on the button.
        """
        custom_id = button_custom_id(caller, local_id)
        self.button_handlers[custom_id] = callback
        return custom_id

    def remove_button_listener(
        self, caller: Pack | str, local_id: str | None = None
    ) -> bool:
        """
        移除按钮回调；caller 为字符串时视为完整的按钮 ID
        Remove a button callback; a string caller is taken as the full button id.
        """
        if isinstance(caller, str):
            return self.button_handlers.pop(caller, None) is not None
        if local_id is None:
            raise TypeError("local_id is required when removing by pack")
        return self.button_handlers.pop(button_custom_id(caller, local_id), None) is not None

    async def handle_interaction(self, interaction: Interaction) -> None:
        if interaction.kind != InteractionKind.BUTTON:
            return

        custom_id = interaction.custom_id
        handler = self.button_handlers.get(custom_id)
        if handler is None:
            return

        interaction.custom_id = custom_id.partition(":")[2]
        try:
            await handler(interaction)
        except CommandError as err:
            if not err.user_caused:
                logger.error("按钮 %s 出错: %s", custom_id, err.reason)
            await reply_error(interaction, err)
        except Exception:
            logger.exception("按钮 %s 出错", custom_id)
            await reply_error(interaction)

    async def start(self) -> None:
        self._client.add_listener(GatewayEvent.INTERACTION, self.handle_interaction)

    async def stop(self) -> None:
        self._client.remove_listener(GatewayEvent.INTERACTION, self.handle_interaction)
