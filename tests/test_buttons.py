import pytest

from GuildPackBot.gateway.events import GatewayEvent, InteractionKind
from GuildPackBot.pack.base import Pack
from GuildPackBot.pack.builtin.buttons import ButtonInteractionPack, button_custom_id
from GuildPackBot.pack.errors import CommandError
from tests.fakes import FakeChatClient, FakeInteraction

pytestmark = pytest.mark.anyio


class Owner(Pack):
    pack_name = "command-owner"


def press(custom_id: str) -> FakeInteraction:
    return FakeInteraction(InteractionKind.BUTTON, custom_id=custom_id)


@pytest.fixture
async def buttons(client: FakeChatClient):
    pack = ButtonInteractionPack(client)
    await pack.start()
    yield pack
    await pack.stop()


def test_custom_id_is_prefixed() -> None:
    assert button_custom_id(Owner(), "abc") == "command-owner:abc"
    assert button_custom_id("other", "abc") == "other:abc"


async def test_press_reaches_callback_with_local_id(client, buttons) -> None:
    seen: list[str] = []

    async def on_press(interaction) -> None:
        seen.append(interaction.custom_id)

    custom_id = buttons.set_button_listener(Owner(), "cfg:role:1", on_press)
    await client.dispatch(GatewayEvent.INTERACTION, press(custom_id))

    assert custom_id == "command-owner:cfg:role:1"
    assert seen == ["cfg:role:1"]


async def test_unknown_button_is_ignored(client, buttons) -> None:
    interaction = press("command-owner:nothing")
    await client.dispatch(GatewayEvent.INTERACTION, interaction)
    assert interaction.sent == []


async def test_callback_errors_reply_to_user(client, buttons) -> None:
    async def on_press(interaction) -> None:
        raise CommandError("Not today.")

    custom_id = buttons.set_button_listener(Owner(), "x", on_press)
    interaction = press(custom_id)
    await client.dispatch(GatewayEvent.INTERACTION, interaction)

    payload, ephemeral = interaction.sent[-1]
    assert payload.content == ":x: Not today."
    assert ephemeral


async def test_remove_button_listener(buttons) -> None:
    async def on_press(interaction) -> None:
        pass

    owner = Owner()
    custom_id = buttons.set_button_listener(owner, "a", on_press)
    buttons.set_button_listener(owner, "b", on_press)

    assert buttons.remove_button_listener(custom_id)
    assert buttons.remove_button_listener(owner, "b")
    assert not buttons.remove_button_listener(owner, "b")
    assert buttons.button_handlers == {}

    with pytest.raises(TypeError):
        buttons.remove_button_listener(owner)
