import json

import pytest

from GuildPackBot.pack.builtin.commands.message import (
    EDITOR_URL,
    MessageCommandPack,
    base64_decode,
    base64_encode,
    build_editor_url,
    parse_editor_url,
)
from GuildPackBot.pack.errors import CommandError
from tests.fakes import FakeChatClient, command

pytestmark = pytest.mark.anyio

WELCOME = {"content": "Welcome to the server! 👋", "embeds": [{"title": "Rules"}]}


@pytest.fixture
async def messages(database, client: FakeChatClient) -> MessageCommandPack:
    client.add_guild("g1")
    client.add_channel("g1", "c1")
    client.add_channel("g1", "c2")
    client.add_channel("g1", "voice", is_text=False)
    client.add_member("g1", "u1")
    pack = MessageCommandPack(database, client)
    await pack.start()
    return pack


async def save(pack: MessageCommandPack, name: str, message: dict = WELCOME) -> None:
    await pack.on_command_interaction(
        command(
            "message",
            "set",
            **{"message-name": name, "discohook-url": build_editor_url(message)},
        )
    )


def test_editor_url_carries_message() -> None:
    url = build_editor_url(WELCOME)

    assert url.startswith(f"{EDITOR_URL}/?data=")
    assert "=" not in url.partition("?data=")[2]
    assert parse_editor_url(url) == WELCOME
    assert build_editor_url() == EDITOR_URL


def test_base64_accepts_standard_alphabet() -> None:
    text = json.dumps({"messages": [{"data": {"content": "ÿÿÿ>>>???"}}]})
    standard = base64_encode(text).replace("-", "+").replace("_", "/")

    assert base64_decode(standard) == text


@pytest.mark.parametrize(
    ("url", "reason"),
    [
        ("https://example.com/?data=abc", "may only be a link"),
        ("https://share.discohook.app/go/abc", "Short-links"),
        ("https://discohook.org/", "does not contain any message data"),
        ("https://discohook.org/?data=%%%%", "Could not parse data"),
        (f"https://discohook.org/?data={base64_encode('{}')}", "Could not parse data"),
    ],
)
def test_parse_editor_url_rejects(url: str, reason: str) -> None:
    with pytest.raises(CommandError, match=reason):
        parse_editor_url(url)


async def test_set_then_fetch(messages: MessageCommandPack) -> None:
    interaction = command(
        "message",
        "set",
        **{"message-name": "welcome", "discohook-url": build_editor_url(WELCOME)},
    )
    await messages.on_command_interaction(interaction)

    assert interaction.last_text.startswith('✅ Successfully added message "welcome"')
    payload = await messages.fetch_message_object("g1", "welcome")
    assert payload.content == WELCOME["content"]
    assert payload.embeds[0].title == "Rules"

    info = await messages.get_message_info("g1", "welcome")
    assert info["last_edited_user_id"] == "u1"


async def test_set_rejects_bad_names(messages: MessageCommandPack) -> None:
    with pytest.raises(CommandError, match="alphanumeric"):
        await save(messages, "bad name")


async def test_fetch_unknown_message(messages: MessageCommandPack) -> None:
    with pytest.raises(CommandError, match="Invalid message name"):
        await messages.fetch_message_object("g1", "nope")
    with pytest.raises(CommandError, match="Invalid message name"):
        await messages.get_message_info("g1", "no/pe")


async def test_list(messages: MessageCommandPack) -> None:
    empty = command("message", "list")
    await messages.on_command_interaction(empty)
    embed = empty.last_payload.embeds[0]
    assert embed.description == "No messages saved yet."
    assert embed.footer.text == "👀 To add new messages, use /message editor"

    await save(messages, "welcome")
    listing = command("message", "list")
    await messages.on_command_interaction(listing)
    embed = listing.last_payload.embeds[0]
    assert embed.description.startswith("**welcome** | Last edited by user-u1 @ ")
    assert embed.footer is None


async def test_editor_for_existing_message(messages: MessageCommandPack) -> None:
    await save(messages, "welcome")

    interaction = command("message", "editor", **{"message-name": "welcome"})
    await messages.on_command_interaction(interaction)

    payload, ephemeral = interaction.sent[-1]
    assert ephemeral
    assert payload.embeds[0].title == ":pencil: How to edit the bot message"
    assert parse_editor_url(payload.embeds[0].fields[0].value) == WELCOME

    with pytest.raises(CommandError, match="was not found"):
        await messages.on_command_interaction(
            command("message", "editor", **{"message-name": "ghost"})
        )


async def test_post(messages: MessageCommandPack, client: FakeChatClient) -> None:
    await save(messages, "welcome")

    here = command("message", "post", **{"message-name": "welcome"})
    await messages.on_command_interaction(here)
    elsewhere = command("message", "post", **{"message-name": "welcome", "channel": "c2"})
    await messages.on_command_interaction(elsewhere)

    assert [args[0] for args in client.calls_named("send_message")] == ["c1", "c2"]
    assert here.sent[-1][1] is True
    assert elsewhere.sent[-1][1] is False


@pytest.mark.parametrize(
    ("channel", "reason"),
    [("ghost", "does not exist"), ("voice", "not a text-channel")],
)
async def test_post_rejects_channels(messages: MessageCommandPack, channel: str, reason: str) -> None:
    await save(messages, "welcome")

    with pytest.raises(CommandError, match=reason):
        await messages.on_command_interaction(
            command("message", "post", **{"message-name": "welcome", "channel": channel})
        )


async def test_remove(messages: MessageCommandPack) -> None:
    await save(messages, "welcome")

    interaction = command("message", "remove", **{"message-name": "welcome"})
    await messages.on_command_interaction(interaction)
    assert await messages.get_message_info("g1", "welcome") is None

    with pytest.raises(CommandError, match='Message "welcome" was not found.'):
        await messages.on_command_interaction(interaction)


async def test_guild_only(messages: MessageCommandPack) -> None:
    interaction = command("message", "list")
    interaction.guild_id = None

    with pytest.raises(CommandError, match="only executable in guild"):
        await messages.on_command_interaction(interaction)
