import pytest

from GuildPackBot.gateway.components import Button, Embed, EmbedFooter, MessagePayload
from GuildPackBot.pack.errors import GENERIC_ERROR_MESSAGE, CommandError, format_error_reply
from GuildPackBot.pack.helpers import check_name, message_link, parse_emoji
from tests.fakes import FakeInteraction


@pytest.mark.parametrize("value", ["🍎", "👍🏽", "🇩🇪", "👨‍👩‍👧", "<:kiwi:123>", "<a:dance:987>", " ✅ "])
def test_parse_emoji_accepts(value: str) -> None:
    assert parse_emoji(value) == value.strip()


@pytest.mark.parametrize("value", ["", "a", "hello", "🍎 🍌", ":apple:", "<:kiwi:>", "!", "→x"])
def test_parse_emoji_rejects(value: str) -> None:
    assert parse_emoji(value) is None


def test_check_name() -> None:
    assert check_name("Lang_Picker-2") == "Lang_Picker-2"
    with pytest.raises(CommandError, match="^Config may only contain"):
        check_name("no spaces", label="Config")
    with pytest.raises(CommandError):
        check_name("")


def test_message_link() -> None:
    assert message_link("1", "2", "3") == "https://discord.com/channels/1/2/3"


def test_error_replies() -> None:
    assert format_error_reply(CommandError("Nope.")) == ":x: Nope."
    assert (
        format_error_reply(CommandError("db down", user_caused=False))
        == ":x: Unexpected server error: db down"
    )
    assert format_error_reply(RuntimeError("hidden")) == f":x: {GENERIC_ERROR_MESSAGE}"
    assert format_error_reply("plain") == ":x: plain"


def test_payload_from_stored_ignores_extras() -> None:
    payload = MessagePayload.from_stored(
        {"content": "hi", "embeds": [{"title": "T", "thumbnail": {"url": "x"}}], "username": "hook"}
    )

    assert payload.content == "hi"
    assert payload.embeds[0].to_dict() == {"title": "T", "thumbnail": {"url": "x"}, "fields": []}
    assert payload.to_dict()["content"] == "hi"


def test_buttons_are_laid_out_five_per_row() -> None:
    buttons = [Button(custom_id=str(i), label=str(i)) for i in range(12)]

    payload = MessagePayload.of("pick").with_buttons(buttons)

    assert [len(row) for row in payload.components] == [5, 5, 2]
    assert payload.content == "pick"


def test_embed_footer() -> None:
    embed = Embed(title="T", footer=EmbedFooter(text="foot"))
    assert embed.to_dict()["footer"] == {"text": "foot"}


def test_interaction_options() -> None:
    interaction = FakeInteraction(options={"name": "x", "empty": ""})

    assert interaction.get_option("name") == "x"
    assert interaction.get_option("missing") is None
    with pytest.raises(CommandError, match="Missing required option `empty`"):
        interaction.get_option("empty", required=True)

    interaction.guild_id = None
    with pytest.raises(CommandError, match="only executable in guild"):
        interaction.require_guild()
