import pytest

from GuildPackBot.kernel.signal_hub import SignalHub, SignalKind
from GuildPackBot.pack.builtin.commands.operators import OperatorsCommandPack
from GuildPackBot.pack.errors import CommandError
from tests.fakes import FakeChatClient, command

pytestmark = pytest.mark.anyio


class Commander:
    def __init__(self) -> None:
        self.signals = SignalHub()
        self.applied: list[tuple[str, list[str]]] = []
        self.fail = False

    async def apply_command_permissions(self, guild_id, extra_user_ids=None) -> None:
        if self.fail:
            raise CommandError("no command ids", user_caused=False)
        self.applied.append((guild_id, list(extra_user_ids or [])))


@pytest.fixture
def commander() -> Commander:
    return Commander()


@pytest.fixture
async def ops(database, commander, config, client: FakeChatClient):
    client.add_guild("g1", owner_id="guild-owner")
    client.add_member("g1", "u2")
    client.add_member("g1", "guild-owner")
    client.add_member("g1", "owner")
    client.add_member("g1", "robot", bot=True)
    pack = OperatorsCommandPack(database, commander, config, client)
    await pack.start()
    yield pack
    await pack.stop()


def op(sub: str, user: str | None = None):
    return command("op", sub, **({"user": user} if user else {}))


async def test_add_and_remove(ops, commander) -> None:
    added = op("add", "u2")
    await ops.on_command_interaction(added)

    assert added.last_text == '✅ Successfully added user "user-u2" to the list of operators!'
    assert await ops.operators("g1") == ["u2"]
    assert commander.applied[-1] == ("g1", ["u2"])

    removed = op("remove", "u2")
    await ops.on_command_interaction(removed)
    assert await ops.operators("g1") == []
    assert commander.applied[-1] == ("g1", [])

    with pytest.raises(CommandError, match="currently not an operator"):
        await ops.on_command_interaction(op("remove", "u2"))


async def test_add_twice(ops) -> None:
    await ops.on_command_interaction(op("add", "u2"))
    with pytest.raises(CommandError, match="already an operator"):
        await ops.on_command_interaction(op("add", "u2"))


@pytest.mark.parametrize(
    ("user", "reason"),
    [
        ("ghost", "not a member of this server"),
        ("robot", "Cannot assign bots"),
        ("guild-owner", "guild owner is already"),
        ("owner", "bot owner is already"),
    ],
)
async def test_add_refusals(ops, user: str, reason: str) -> None:
    with pytest.raises(CommandError, match=reason):
        await ops.on_command_interaction(op("add", user))


async def test_list_includes_owners(ops, client) -> None:
    await ops.on_command_interaction(op("add", "u2"))
    client.members.pop(("g1", "owner"))

    interaction = op("list")
    await ops.on_command_interaction(interaction)

    embed = interaction.last_payload.embeds[0]
    assert embed.title == "List of bot operators"
    assert embed.description.splitlines() == [
        "- user-u2",
        "- <User left this server>",
        "- user-guild-owner",
    ]
    assert embed.footer.text.startswith("Note: The bot owner and the guild owner")


async def test_redeploy_after_commands_deploy(ops, commander) -> None:
    await commander.signals.emit_new(SignalKind.GUILD_COMMANDS_DEPLOYED, payload="g1")
    assert commander.applied == [("g1", [])]


async def test_redeploy_failures_are_quiet(ops, commander) -> None:
    commander.fail = True
    interaction = op("add", "u2")

    await ops.on_command_interaction(interaction)

    assert interaction.last_text.startswith("✅")


async def test_stop_disconnects(ops, commander) -> None:
    await ops.stop()
    assert commander.signals.slot_count(SignalKind.GUILD_COMMANDS_DEPLOYED) == 0
