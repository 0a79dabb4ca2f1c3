from pathlib import Path

import pytest

from GuildPackBot.config.settings import BotConfig
from GuildPackBot.gateway.events import GatewayEvent, InteractionKind
from GuildPackBot.kernel.container import CLIENT, CONFIG, CapabilityRegistry
from GuildPackBot.kernel.signal_hub import SignalKind
from GuildPackBot.pack.builtin.dispatch import CommandInteractionPack, DispatchState
from GuildPackBot.pack.descriptor import PackDescriptor
from GuildPackBot.pack.errors import GENERIC_ERROR_MESSAGE
from GuildPackBot.pack.loader import PackLoader
from tests.fakes import FakeChatClient, FakeInteraction, command

pytestmark = pytest.mark.anyio

COMMAND_TEMPLATE = """
from GuildPackBot.pack.base import CommandPack
from GuildPackBot.pack.errors import CommandError
from GuildPackBot.pack.slash import SlashCommand


class {cls}(CommandPack):
    pack_name = "command-{name}"
    dependencies = {deps!r}
    command_name = "{name}"
    data = SlashCommand(name="{name}", description="The {name} command")

    def __init__(self, *deps):
        self.calls = []

    async def on_command_interaction(self, interaction):
        self.calls.append(interaction.name)
        mode = interaction.get_option("mode")
        if mode == "user":
            raise CommandError("You did it wrong.")
        if mode == "internal":
            raise CommandError("Storage is gone.", user_caused=False)
        if mode == "crash":
            raise RuntimeError("boom")
        await interaction.reply("{name}!")
"""


def write_command(directory: Path, name: str, deps: list[str] | None = None) -> None:
    (directory / f"{name}.py").write_text(
        COMMAND_TEMPLATE.format(cls=name.capitalize(), name=name, deps=deps or []),
        encoding="utf-8",
    )


class Harness:
    def __init__(self, tmp_path: Path) -> None:
        self.commands_dir = tmp_path / "commands"
        self.commands_dir.mkdir()
        self.client = FakeChatClient()
        self.client.add_guild("g1")
        self.client.add_guild("g2", owner_id="other-owner")
        self.config = BotConfig(
            token="token",
            application_id="app",
            owner_user_id="owner",
            commands_directory=str(self.commands_dir),
        )
        registry = CapabilityRegistry()
        registry.register(CLIENT, self.client)
        registry.register(CONFIG, self.config)
        self.loader = PackLoader(registry)
        self.deployed: list[str] = []
        self.loader.signals.connect(
            SignalKind.GUILD_COMMANDS_DEPLOYED,
            lambda signal: self.deployed.append(signal.payload),
        )

    async def start(self) -> CommandInteractionPack:
        await self.loader.register([PackDescriptor.from_class(CommandInteractionPack)])
        return self.loader.get("commandInteraction")


@pytest.fixture
def harness(tmp_path: Path) -> Harness:
    return Harness(tmp_path)


async def test_commands_deploy_to_every_guild(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    write_command(harness.commands_dir, "pong")

    dispatch = await harness.start()

    assert dispatch.state == DispatchState.DEPLOYED
    assert sorted(dispatch.commands) == ["ping", "pong"]
    assert [p["name"] for p in harness.client.registered["g1"]] == ["ping", "pong"]
    assert harness.deployed == ["g1", "g2"]
    assert harness.client.permissions["g1"] == ["owner", "guild-owner"]
    assert harness.client.permissions["g2"] == ["owner", "other-owner"]


async def test_interaction_reaches_only_its_command(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    write_command(harness.commands_dir, "pong")
    dispatch = await harness.start()

    interaction = command("ping")
    await harness.client.dispatch(GatewayEvent.INTERACTION, interaction)

    assert harness.loader.get("command-ping").calls == ["ping"]
    assert harness.loader.get("command-pong").calls == []
    assert interaction.last_text == "ping!"
    assert dispatch.commands["ping"] is harness.loader.get("command-ping")


async def test_unknown_command_and_buttons_are_ignored(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    await harness.start()

    unknown = command("nope")
    button = FakeInteraction(InteractionKind.BUTTON, name="ping", custom_id="x")
    await harness.client.dispatch(GatewayEvent.INTERACTION, unknown)
    await harness.client.dispatch(GatewayEvent.INTERACTION, button)

    assert unknown.sent == []
    assert harness.loader.get("command-ping").calls == []


@pytest.mark.parametrize(
    ("mode", "expected"),
    [
        ("user", ":x: You did it wrong."),
        ("internal", ":x: Unexpected server error: Storage is gone."),
        ("crash", f":x: {GENERIC_ERROR_MESSAGE}"),
    ],
)
async def test_command_errors_reply_ephemerally(harness: Harness, mode: str, expected: str) -> None:
    write_command(harness.commands_dir, "ping")
    await harness.start()

    interaction = command("ping", mode=mode)
    await harness.client.dispatch(GatewayEvent.INTERACTION, interaction)

    payload, ephemeral = interaction.sent[-1]
    assert payload.content == expected
    assert ephemeral


async def test_commands_waiting_on_dispatch_are_deployed_after_it(harness: Harness) -> None:
    write_command(harness.commands_dir, "help", ["commandInteraction"])
    write_command(harness.commands_dir, "ping")

    dispatch = await harness.start()

    assert harness.loader.is_live("command-help")
    assert dispatch.state == DispatchState.DEPLOYED
    assert sorted(dispatch.commands) == ["help", "ping"]
    assert dispatch.stalled == []
    assert harness.deployed == ["g1", "g2"]
    assert harness.loader.signals.slot_count(SignalKind.DEPENDENCY_RESOLVED) == 0


async def test_stalled_on_missing_pack_keeps_waiting(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping", ["ghost"])

    dispatch = await harness.start()

    assert dispatch.state == DispatchState.STALLED
    assert dispatch.stalled == ["command-ping"]
    assert harness.deployed == []


async def test_failing_guild_does_not_block_others(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    harness.client.failing_guilds.add("g1")

    dispatch = await harness.start()

    assert dispatch.state == DispatchState.DEPLOYED
    assert harness.deployed == ["g2"]
    assert "g1" not in dispatch.guild_command_ids


async def test_joining_guild_gets_commands(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    await harness.start()

    guild = harness.client.add_guild("g3")
    await harness.client.dispatch(GatewayEvent.GUILD_JOIN, guild)

    assert harness.deployed[-1] == "g3"
    assert "g3" in harness.client.registered


async def test_extra_operators_get_permissions(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    dispatch = await harness.start()

    await dispatch.apply_command_permissions("g1", ["op1", "owner"])

    assert harness.client.permissions["g1"] == ["owner", "guild-owner", "op1"]


async def test_stop_detaches_listeners(harness: Harness) -> None:
    write_command(harness.commands_dir, "ping")
    await harness.start()

    await harness.loader.stop_all()

    assert harness.client.listener_count(GatewayEvent.INTERACTION) == 0
    assert harness.client.listener_count(GatewayEvent.GUILD_JOIN) == 0
