import json

from click.testing import CliRunner

from GuildPackBot import __version__
from GuildPackBot.cli.main import cli


def test_version() -> None:
    result = CliRunner().invoke(cli, ["version"])

    assert result.exit_code == 0
    assert result.output.strip() == f"GuildPackBot v{__version__}"


def test_pack_list_builtin() -> None:
    result = CliRunner().invoke(cli, ["pack", "list"])

    assert result.exit_code == 0
    assert "  - buttonInteraction [client]" in result.output
    assert "  - commandInteraction [client, config, pack_loader]" in result.output
    assert "  - database [config]" in result.output


def test_pack_list_commands(tmp_path) -> None:
    from GuildPackBot.pack.builtin.dispatch import BUILTIN_COMMANDS_DIR

    result = CliRunner().invoke(cli, ["pack", "list", str(BUILTIN_COMMANDS_DIR)])

    assert "  - command-ping [-]" in result.output
    assert "  - command-help [commandInteraction]" in result.output


def test_pack_list_empty_and_missing(tmp_path) -> None:
    runner = CliRunner()

    assert "没有找到扩展包\n" == runner.invoke(cli, ["pack", "list", str(tmp_path)]).output
    missing = runner.invoke(cli, ["pack", "list", str(tmp_path / "nope")])
    assert missing.output.startswith("没有找到扩展包目录")


def test_init_and_show(tmp_path) -> None:
    runner = CliRunner()
    path = tmp_path / "config.json"

    assert "配置文件不存在" in runner.invoke(cli, ["conf", "show", "--config", str(path)]).output

    created = runner.invoke(cli, ["init", "--config", str(path)])
    assert created.exit_code == 0
    assert json.loads(path.read_text(encoding="utf-8"))["discord"]["token"] == ""

    shown = runner.invoke(cli, ["conf", "show", "reactrole", "--config", str(path)])
    assert json.loads(shown.output) == {"cooldown_seconds": 1.0}

    missing = runner.invoke(cli, ["conf", "show", "discord.nope", "--config", str(path)])
    assert "键 'discord.nope' 不存在" in missing.output


def test_init_asks_before_overwriting(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{}", encoding="utf-8")

    result = CliRunner().invoke(cli, ["init", "--config", str(path)], input="n\n")

    assert "配置文件已存在" in result.output
    assert path.read_text(encoding="utf-8") == "{}"
