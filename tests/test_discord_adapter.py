from GuildPackBot.gateway.components import Button
from GuildPackBot.gateway.discord_adapter import build_components, flatten_command_options


def test_flatten_plain_options() -> None:
    values, subcommand, group = flatten_command_options(
        [{"type": 3, "name": "command", "value": "ping"}]
    )

    assert values == {"command": "ping"}
    assert subcommand is None
    assert group is None


def test_flatten_subcommand_group() -> None:
    raw = [
        {
            "type": 2,
            "name": "reaction",
            "options": [
                {
                    "type": 1,
                    "name": "add",
                    "options": [
                        {"type": 3, "name": "config-name", "value": "fruit"},
                        {"type": 8, "name": "role", "value": "123"},
                    ],
                }
            ],
        }
    ]

    values, subcommand, group = flatten_command_options(raw)

    assert values == {"config-name": "fruit", "role": "123"}
    assert subcommand == "add"
    assert group == "reaction"


def test_flatten_nothing() -> None:
    assert flatten_command_options(None) == ({}, None, None)


def test_build_components() -> None:
    rows = [[Button(custom_id="a:1", label="One"), Button(custom_id="a:2", label="Two", emoji="🍎")]]

    components = build_components(rows)

    assert components[0]["type"] == 1
    first, second = components[0]["components"]
    assert first == {"type": 2, "style": 2, "label": "One", "custom_id": "a:1"}
    assert second["emoji"]["name"] == "🍎"
