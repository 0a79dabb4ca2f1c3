import pytest

from GuildPackBot.kernel.container import CLIENT, CONFIG, CapabilityRegistry


def test_register_and_get() -> None:
    registry = CapabilityRegistry()
    client = object()
    registry.register(CLIENT, client)

    assert registry.get(CLIENT) is client
    assert registry.has(CLIENT)
    assert CLIENT in registry
    assert not registry.has(CONFIG)


def test_duplicate_name_is_rejected() -> None:
    registry = CapabilityRegistry()
    registry.register(CONFIG, {})

    with pytest.raises(KeyError):
        registry.register(CONFIG, {})


def test_empty_name_is_rejected() -> None:
    with pytest.raises(ValueError):
        CapabilityRegistry().register("", object())


def test_missing_name_raises() -> None:
    with pytest.raises(KeyError, match="Capability not found"):
        CapabilityRegistry().get("nope")


def test_names_keep_insertion_order() -> None:
    registry = CapabilityRegistry()
    registry.register(CONFIG, 1)
    registry.register(CLIENT, 2)

    assert registry.names() == [CONFIG, CLIENT]
