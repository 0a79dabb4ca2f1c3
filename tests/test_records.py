import pytest

from GuildPackBot.store.engine import StorageEngine
from GuildPackBot.store.records import RecordStore, merge_value, split_path

pytestmark = pytest.mark.anyio


@pytest.fixture
async def records(tmp_path):
    engine = StorageEngine(str(tmp_path / "records.db"))
    await engine.initialize()
    yield RecordStore(engine)
    await engine.dispose()


def test_split_path() -> None:
    assert split_path("/ops/") == (["ops"], False)
    assert split_path("reactrole/config/a/reactions[]") == (
        ["reactrole", "config", "a", "reactions"],
        True,
    )
    with pytest.raises(ValueError):
        split_path("//")
    with pytest.raises(ValueError):
        split_path("[]")


def test_merge_value() -> None:
    merged = merge_value({"a": {"x": 1}, "l": [1]}, {"a": {"y": 2}, "l": [2], "b": 3})
    assert merged == {"a": {"x": 1, "y": 2}, "l": [1, 2], "b": 3}
    assert merge_value("old", "new") == "new"


async def test_missing_values_are_none(records: RecordStore) -> None:
    assert await records.get("g1", "ops") is None
    assert await records.get("g1", "reactrole/config/nope") is None


async def test_nested_set_creates_levels(records: RecordStore) -> None:
    await records.set("g1", "messages/welcome", {"data": {"content": "hi"}})

    assert await records.get("g1", "messages") == {"welcome": {"data": {"content": "hi"}}}
    assert await records.get("g1", "messages/welcome/data/content") == "hi"


async def test_set_merges_unless_overwriting(records: RecordStore) -> None:
    await records.set("g1", "cfg", {"a": 1, "list": [1]})
    await records.set("g1", "cfg", {"b": 2, "list": [2]})
    assert await records.get("g1", "cfg") == {"a": 1, "b": 2, "list": [1, 2]}

    await records.set("g1", "cfg", {"c": 3}, overwrite=True)
    assert await records.get("g1", "cfg") == {"c": 3}


async def test_append_and_index_of(records: RecordStore) -> None:
    await records.set("g1", "ops[]", "u1")
    await records.set("g1", "ops[]", "u2")
    await records.set("g1", "cfg/reactions[]", {"emoji": "😀", "role": "r1"})

    assert await records.get("g1", "ops") == ["u1", "u2"]
    assert await records.index_of("g1", "ops", "u2") == 1
    assert await records.index_of("g1", "ops", "u3") == -1
    assert await records.index_of("g1", "cfg/reactions", "r1", match_key="role") == 0
    assert await records.index_of("g1", "missing", "x") == -1


async def test_delete_variants(records: RecordStore) -> None:
    await records.set("g1", "ops", ["u1", "u2"])
    await records.set("g1", "cfg", {"a": 1, "b": [{"role": "r1"}, {"role": "r2"}]})

    assert await records.delete("g1", "ops", match_value="u1")
    assert not await records.delete("g1", "ops", match_value="u1")
    assert await records.get("g1", "ops") == ["u2"]

    assert await records.delete("g1", "cfg/b", match_value="r2", match_key="role")
    assert await records.delete("g1", "cfg/a")
    assert not await records.delete("g1", "cfg/a")
    assert await records.get("g1", "cfg") == {"b": [{"role": "r1"}]}

    assert await records.delete("g1", "ops")
    assert await records.get("g1", "ops") is None
    assert not await records.delete("g1", "ops")


async def test_scopes_are_isolated(records: RecordStore) -> None:
    await records.set("g1", "ops", ["u1"])
    await records.set("g2", "ops", ["u2"])
    await records.set("globals", "version", 1)

    assert await records.get("g2", "ops") == ["u2"]
    assert await records.scopes() == ["g1", "g2", "globals"]
    assert await records.keys("g1") == ["ops"]


async def test_database_pack_guild_data(database) -> None:
    assert await database.get_guild_data("g1", "ops", []) == []
    assert await database.records.get("g1", "ops") == []
    assert await database.get_guild_data("g1", "nothing") is None

    await database.set_guild_data("g1", "ops", ["u1"])
    await database.records.set("globals", "x", 1)
    assert await database.get_guild_data("g1", "ops", []) == ["u1"]
    assert await database.relevant_guilds() == ["g1"]
