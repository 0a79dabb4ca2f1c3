import anyio
import pytest

from GuildPackBot.kernel.alarms import AlarmClock

pytestmark = pytest.mark.anyio


async def test_last_schedule_wins() -> None:
    alarms = AlarmClock()
    fired: list[str] = []

    async def record(value: str) -> None:
        fired.append(value)

    alarms.schedule("user", 0.01, lambda: record("first"))
    alarms.schedule("user", 0.01, lambda: record("second"))
    assert len(alarms) == 1

    await alarms.wait_idle()
    assert fired == ["second"]
    assert not alarms.pending("user")


async def test_keys_are_independent() -> None:
    alarms = AlarmClock()
    fired: list[str] = []

    async def record(value: str) -> None:
        fired.append(value)

    alarms.schedule("a", 0, lambda: record("a"))
    alarms.schedule("b", 0, lambda: record("b"))
    await alarms.wait_idle()

    assert sorted(fired) == ["a", "b"]


async def test_cancel_prevents_callback() -> None:
    alarms = AlarmClock()
    fired: list[str] = []

    async def record() -> None:
        fired.append("fired")

    alarms.schedule("user", 0.01, record)
    assert alarms.cancel("user")
    assert not alarms.cancel("user")

    await anyio.sleep(0.03)
    assert fired == []


async def test_cancel_all() -> None:
    alarms = AlarmClock()
    fired: list[str] = []

    async def record() -> None:
        fired.append("fired")

    alarms.schedule("a", 0.01, record)
    alarms.schedule("b", 0.01, record)
    alarms.cancel_all()

    await anyio.sleep(0.03)
    assert fired == []
    assert len(alarms) == 0


async def test_failing_callback_is_logged() -> None:
    alarms = AlarmClock()

    async def broken() -> None:
        raise RuntimeError("boom")

    alarms.schedule("user", 0, broken)
    await alarms.wait_idle()
    assert len(alarms) == 0
