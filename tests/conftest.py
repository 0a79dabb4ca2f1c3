from __future__ import annotations

import pytest

from GuildPackBot.config.settings import BotConfig
from GuildPackBot.pack.builtin.database import DatabasePack
from tests.fakes import FakeChatClient


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def config(tmp_path) -> BotConfig:
    return BotConfig(
        token="token",
        application_id="app",
        owner_user_id="owner",
        db_path=str(tmp_path / "records.db"),
        reactrole_cooldown=0,
    )


@pytest.fixture
async def database(config: BotConfig):
    pack = DatabasePack(config)
    await pack.start()
    yield pack
    await pack.stop()
