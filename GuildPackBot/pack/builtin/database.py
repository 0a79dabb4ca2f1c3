"""
数据库扩展包 - 向其他扩展包提供记录存储
Database pack - provides the record store to other packs.
"""

from __future__ import annotations

import logging
from typing import Any

from GuildPackBot.config.settings import BotConfig
from GuildPackBot.kernel.paths import get_db_path
from GuildPackBot.pack.base import Pack
from GuildPackBot.store.engine import StorageEngine
from GuildPackBot.store.records import RecordStore

logger = logging.getLogger(__name__)

# 不属于任何服务器的数据
GLOBAL_SCOPE = "globals"


class DatabasePack(Pack):
    """
    数据库扩展包
    Database pack.

    以服务器 ID 作为作用域保存每个服务器的数据。
    Each guild's data lives under its guild id as scope.
    """

    pack_name = "database"
    dependencies = ["config"]

    def __init__(self, config: BotConfig) -> None:
        self._config = config
        self._engine: StorageEngine | None = None
        self._records: RecordStore | None = None

    @property
    def records(self) -> RecordStore:
        if self._records is None:
            raise RuntimeError("Database unavailable")
        return self._records

    async def start(self) -> None:
        self._engine = StorageEngine(self._config.db_path or str(get_db_path()))
        await self._engine.initialize()
        self._records = RecordStore(self._engine)

    async def stop(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._records = None

    async def get_guild_data(self, guild_id: str, key: str, default: Any = None) -> Any:
        """
        读取服务器数据，缺失时写入并返回默认值
        Read guild data, writing and returning the default when missing.
        """
        value = await self.records.get(guild_id, key)
        if value is None and default is not None:
            await self.records.set(guild_id, key, default, overwrite=True)
            return default
        return value

    async def set_guild_data(self, guild_id: str, key: str, value: Any) -> None:
        """覆盖写入服务器数据 / Overwrite guild data."""
        await self.records.set(guild_id, key, value, overwrite=True)

    async def relevant_guilds(self) -> list[str]:
        """
        获取保存过数据的所有服务器 ID
        Get the ids of every guild that has data saved.
        """
        return [scope for scope in await self.records.scopes() if scope != GLOBAL_SCOPE]
