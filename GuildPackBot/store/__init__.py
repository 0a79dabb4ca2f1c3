"""
存储层模块 - 数据持久化
Store module - data persistence.

使用 SQLAlchemy + aiosqlite 提供异步数据库访问。
Uses SQLAlchemy + aiosqlite for async database access.
"""

from GuildPackBot.store.engine import StorageEngine
from GuildPackBot.store.models import Record
from GuildPackBot.store.records import RecordStore

__all__ = ["StorageEngine", "Record", "RecordStore"]
