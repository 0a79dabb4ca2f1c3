"""
数据模型 - 记录表
Data models - the record table.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from GuildPackBot.store.engine import Base


class Record(Base):
    """
    记录表 - 每个作用域下以首段路径为键保存一份 JSON 文档
    Record table - one JSON document per scope and top-level key.
    """

    __tablename__ = "records"
    __table_args__ = (UniqueConstraint("scope", "key", name="uq_records_scope_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    scope: Mapped[str] = mapped_column(String(100), index=True)
    key: Mapped[str] = mapped_column(String(255), index=True)
    value: Mapped[str] = mapped_column(Text, default="null")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now
    )
