"""
记录存储 - 以斜杠路径读写的 JSON 文档存储
Record store - a JSON document store addressed by slash-delimited paths.

路径的第一段是数据库中的行键，其余各段在该行的 JSON 文档内逐层定位。
The first path segment is the row key; the remaining segments walk into
that row's JSON document.

写入规则：
- 非覆盖写入时字典递归合并、列表拼接，其他值直接替换
- 末段以 ``[]`` 结尾表示向该列表追加一个元素
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import select

from GuildPackBot.store.engine import StorageEngine
from GuildPackBot.store.models import Record

logger = logging.getLogger(__name__)

APPEND_SUFFIX = "[]"

_MISSING = object()


def split_path(path: str) -> tuple[list[str], bool]:
    """
    拆分路径，返回 (路径段, 是否追加)
    Split a path into (segments, append flag).
    """
    segments = [segment for segment in path.strip("/").split("/") if segment]
    if not segments:
        raise ValueError(f"Invalid record path: {path!r}")

    append = segments[-1].endswith(APPEND_SUFFIX)
    if append:
        segments[-1] = segments[-1][: -len(APPEND_SUFFIX)]
        if not segments[-1]:
            raise ValueError(f"Invalid record path: {path!r}")
    return segments, append


def merge_value(existing: Any, value: Any) -> Any:
    """
    非覆盖写入的合并规则
    Merge rule used by non-overwriting writes.
    """
    if isinstance(existing, dict) and isinstance(value, dict):
        merged = dict(existing)
        for key, item in value.items():
            merged[key] = merge_value(merged[key], item) if key in merged else item
        return merged
    if isinstance(existing, list) and isinstance(value, list):
        return existing + value
    return value


def _walk(document: Any, segments: list[str]) -> Any:
    current = document
    for segment in segments:
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return _MISSING
    return current


def _find_index(items: list[Any], match_value: Any, match_key: str | None) -> int:
    for index, item in enumerate(items):
        if match_key is None:
            if item == match_value:
                return index
        elif isinstance(item, dict) and item.get(match_key) == match_value:
            return index
    return -1


class RecordStore:
    """
    记录存储 - 作用域 + 路径寻址的 JSON 存储
    Record store - JSON storage addressed by scope and path.

    作用域通常是服务器 ID，也可以是 "globals" 这样的固定名称。
    A scope is usually a guild id, or a fixed name such as "globals".
    """

    def __init__(self, engine: StorageEngine) -> None:
        self._engine = engine

    async def _load(self, scope: str, key: str) -> Any:
        async with self._engine.session() as session:
            stmt = select(Record).where(Record.scope == scope, Record.key == key)
            record = (await session.execute(stmt)).scalar_one_or_none()
            if record is None:
                return _MISSING
            return json.loads(record.value)

    async def _store(self, scope: str, key: str, document: Any) -> None:
        async with self._engine.session() as session:
            stmt = select(Record).where(Record.scope == scope, Record.key == key)
            record = (await session.execute(stmt)).scalar_one_or_none()
            encoded = json.dumps(document, ensure_ascii=False)

            if record is None:
                session.add(Record(scope=scope, key=key, value=encoded))
            else:
                record.value = encoded
            await session.commit()

    async def _drop(self, scope: str, key: str) -> bool:
        async with self._engine.session() as session:
            stmt = select(Record).where(Record.scope == scope, Record.key == key)
            record = (await session.execute(stmt)).scalar_one_or_none()
            if record is None:
                return False
            await session.delete(record)
            await session.commit()
            return True

    async def get(self, scope: str, path: str) -> Any:
        """
        读取路径上的值，不存在时返回 None
        Read the value at a path, or None when absent.
        """
        segments, _ = split_path(path)
        document = await self._load(scope, segments[0])
        if document is _MISSING:
            return None

        value = _walk(document, segments[1:])
        return None if value is _MISSING else value

    async def set(
        self, scope: str, path: str, value: Any, overwrite: bool = False
    ) -> None:
        """
        写入路径上的值
        Write the value at a path.

        缺失的中间层级自动创建为字典。
        Missing intermediate levels are created as dictionaries.
        """
        segments, append = split_path(path)
        key, inner = segments[0], segments[1:]
        document = await self._load(scope, key)

        if not inner:
            document = self._apply(document, value, overwrite, append)
        else:
            if not isinstance(document, dict):
                document = {}
            parent = document
            for segment in inner[:-1]:
                child = parent.get(segment)
                if not isinstance(child, dict):
                    child = {}
                    parent[segment] = child
                parent = child
            leaf = inner[-1]
            parent[leaf] = self._apply(
                parent.get(leaf, _MISSING), value, overwrite, append
            )

        await self._store(scope, key, document)
        logger.debug("记录已写入: %s/%s", scope, path)

    @staticmethod
    def _apply(existing: Any, value: Any, overwrite: bool, append: bool) -> Any:
        if append:
            items = list(existing) if isinstance(existing, list) else []
            items.append(value)
            return items
        if overwrite or existing is _MISSING:
            return value
        return merge_value(existing, value)

    async def delete(
        self,
        scope: str,
        path: str,
        match_value: Any = None,
        match_key: str | None = None,
    ) -> bool:
        """
        删除路径上的值；给出 match_value 时只删除列表中匹配的那一项
        Delete the value at a path; with match_value only the matching list
        entry is removed.

        返回是否真的删除了内容。
        Returns whether anything was removed.
        """
        segments, _ = split_path(path)
        key, inner = segments[0], segments[1:]

        if match_value is None and not inner:
            return await self._drop(scope, key)

        document = await self._load(scope, key)
        if document is _MISSING:
            return False

        if match_value is not None:
            items = _walk(document, inner)
            if not isinstance(items, list):
                return False
            index = _find_index(items, match_value, match_key)
            if index < 0:
                return False
            del items[index]
        else:
            parent = _walk(document, inner[:-1])
            if isinstance(parent, dict) and inner[-1] in parent:
                del parent[inner[-1]]
            elif (
                isinstance(parent, list)
                and inner[-1].isdigit()
                and int(inner[-1]) < len(parent)
            ):
                del parent[int(inner[-1])]
            else:
                return False

        await self._store(scope, key, document)
        return True

    async def index_of(
        self,
        scope: str,
        path: str,
        match_value: Any,
        match_key: str | None = None,
    ) -> int:
        """
        在列表中查找值的位置，找不到返回 -1
        Find a value's position in a list, or -1 when absent.

        给出 match_key 时比较列表中字典元素的该字段。
        With match_key, the field of each dict entry is compared instead.
        """
        items = await self.get(scope, path)
        if not isinstance(items, list):
            return -1
        return _find_index(items, match_value, match_key)

    async def scopes(self) -> list[str]:
        """获取所有保存过数据的作用域 / Get every scope that holds data."""
        async with self._engine.session() as session:
            stmt = select(Record.scope).distinct().order_by(Record.scope)
            return [row[0] for row in (await session.execute(stmt)).all()]

    async def keys(self, scope: str) -> list[str]:
        """获取作用域下的所有行键 / Get every row key within a scope."""
        async with self._engine.session() as session:
            stmt = select(Record.key).where(Record.scope == scope).order_by(Record.key)
            return [row[0] for row in (await session.execute(stmt)).all()]
