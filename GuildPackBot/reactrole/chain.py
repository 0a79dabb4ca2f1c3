"""
配置链 - 以名称为键的双向链表
Configuration chains - a doubly linked list keyed by configuration name.

链接关系只读取一次快照，遍历完全在内存中进行；遇到空链接或已访问过的名称即停止。
Links are read once as a snapshot and traversed in memory; a walk stops at
an empty link or at a name it has already visited.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass
class ChainLinks:
    """
    链接快照
    Link snapshot.

    linkers: 名称 -> 右侧邻居 / name -> right neighbour
    linkees: 名称 -> 左侧邻居 / name -> left neighbour
    """

    linkers: dict[str, str] = field(default_factory=dict)
    linkees: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_records(
        cls, linkers: dict[str, str] | None, linkees: dict[str, str] | None
    ) -> ChainLinks:
        """从存储的链接记录构建，忽略空链接 / Build from stored links, ignoring empty ones."""
        return cls(
            linkers={k: v for k, v in (linkers or {}).items() if v},
            linkees={k: v for k, v in (linkees or {}).items() if v},
        )

    def right_of(self, name: str) -> str | None:
        return self.linkers.get(name) or None

    def left_of(self, name: str) -> str | None:
        return self.linkees.get(name) or None

    def is_linked(self, name: str) -> bool:
        return self.right_of(name) is not None or self.left_of(name) is not None

    def root_of(self, name: str) -> str:
        """
        向左走到链首
        Walk left to the head of the chain.
        """
        visited = {name}
        current = name
        while (left := self.left_of(current)) and left not in visited:
            visited.add(left)
            current = left
        return current

    def members(self, root: str) -> list[str]:
        """
        从链首向右列出所有成员
        List every member from the head rightwards.
        """
        chain = [root]
        visited = {root}
        current = root
        while (right := self.right_of(current)) and right not in visited:
            visited.add(right)
            chain.append(right)
            current = right
        return chain

    def chain_of(self, name: str) -> list[str]:
        """名称所在的整条链 / The whole chain a name belongs to."""
        return self.members(self.root_of(name))

    def chains(self, names: Iterable[str]) -> list[list[str]]:
        """
        把名称划分为各自的链，每个名称只出现一次
        Partition names into their chains; every name appears exactly once.
        """
        remaining = list(dict.fromkeys(names))
        seen: set[str] = set()
        result: list[list[str]] = []
        for name in remaining:
            if name in seen:
                continue
            chain = self.chain_of(name)
            seen.update(chain)
            result.append(chain)
        return result
