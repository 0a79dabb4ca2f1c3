"""
依赖图 - 记录哪些扩展包在等待哪些名称
Dependency graph - which packs are waiting on which names.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class DependencyGraph:
    """
    依赖图 - 两个互为镜像的索引
    Dependency graph - two mirrored indexes.

    dependencies[name] 列出等待 name 上线的扩展包；
    dependees[pack] 列出 pack 仍在等待的名称。
    两个索引始终保持对称。

    dependencies[name] lists the packs blocked on name; dependees[pack] lists
    the names pack is still blocked on. The two are always kept symmetric.
    """

    def __init__(self) -> None:
        self.dependencies: dict[str, list[str]] = {}
        self.dependees: dict[str, list[str]] = {}

    def add_wait(self, pack: str, names: list[str]) -> None:
        """
        记录扩展包在等待一组名称
        Record that a pack waits on a set of names.
        """
        unresolved = self.dependees.setdefault(pack, [])
        for name in names:
            if name in unresolved:
                continue
            unresolved.append(name)
            self.dependencies.setdefault(name, []).append(pack)
        logger.debug("%s 正在等待: %s", pack, ", ".join(unresolved))

    def satisfy(self, name: str) -> list[str]:
        """
        标记一个名称已上线，返回因此不再阻塞的扩展包
        Mark a name as available and return the packs it fully unblocks.
        """
        ready: list[str] = []
        for pack in self.dependencies.pop(name, []):
            unresolved = self.dependees.get(pack)
            if unresolved is None:
                continue
            if name in unresolved:
                unresolved.remove(name)
            if not unresolved:
                del self.dependees[pack]
                ready.append(pack)
        return ready

    def discard(self, pack: str) -> None:
        """
        从图中移除一个等待中的扩展包
        Remove a waiting pack from the graph.
        """
        for name in self.dependees.pop(pack, []):
            waiters = self.dependencies.get(name)
            if waiters is None:
                continue
            if pack in waiters:
                waiters.remove(pack)
            if not waiters:
                del self.dependencies[name]

    def waiting_on(self, pack: str) -> list[str]:
        """扩展包仍在等待的名称 / Names a pack is still waiting on."""
        return list(self.dependees.get(pack, []))

    def find_cycle(self, start: str) -> list[str] | None:
        """
        查找经过 start 的等待环
        Find a waiting cycle through start.

        返回形如 [start, ..., start] 的路径，不存在则返回 None。
        Returns a path shaped [start, ..., start], or None when there is none.
        """
        path: list[str] = [start]
        visited: set[str] = set()

        def walk(node: str) -> bool:
            for name in self.dependees.get(node, []):
                if name == start:
                    path.append(name)
                    return True
                # 只有自身也在等待的名称才能构成环
                if name in visited or name not in self.dependees:
                    continue
                visited.add(name)
                path.append(name)
                if walk(name):
                    return True
                path.pop()
            return False

        return path if walk(start) else None

    def __contains__(self, pack: object) -> bool:
        return pack in self.dependees

    def __len__(self) -> int:
        return len(self.dependees)
