from __future__ import annotations

import weakref
from collections import deque
from typing import Any, Deque, Optional


class DedupRegistry:
    """Identity-keyed visited/activated sets for one exploration run.

    Both sets are weak, so a node removed from the tree and dropped by the host
    does not stay alive because the registry once saw it. Two structurally
    identical nodes are tracked independently.
    """

    def __init__(self) -> None:
        self.visited: "weakref.WeakSet[Any]" = weakref.WeakSet()
        self.activated: "weakref.WeakSet[Any]" = weakref.WeakSet()

    def mark_visited(self, node: Any) -> bool:
        if node in self.visited:
            return False
        self.visited.add(node)
        return True

    def mark_activated(self, node: Any) -> bool:
        if node in self.activated:
            return False
        self.activated.add(node)
        return True

    def is_visited(self, node: Any) -> bool:
        return node in self.visited

    def is_activated(self, node: Any) -> bool:
        return node in self.activated

    def clear(self) -> None:
        self.visited = weakref.WeakSet()
        self.activated = weakref.WeakSet()


class Frontier:
    """FIFO queue of triggers awaiting activation, in discovery order."""

    def __init__(self, registry: DedupRegistry) -> None:
        self._registry = registry
        self._queue: Deque[Any] = deque()
        self._queued: "weakref.WeakSet[Any]" = weakref.WeakSet()

    def push(self, node: Any) -> bool:
        if node in self._queued or self._registry.is_activated(node):
            return False
        self._queue.append(node)
        self._queued.add(node)
        return True

    def pop(self) -> Optional[Any]:
        if not self._queue:
            return None
        node = self._queue.popleft()
        self._queued.discard(node)
        return node

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    def __contains__(self, node: Any) -> bool:
        return node in self._queued
