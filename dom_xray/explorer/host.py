"""Interface between the exploration engine and a live document tree."""

from __future__ import annotations

import abc
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence
from urllib.parse import urlparse


class TreeUnavailableError(RuntimeError):
    """The document root could not be read; nothing can be explored."""


@dataclass(frozen=True)
class ElementView:
    """Read-only description of one host element at scan time.

    ``node`` is the host's own handle for the element and is what identity
    bookkeeping keys on. ``rendered`` is False when the element is under a
    ``hidden`` ancestor or inside a closed ``details`` outside its summary.
    """

    node: Any
    tag: str
    attributes: dict[str, str] = field(default_factory=dict)
    label: Optional[str] = None
    text: Optional[str] = None
    required: bool = False
    parent_tag: Optional[str] = None
    rendered: bool = True
    option_count: int = 0
    path: str = ""
    shadow_root: Any = None

    def attr(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attr(self, name: str) -> bool:
        return name in self.attributes


class Observation(abc.ABC):
    """A live mutation subscription returned by ``HostTree.observe``."""

    @abc.abstractmethod
    async def take_records(self) -> List[Any]:
        """Return added element handles not yet delivered to the callback."""

    @abc.abstractmethod
    async def disconnect(self) -> None:
        ...


AddedNodesCallback = Callable[[List[Any]], None]


def origin_of(url: str) -> str:
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = (parsed.hostname or "").lower()
    port = parsed.port
    default_ports = {"http": 80, "https": 443}
    if port is None or default_ports.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


class HostTree(abc.ABC):
    """A live, mutable tree the engine can read, act on and observe."""

    @property
    @abc.abstractmethod
    def base_url(self) -> str:
        ...

    @property
    def origin(self) -> str:
        return origin_of(self.base_url)

    @abc.abstractmethod
    async def document(self) -> Any:
        """Return the document root handle or raise TreeUnavailableError."""

    @abc.abstractmethod
    async def elements(self, root: Any) -> List[ElementView]:
        """Describe every element under ``root`` (inclusive) in document order.

        Shadow roots are not flattened: a view exposes its ``shadow_root`` and
        the caller decides whether to descend.
        """

    @abc.abstractmethod
    async def describe(self, node: Any) -> ElementView:
        ...

    @abc.abstractmethod
    async def is_connected(self, node: Any) -> bool:
        ...

    @abc.abstractmethod
    async def perform(self, node: Any, action: Any) -> None:
        """Apply one action variant from ``explorer.actions`` to ``node``."""

    @abc.abstractmethod
    async def reveal_all(self) -> None:
        ...

    @abc.abstractmethod
    async def reset_baseline(self, nodes: Sequence[Any]) -> None:
        ...

    @abc.abstractmethod
    async def serialize(self) -> dict:
        ...

    @abc.abstractmethod
    async def observe(self, callback: AddedNodesCallback) -> Observation:
        """Report elements attached to the tree and containers that stop being hidden or collapsed."""

    async def sleep(self, ms: int) -> None:
        await asyncio.sleep(max(ms, 0) / 1000)
