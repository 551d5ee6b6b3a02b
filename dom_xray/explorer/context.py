from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from ..config import Settings
from .host import HostTree
from .registry import DedupRegistry, Frontier

if TYPE_CHECKING:
    from .scanner import ControlRecord


@dataclass
class ExplorationContext:
    """Everything one exploration run mutates, created fresh per run."""

    host: HostTree
    settings: Settings
    registry: DedupRegistry = field(default_factory=DedupRegistry)
    frontier: Frontier = field(init=False)
    records: List["ControlRecord"] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.frontier = Frontier(self.registry)

    def close(self) -> None:
        self.registry.clear()
