from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from ..config import Settings, settings as default_settings
from .actions import ActionDispatcher
from .classifier import is_combo_trigger
from .context import ExplorationContext
from .host import ElementView, HostTree
from .scanner import TreeScanner


def combination_count(n: int) -> int:
    return n + n * (n - 1) // 2


def build_combinations(n: int) -> List[Tuple[int, ...]]:
    """All singles by index, then all unordered pairs in ascending index order."""
    singles = [(i,) for i in range(n)]
    pairs = list(itertools.combinations(range(n), 2))
    return singles + pairs


@dataclass
class ComboResult:
    combo: List[str]
    tree: dict

    def to_dict(self) -> dict[str, Any]:
        return {"combo": list(self.combo), "tree": self.tree}


@dataclass
class ComboReport:
    base: dict
    runs: List[ComboResult] = field(default_factory=list)
    triggers: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def result_count(self) -> int:
        return 1 + len(self.runs)

    def to_payload(self) -> dict[str, Any]:
        return {"base": self.base, "runs": [run.to_dict() for run in self.runs]}


class ComboEnumerator:
    """Replays every single trigger and every pair of triggers from a common baseline.

    Triggers are re-resolved by position after each reset, so a combination
    always acts on the elements currently at the recorded positions.
    """

    def __init__(self, host: HostTree, settings: Optional[Settings] = None) -> None:
        self.host = host
        self.settings = settings or default_settings
        self.context = ExplorationContext(host=host, settings=self.settings)
        self.scanner = TreeScanner(self.context)
        self.dispatcher = ActionDispatcher(host, self.settings)

    async def discover(self) -> List[ElementView]:
        root = await self.host.document()
        return await self.scanner.discover(root, is_combo_trigger)

    async def reset(self, triggers: Sequence[ElementView]) -> None:
        await self.host.reset_baseline([view.node for view in triggers])
        await self.host.reveal_all()

    async def run(self) -> ComboReport:
        await self.host.reveal_all()
        triggers = await self.discover()
        descriptors = [view.path for view in triggers]
        combinations = build_combinations(len(triggers))

        warnings: List[str] = []
        threshold = self.settings.combo_warning_threshold
        if len(combinations) > threshold:
            message = f"{len(combinations)} combinations exceed the warning threshold of {threshold}"
            logging.warning("combo_count_exceeds_threshold count=%d threshold=%d", len(combinations), threshold)
            warnings.append(message)

        await self.reset(triggers)
        base = await self.host.serialize()
        report = ComboReport(base=base, triggers=descriptors, warnings=warnings)

        for combo in combinations:
            await self.reset(await self.discover())
            current = await self.discover()
            for index in combo:
                if index >= len(current):
                    logging.debug("combo_trigger_missing index=%d available=%d", index, len(current))
                    continue
                await self.dispatcher.activate(current[index].node)
            tree = await self.host.serialize()
            report.runs.append(ComboResult(combo=[descriptors[i] for i in combo], tree=tree))
            logging.debug("combo_captured combo=%s", combo)

        self.context.close()
        logging.info("combo_done triggers=%d results=%d", len(triggers), report.result_count)
        return report


async def explore_combinations(host: HostTree, settings: Optional[Settings] = None) -> ComboReport:
    return await ComboEnumerator(host, settings).run()
