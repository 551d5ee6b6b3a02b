from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from ..config import Settings, settings as default_settings
from .actions import ActionDispatcher
from .context import ExplorationContext
from .host import HostTree
from .scanner import ControlRecord, TreeScanner
from .watcher import MutationWatcher

LoopState = Literal["running", "done"]


@dataclass
class ExplorationReport:
    records: List[ControlRecord]
    iterations: int
    activated: int
    discarded: int
    frontier_remaining: int
    actions: Dict[str, int] = field(default_factory=dict)
    state: LoopState = "done"

    @property
    def budget_exhausted(self) -> bool:
        """True when the iteration cap stopped the loop with work still queued."""
        return self.frontier_remaining > 0

    def to_payload(self) -> list[dict[str, Any]]:
        return [record.to_dict() for record in self.records]


class ExplorationLoop:
    """Drains the frontier, activating each trigger at most once, under a hard iteration cap."""

    def __init__(
        self,
        context: ExplorationContext,
        dispatcher: ActionDispatcher,
        watcher: MutationWatcher,
    ) -> None:
        self.context = context
        self.dispatcher = dispatcher
        self.watcher = watcher
        self.state: LoopState = "running"
        self.iterations = 0
        self.activated = 0
        self.discarded = 0

    async def step(self) -> None:
        node = self.context.frontier.pop()
        self.iterations += 1
        if not await self.context.host.is_connected(node) or not self.context.registry.mark_activated(node):
            self.discarded += 1
            return
        await self.dispatcher.activate(node)
        self.activated += 1
        await self.watcher.drain()

    async def run(self) -> ExplorationReport:
        max_iterations = self.context.settings.max_iterations
        while self.state == "running":
            if not self.context.frontier or self.iterations >= max_iterations:
                self.state = "done"
                break
            await self.step()

        await self.watcher.stop()
        remaining = len(self.context.frontier)
        if remaining:
            logging.warning(
                "iteration_budget_exhausted iterations=%d frontier_remaining=%d", self.iterations, remaining
            )
        logging.info(
            "exploration_done iterations=%d activated=%d discarded=%d controls=%d",
            self.iterations,
            self.activated,
            self.discarded,
            len(self.context.records),
        )
        return ExplorationReport(
            records=list(self.context.records),
            iterations=self.iterations,
            activated=self.activated,
            discarded=self.discarded,
            frontier_remaining=remaining,
            actions=dict(self.dispatcher.performed),
            state=self.state,
        )


async def explore(host: HostTree, settings: Optional[Settings] = None) -> ExplorationReport:
    """Main mode: reveal, scan, then activate every discovered trigger once."""
    settings = settings or default_settings
    context = ExplorationContext(host=host, settings=settings)
    root = await host.document()

    scanner = TreeScanner(context)
    watcher = MutationWatcher(context, scanner)
    dispatcher = ActionDispatcher(host, settings)

    await host.reveal_all()
    await scanner.scan(root)
    logging.info("initial_scan controls=%d triggers=%d", len(context.records), len(context.frontier))

    await watcher.start()
    try:
        report = await ExplorationLoop(context, dispatcher, watcher).run()
    finally:
        await watcher.stop()
        context.close()
    return report
