from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Set

from .context import ExplorationContext
from .host import Observation
from .scanner import TreeScanner


class MutationWatcher:
    """Feeds subtrees attached or revealed during a run back into the scanner.

    The host delivers added elements, and containers whose ``open`` or ``hidden``
    flag just made them visible, between suspension points; each is scanned
    exactly like the initial pass. ``drain`` pulls anything still
    pending so the loop never pops its next trigger before an activation's
    side effects have been scanned.
    """

    def __init__(self, context: ExplorationContext, scanner: TreeScanner) -> None:
        self.context = context
        self.scanner = scanner
        self._observation: Optional[Observation] = None
        self._pending: Set[asyncio.Task] = set()
        self.batches = 0

    @property
    def active(self) -> bool:
        return self._observation is not None

    async def start(self) -> None:
        self._observation = await self.context.host.observe(self._on_added)

    def _on_added(self, nodes: List[Any]) -> None:
        if self._observation is None:
            return
        task = asyncio.get_running_loop().create_task(self._scan_added(nodes))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _scan_added(self, nodes: List[Any]) -> None:
        self.batches += 1
        for node in nodes:
            if not await self.context.host.is_connected(node):
                continue
            await self.scanner.scan(node)

    async def drain(self) -> None:
        if self._observation is None:
            return
        records = await self._observation.take_records()
        if records:
            await self._scan_added(records)
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def stop(self) -> None:
        if self._observation is None:
            return
        await self.drain()
        observation, self._observation = self._observation, None
        await observation.disconnect()
        logging.debug("mutation_watcher_stopped batches=%d", self.batches)
