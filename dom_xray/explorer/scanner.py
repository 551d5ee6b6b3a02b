from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .classifier import Classifier, TEXT_BEARING_TAGS, is_control, is_trigger
from .context import ExplorationContext
from .host import ElementView


@dataclass(frozen=True)
class ControlRecord:
    kind: str
    label: Optional[str]
    visible_text: Optional[str]
    required: bool
    attributes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_view(cls, view: ElementView) -> "ControlRecord":
        visible_text = None
        if view.tag in TEXT_BEARING_TAGS:
            visible_text = (view.text or "").strip() or None
        label = view.label.strip() if view.label else None
        return cls(
            kind=view.tag,
            label=label or None,
            visible_text=visible_text,
            required=view.required or view.has_attr("required"),
            attributes=dict(view.attributes),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "visibleText": self.visible_text,
            "required": self.required,
            "attributes": dict(self.attributes),
        }


class TreeScanner:
    """Walks roots (and the shadow roots they expose) recording controls and queuing triggers."""

    def __init__(self, context: ExplorationContext) -> None:
        self.context = context

    async def _walk(self, root: Any) -> List[ElementView]:
        views: List[ElementView] = []
        worklist: List[Any] = [root]
        while worklist:
            current = worklist.pop(0)
            for view in await self.context.host.elements(current):
                if not view.rendered:
                    continue
                views.append(view)
                if view.shadow_root is not None:
                    worklist.append(view.shadow_root)
        return views

    async def scan(self, root: Any) -> tuple[int, int]:
        """Scan ``root``; return (new controls recorded, new triggers queued)."""
        registry = self.context.registry
        frontier = self.context.frontier
        new_controls = 0
        new_triggers = 0
        for view in await self._walk(root):
            if is_control(view) and registry.mark_visited(view.node):
                self.context.records.append(ControlRecord.from_view(view))
                new_controls += 1
            if is_trigger(view) and not registry.is_activated(view.node):
                if frontier.push(view.node):
                    new_triggers += 1
        logging.debug("scan_root controls=%d triggers=%d frontier=%d", new_controls, new_triggers, len(frontier))
        return new_controls, new_triggers

    async def discover(self, root: Any, classifier: Classifier) -> List[ElementView]:
        """Return matching views in scan order without touching the registry."""
        return [view for view in await self._walk(root) if classifier(view)]
