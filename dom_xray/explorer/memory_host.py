from __future__ import annotations

from typing import Any, List, Optional, Sequence

from ..dom.node import Document, Element, Event, MutationObserver, MutationRecord, Node, ShadowRoot, Text
from .actions import Action, ExpandSelect, FillText, FollowLink, OpenContainer, PointerClick, SkipLink, ToggleCheck
from .host import AddedNodesCallback, ElementView, HostTree, Observation, TreeUnavailableError


def _is_rendered(element: Element) -> bool:
    node: Optional[Node] = element
    child: Optional[Node] = None
    while node is not None:
        if isinstance(node, ShadowRoot):
            child, node = node, node.host
            continue
        if isinstance(node, Element):
            if node.hidden:
                return False
            if node.tag == "details" and not node.open and child is not None:
                in_summary = isinstance(child, Element) and child.tag == "summary"
                if not in_summary:
                    return False
        child, node = node, node.parent
    return True


def element_path(element: Element) -> str:
    """Positional path such as ``/html[1]/body[1]/div[2]/#shadow-root/button[1]``."""
    segments: List[str] = []
    node: Optional[Node] = element
    while node is not None and not isinstance(node, Document):
        if isinstance(node, ShadowRoot):
            segments.append("#shadow-root")
            node = node.host
            continue
        if isinstance(node, Element):
            parent = node.parent
            if parent is None:
                segments.append(f"{node.tag}[1]")
            else:
                siblings = [c for c in parent.children if isinstance(c, Element) and c.tag == node.tag]
                segments.append(f"{node.tag}[{siblings.index(node) + 1}]")
        node = node.parent
    return "/" + "/".join(reversed(segments))


def describe_element(element: Element) -> ElementView:
    labels = element.labels
    label = labels[0].inner_text if labels else element.get_attribute("aria-label")
    parent = element.parent_element
    return ElementView(
        node=element,
        tag=element.tag,
        attributes=dict(element.attributes),
        label=label.strip() if label else None,
        text=element.inner_text,
        required=element.has_attribute("required"),
        parent_tag=parent.tag if parent is not None else None,
        rendered=_is_rendered(element),
        option_count=len(element.options) if element.tag == "select" else 0,
        path=element_path(element),
        shadow_root=element.shadow_root,
    )


def serialize_node(node: Node) -> Optional[dict]:
    if isinstance(node, Text):
        if not node.data.strip():
            return None
        return {"text": node.data}
    if not isinstance(node, Element):
        return None
    data: dict[str, Any] = {
        "tag": node.tag,
        "attributes": dict(node.attributes),
        "children": [s for s in (serialize_node(c) for c in node.children) if s is not None],
    }
    if node.shadow_root is not None:
        data["shadowRoot"] = [s for s in (serialize_node(c) for c in node.shadow_root.children) if s is not None]
    return data


class _MemoryObservation(Observation):
    def __init__(self, observer: MutationObserver) -> None:
        self.observer = observer

    async def take_records(self) -> List[Any]:
        return scan_targets(self.observer.take_records())

    async def disconnect(self) -> None:
        self.observer.disconnect()


REVEAL_ATTRIBUTES = ("open", "hidden")


def _reveals(record: MutationRecord) -> bool:
    target = record.target
    if not isinstance(target, Element) or record.attribute_name not in REVEAL_ATTRIBUTES:
        return False
    if record.attribute_name == "open":
        return target.tag == "details" and target.open
    return not target.hidden


def scan_targets(records: List[MutationRecord]) -> List[Element]:
    """Elements worth rescanning: attached subtrees and containers that just became visible."""
    targets: List[Element] = []
    for record in records:
        if record.type == "attributes":
            candidates = [record.target] if _reveals(record) else []
        else:
            candidates = [node for node in record.added_nodes if isinstance(node, Element)]
        for node in candidates:
            if node not in targets:
                targets.append(node)
    return targets



class MemoryHost(HostTree):
    """HostTree over an in-memory ``dom.node.Document``."""

    def __init__(self, document: Document) -> None:
        self._document = document

    @property
    def base_url(self) -> str:
        return self._document.url

    async def document(self) -> Document:
        if self._document.document_element is None:
            raise TreeUnavailableError("document has no root element")
        return self._document

    async def elements(self, root: Any) -> List[ElementView]:
        elements: List[Element] = []
        if isinstance(root, Element):
            elements.append(root)
        elements.extend(root.iter_descendants())
        return [describe_element(el) for el in elements]

    async def describe(self, node: Element) -> ElementView:
        return describe_element(node)

    async def is_connected(self, node: Node) -> bool:
        return node.is_connected

    async def perform(self, node: Element, action: Action) -> None:
        if isinstance(action, OpenContainer):
            target = node.parent_element if action.target == "parent" else node
            if target is not None:
                target.open = True
        elif isinstance(action, ExpandSelect):
            node.size = action.rows
        elif isinstance(action, FollowLink):
            node.click()
        elif isinstance(action, ToggleCheck):
            node.checked = not node.checked
            node.dispatch_event(Event("change", bubbles=True))
        elif isinstance(action, FillText):
            node.focus()
            node.value = action.value
            node.dispatch_event(Event("input", bubbles=True))
        elif isinstance(action, PointerClick):
            for event_type in action.events:
                node.dispatch_event(Event(event_type, bubbles=True))
        elif isinstance(action, SkipLink):
            return
        else:
            raise TypeError(f"unsupported action {action!r}")

    async def reveal_all(self) -> None:
        for element in self._document.iter_descendants():
            if element.tag == "details" and not element.open:
                element.open = True
            if element.hidden:
                element.hidden = False

    async def reset_baseline(self, nodes: Sequence[Element]) -> None:
        for element in self._document.iter_descendants():
            if element.tag == "details" and element.open:
                element.open = False
            elif element.tag == "select":
                element.size = 1
        for node in nodes:
            if node.is_connected and node.get_attribute("aria-expanded") == "true":
                await self.perform(node, PointerClick())

    async def serialize(self) -> dict:
        root = self._document.document_element
        if root is None:
            raise TreeUnavailableError("document has no root element")
        return serialize_node(root) or {}

    async def observe(self, callback: AddedNodesCallback) -> Observation:
        def deliver(records: List[MutationRecord], _observer: MutationObserver) -> None:
            nodes = scan_targets(records)
            if nodes:
                callback(nodes)

        observer = MutationObserver(deliver)
        observer.observe(self._document)
        return _MemoryObservation(observer)
