"""In-memory live document tree.

A small, mutable DOM model used to explore static HTML offline and to drive the
exploration engine without a browser. It mirrors the browser behaviours the
engine depends on: reflected attributes (``open``, ``hidden``, ``size``),
form-control state (``checked``, ``value``), bubbling events with Python
listeners standing in for page scripts, open shadow roots, and
MutationObserver-style change notification delivered on the running asyncio
loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional
from urllib.parse import urljoin

Listener = Callable[["Event"], None]


@dataclass
class Event:
    type: str
    bubbles: bool = False
    target: Optional["Element"] = None
    current_target: Optional["Node"] = None
    default_prevented: bool = False
    propagation_stopped: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_propagation(self) -> None:
        self.propagation_stopped = True


@dataclass
class MutationRecord:
    target: "Node"
    added_nodes: List["Node"] = field(default_factory=list)
    removed_nodes: List["Node"] = field(default_factory=list)
    type: str = "childList"
    attribute_name: Optional[str] = None
    old_value: Optional[str] = None


class MutationObserver:
    """Queues child-list and attribute records for one document and delivers them in batches.

    Delivery is scheduled with ``loop.call_soon`` so a batch produced while a
    coroutine runs is handed to the callback at the next suspension point.
    ``take_records`` empties the queue synchronously, as in the browser API.
    """

    def __init__(self, callback: Callable[[List[MutationRecord], "MutationObserver"], None]) -> None:
        self._callback = callback
        self._records: List[MutationRecord] = []
        self._document: Optional[Document] = None
        self._scheduled = False

    def observe(self, document: "Document") -> None:
        self._document = document
        document._observers.append(self)

    def disconnect(self) -> None:
        if self._document is not None and self in self._document._observers:
            self._document._observers.remove(self)
        self._document = None
        self._records = []

    def take_records(self) -> List[MutationRecord]:
        records, self._records = self._records, []
        return records

    def _enqueue(self, record: MutationRecord) -> None:
        self._records.append(record)
        if self._scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._scheduled = True
        loop.call_soon(self._deliver)

    def _deliver(self) -> None:
        self._scheduled = False
        if self._document is None:
            return
        records = self.take_records()
        if records:
            self._callback(records, self)


class Node:
    def __init__(self) -> None:
        self.parent: Optional[Node] = None
        self.children: List[Node] = []

    @property
    def parent_element(self) -> Optional["Element"]:
        return self.parent if isinstance(self.parent, Element) else None

    def root_node(self) -> "Node":
        node: Node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def owner_document(self) -> Optional["Document"]:
        root = self.root_node()
        while isinstance(root, ShadowRoot):
            root = root.host.root_node()
        return root if isinstance(root, Document) else None

    @property
    def is_connected(self) -> bool:
        return self.owner_document is not None

    @property
    def text_content(self) -> str:
        return "".join(child.text_content for child in self.children)

    def append_child(self, child: "Node") -> "Node":
        return self.insert_before(child, None)

    def insert_before(self, child: "Node", reference: Optional["Node"]) -> "Node":
        if child.parent is not None:
            child.parent.remove_child(child)
        index = len(self.children) if reference is None else self.children.index(reference)
        self.children.insert(index, child)
        child.parent = self
        self._notify(MutationRecord(target=self, added_nodes=[child]))
        return child

    def remove_child(self, child: "Node") -> "Node":
        self.children.remove(child)
        child.parent = None
        self._notify(MutationRecord(target=self, removed_nodes=[child]))
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.remove_child(self)

    def _notify(self, record: MutationRecord) -> None:
        document = self.owner_document
        if document is None:
            return
        for observer in list(document._observers):
            observer._enqueue(record)

    def iter_descendants(self, pierce_shadow: bool = False) -> Iterator["Element"]:
        """Yield descendant elements in document order."""
        stack: List[Node] = list(reversed(self.children))
        while stack:
            node = stack.pop()
            if isinstance(node, Element):
                yield node
                if pierce_shadow and node.shadow_root is not None:
                    stack.extend(reversed(node.shadow_root.children))
            stack.extend(reversed(node.children))


class Text(Node):
    def __init__(self, data: str) -> None:
        super().__init__()
        self.data = data

    @property
    def text_content(self) -> str:
        return self.data

    def __repr__(self) -> str:
        return f"Text({self.data!r})"


class ShadowRoot(Node):
    def __init__(self, host: "Element", mode: str = "open") -> None:
        super().__init__()
        self.host = host
        self.mode = mode


class Element(Node):
    def __init__(self, tag: str, attributes: Optional[dict[str, str]] = None) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attributes: dict[str, str] = dict(attributes or {})
        self.shadow_root: Optional[ShadowRoot] = None
        self._listeners: dict[str, List[Listener]] = {}
        self._checked: Optional[bool] = None
        self._value: Optional[str] = None

    def __repr__(self) -> str:
        return f"<{self.tag} {self.attributes!r}>"

    # attributes
    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name.lower())

    def set_attribute(self, name: str, value: str) -> None:
        name = name.lower()
        old_value = self.attributes.get(name)
        self.attributes[name] = value
        if old_value != value:
            self._notify_attribute(name, old_value)

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self.attributes

    def remove_attribute(self, name: str) -> None:
        name = name.lower()
        if name in self.attributes:
            old_value = self.attributes.pop(name)
            self._notify_attribute(name, old_value)

    def _notify_attribute(self, name: str, old_value: Optional[str]) -> None:
        self._notify(MutationRecord(target=self, type="attributes", attribute_name=name, old_value=old_value))

    def _set_flag(self, name: str, on: bool) -> None:
        if not on:
            self.remove_attribute(name)
        elif not self.has_attribute(name):
            self.set_attribute(name, "")

    @property
    def id(self) -> Optional[str]:
        return self.attributes.get("id")

    @property
    def open(self) -> bool:
        return self.has_attribute("open")

    @open.setter
    def open(self, value: bool) -> None:
        self._set_flag("open", value)

    @property
    def hidden(self) -> bool:
        return self.has_attribute("hidden")

    @hidden.setter
    def hidden(self, value: bool) -> None:
        self._set_flag("hidden", value)

    @property
    def size(self) -> int:
        try:
            return int(self.attributes.get("size", "0"))
        except ValueError:
            return 0

    @size.setter
    def size(self, value: int) -> None:
        self.attributes["size"] = str(value)

    @property
    def checked(self) -> bool:
        if self._checked is None:
            return self.has_attribute("checked")
        return self._checked

    @checked.setter
    def checked(self, value: bool) -> None:
        self._checked = bool(value)

    @property
    def value(self) -> str:
        if self._value is None:
            return self.attributes.get("value", "")
        return self._value

    @value.setter
    def value(self, value: str) -> None:
        self._value = value

    @property
    def options(self) -> List["Element"]:
        return [el for el in self.iter_descendants() if el.tag == "option"]

    @property
    def inner_text(self) -> str:
        return " ".join(self.text_content.split())

    @property
    def labels(self) -> List["Element"]:
        found: List[Element] = []
        ancestor = self.parent_element
        while ancestor is not None:
            if ancestor.tag == "label":
                found.append(ancestor)
                break
            ancestor = ancestor.parent_element
        element_id = self.id
        if element_id:
            scope = self.root_node()
            for el in scope.iter_descendants():
                if el.tag == "label" and el.get_attribute("for") == element_id and el not in found:
                    found.append(el)
        return found

    # shadow DOM
    def attach_shadow(self, mode: str = "open") -> ShadowRoot:
        self.shadow_root = ShadowRoot(self, mode)
        return self.shadow_root

    # events
    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def dispatch_event(self, event: Event) -> bool:
        event.target = self
        path: List[Node] = [self]
        if event.bubbles:
            node: Optional[Node] = self.parent
            while node is not None:
                path.append(node)
                node = node.host if isinstance(node, ShadowRoot) else node.parent
        for node in path:
            if not isinstance(node, (Element, Document)):
                continue
            event.current_target = node
            for listener in list(node._listeners.get(event.type, [])):
                listener(event)
            if event.propagation_stopped:
                break
        return not event.default_prevented

    def focus(self) -> None:
        document = self.owner_document
        if document is not None:
            document.active_element = self
        self.dispatch_event(Event("focus"))

    def click(self) -> None:
        """Activation behaviour: a bubbling click, then link navigation."""
        proceed = self.dispatch_event(Event("click", bubbles=True))
        if proceed and self.tag == "a" and self.has_attribute("href"):
            document = self.owner_document
            if document is not None:
                document.navigate(self.get_attribute("href") or "")


class Document(Node):
    def __init__(self, url: str = "about:blank") -> None:
        super().__init__()
        self.url = url
        self.active_element: Optional[Element] = None
        self.navigations: List[str] = []
        self._observers: List[MutationObserver] = []
        self._listeners: dict[str, List[Listener]] = {}

    @property
    def document_element(self) -> Optional[Element]:
        return next((c for c in self.children if isinstance(c, Element)), None)

    @property
    def body(self) -> Optional[Element]:
        root = self.document_element
        if root is None:
            return None
        return next((c for c in root.children if isinstance(c, Element) and c.tag == "body"), None)

    def add_event_listener(self, event_type: str, listener: Listener) -> None:
        self._listeners.setdefault(event_type, []).append(listener)

    def create_element(self, tag: str, attributes: Optional[dict[str, str]] = None) -> Element:
        return Element(tag, attributes)

    def create_text(self, data: str) -> Text:
        return Text(data)

    def navigate(self, href: str) -> None:
        self.navigations.append(urljoin(self.url, href))

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        return next((el for el in self.iter_descendants(pierce_shadow=True) if el.id == element_id), None)

    def elements_by_tag(self, tag: str) -> List[Element]:
        return [el for el in self.iter_descendants(pierce_shadow=True) if el.tag == tag.lower()]
