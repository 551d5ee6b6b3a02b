import gc

from dom_xray.dom.node import Element
from dom_xray.explorer.registry import DedupRegistry, Frontier


def test_marks_are_identity_keyed():
    registry = DedupRegistry()
    first = Element("button", {"class": "primary"})
    twin = Element("button", {"class": "primary"})

    assert registry.mark_visited(first) is True
    assert registry.mark_visited(first) is False
    assert registry.is_visited(twin) is False
    assert registry.mark_visited(twin) is True

    assert registry.mark_activated(first) is True
    assert registry.mark_activated(first) is False
    assert registry.is_activated(twin) is False


def test_registry_does_not_keep_nodes_alive():
    registry = DedupRegistry()
    node = Element("input")
    registry.mark_visited(node)
    registry.mark_activated(node)
    assert len(registry.visited) == 1

    del node
    gc.collect()

    assert len(registry.visited) == 0
    assert len(registry.activated) == 0


def test_frontier_is_fifo_and_deduplicated():
    registry = DedupRegistry()
    frontier = Frontier(registry)
    a, b, c = Element("a"), Element("button"), Element("select")

    assert frontier.push(a)
    assert frontier.push(b)
    assert not frontier.push(a)
    assert frontier.push(c)
    assert len(frontier) == 3
    assert b in frontier

    assert frontier.pop() is a
    assert frontier.pop() is b
    assert frontier.pop() is c
    assert frontier.pop() is None
    assert not frontier


def test_frontier_refuses_activated_triggers():
    registry = DedupRegistry()
    frontier = Frontier(registry)
    node = Element("button")
    registry.mark_activated(node)

    assert frontier.push(node) is False
    assert len(frontier) == 0
