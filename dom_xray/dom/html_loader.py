from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup
from bs4.element import Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag

from .node import Document, Element, Node, Text

_SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)


def _attributes(tag: Tag) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for name, value in tag.attrs.items():
        # bs4 splits multi-valued attributes such as class into lists
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attrs[name.lower()] = "" if value is None else str(value)
    return attrs


def _copy_children(source: Tag, target: Node) -> None:
    for child in source.children:
        if isinstance(child, _SKIPPED_STRINGS):
            continue
        if isinstance(child, NavigableString):
            target.append_child(Text(str(child)))
            continue
        if not isinstance(child, Tag):
            continue
        if child.name == "template" and child.get("shadowrootmode") and isinstance(target, Element):
            shadow = target.attach_shadow(str(child.get("shadowrootmode")))
            _copy_children(child, shadow)
            continue
        element = Element(child.name, _attributes(child))
        target.append_child(element)
        _copy_children(child, element)


def parse_html(html: str, url: str = "about:blank") -> Document:
    """Build a live in-memory Document from HTML.

    Declarative shadow roots (``<template shadowrootmode="open">``) become
    attached shadow roots of their parent element. Markup without an ``html``
    element is wrapped in ``html > body`` the way a browser parser would.
    """
    soup = BeautifulSoup(html, "html.parser")
    document = Document(url)
    root_tag = soup.find("html")
    if isinstance(root_tag, Tag):
        root = Element("html", _attributes(root_tag))
        document.append_child(root)
        _copy_children(root_tag, root)
        if document.body is None:
            root.append_child(Element("body"))
        return document

    root = Element("html")
    body = Element("body")
    document.append_child(root)
    root.append_child(body)
    _copy_children(soup, body)
    return document


def load_html_file(path: str | Path, url: str | None = None) -> Document:
    file_path = Path(path)
    html = file_path.read_text(encoding="utf-8")
    return parse_html(html, url or file_path.resolve().as_uri())
