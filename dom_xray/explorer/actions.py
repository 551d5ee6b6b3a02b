"""Per-kind activation: pick the single safest state-changing action for a trigger.

``plan_action`` is pure and returns one of the tagged variants below; the host
tree knows how to perform each variant. Cross-origin links map to
``SkipLink`` and are never followed.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Literal, Union
from urllib.parse import urljoin

from ..config import Settings
from .host import ElementView, HostTree, origin_of


@dataclass(frozen=True)
class OpenContainer:
    target: Literal["self", "parent"] = "self"
    kind: str = "open_container"


@dataclass(frozen=True)
class ExpandSelect:
    rows: int
    kind: str = "expand_select"


@dataclass(frozen=True)
class FollowLink:
    url: str
    kind: str = "follow_link"


@dataclass(frozen=True)
class SkipLink:
    url: str
    reason: str = "cross_origin"
    kind: str = "skip_link"


@dataclass(frozen=True)
class ToggleCheck:
    kind: str = "toggle_check"


@dataclass(frozen=True)
class FillText:
    value: str
    kind: str = "fill_text"


@dataclass(frozen=True)
class PointerClick:
    events: tuple[str, ...] = ("mousedown", "click")
    kind: str = "pointer_click"


Action = Union[OpenContainer, ExpandSelect, FollowLink, SkipLink, ToggleCheck, FillText, PointerClick]


def plan_action(
    view: ElementView,
    base_url: str,
    fill_value: str = "test",
    min_select_rows: int = 5,
) -> Action:
    tag = view.tag
    input_type = (view.attr("type") or "").lower()

    if tag == "summary" and view.parent_tag == "details":
        return OpenContainer(target="parent")
    if tag == "details":
        return OpenContainer(target="self")
    if tag == "select":
        return ExpandSelect(rows=max(view.option_count, min_select_rows))
    if tag == "a":
        url = urljoin(base_url, view.attr("href") or "")
        if origin_of(url) == origin_of(base_url):
            return FollowLink(url=url)
        return SkipLink(url=url)
    if input_type in {"checkbox", "radio"}:
        return ToggleCheck()
    if tag == "input" and not input_type:
        return FillText(value=fill_value)
    return PointerClick()


class ActionDispatcher:
    def __init__(self, host: HostTree, settings: Settings) -> None:
        self.host = host
        self.settings = settings
        self.performed: Counter[str] = Counter()

    def plan(self, view: ElementView) -> Action:
        return plan_action(
            view,
            self.host.base_url,
            fill_value=self.settings.fill_value,
            min_select_rows=self.settings.min_select_rows,
        )

    async def activate(self, node) -> Action:
        """Perform the planned action for ``node`` and wait for the page to settle."""
        view = await self.host.describe(node)
        action = self.plan(view)
        if isinstance(action, SkipLink):
            logging.debug("skip_link url=%s reason=%s", action.url, action.reason)
        else:
            await self.host.perform(node, action)
            logging.debug("activate tag=%s action=%s", view.tag, action.kind)
        self.performed[action.kind] += 1
        await self.host.sleep(self.settings.settle_delay_ms)
        return action
