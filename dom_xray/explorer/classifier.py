"""Control and trigger classification over element views.

The rules mirror these CSS selector lists:

controls:  input, select, textarea, button, summary
triggers:  a[href]:not([download]), button, summary,
           input:not([type="hidden" i]):not([disabled]),
           select:not([disabled]), textarea:not([disabled]),
           [contenteditable="true"], [tabindex]:not([tabindex="-1"]),
           [aria-haspopup], [role~=button|link|menuitem|checkbox|switch|radio|combobox]
combo:     select, [aria-haspopup], [role~=menu], [role~=combobox], button
"""

from __future__ import annotations

from typing import Callable

from .host import ElementView

Classifier = Callable[[ElementView], bool]

CONTROL_TAGS = frozenset({"input", "select", "textarea", "button", "summary"})
TEXT_BEARING_TAGS = frozenset({"button", "select", "summary"})
TRIGGER_ROLES = frozenset({"button", "link", "menuitem", "checkbox", "switch", "radio", "combobox"})
COMBO_ROLES = frozenset({"menu", "combobox"})


def _role_tokens(view: ElementView) -> set[str]:
    return set((view.attr("role") or "").split())


def is_control(view: ElementView) -> bool:
    return view.tag in CONTROL_TAGS


def is_trigger(view: ElementView) -> bool:
    tag = view.tag
    if tag == "a":
        if view.has_attr("href") and not view.has_attr("download"):
            return True
    elif tag in {"button", "summary"}:
        return True
    elif tag == "input":
        if (view.attr("type") or "").lower() != "hidden" and not view.has_attr("disabled"):
            return True
    elif tag in {"select", "textarea"}:
        if not view.has_attr("disabled"):
            return True

    if view.attr("contenteditable") == "true":
        return True
    if view.has_attr("tabindex") and view.attr("tabindex") != "-1":
        return True
    if view.has_attr("aria-haspopup"):
        return True
    return bool(_role_tokens(view) & TRIGGER_ROLES)


def is_combo_trigger(view: ElementView) -> bool:
    if view.tag in {"select", "button"}:
        return True
    if view.has_attr("aria-haspopup"):
        return True
    return bool(_role_tokens(view) & COMBO_ROLES)
