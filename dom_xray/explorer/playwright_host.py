from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from .actions import Action, SkipLink
from .host import AddedNodesCallback, ElementView, HostTree, Observation, TreeUnavailableError

# Installs window.__xray once per document. Elements get a stable uid and are
# held through WeakRef so the page can still collect removed nodes.
_INSTALL_JS = """
if (!window.__xray) {
    const refs = new Map();
    let counter = 0;
    const uidOf = (el) => {
        if (!el.__xray_uid) {
            counter += 1;
            el.__xray_uid = `x${counter}`;
        }
        refs.set(el.__xray_uid, new WeakRef(el));
        return el.__xray_uid;
    };
    const resolve = (uid) => {
        if (uid === 'document') return document;
        if (uid.startsWith('shadow:')) {
            const host = resolve(uid.slice(7));
            return host ? host.shadowRoot : null;
        }
        const ref = refs.get(uid);
        return ref ? (ref.deref() || null) : null;
    };
    const rendered = (el) => {
        let node = el;
        let child = null;
        while (node) {
            if (node.nodeType === 11) {
                child = node;
                node = node.host;
                continue;
            }
            if (node.nodeType === 1) {
                if (node.hasAttribute('hidden')) return false;
                if (node.tagName === 'DETAILS' && !node.open && child && child.tagName !== 'SUMMARY') return false;
            }
            child = node;
            node = node.parentNode;
        }
        return true;
    };
    const pathOf = (el) => {
        const parts = [];
        let node = el;
        while (node && node.nodeType !== 9) {
            if (node.nodeType === 11) {
                parts.push('#shadow-root');
                node = node.host;
                continue;
            }
            const parent = node.parentNode;
            const index = parent
                ? Array.from(parent.children).filter((c) => c.tagName === node.tagName).indexOf(node) + 1
                : 1;
            parts.push(`${node.tagName.toLowerCase()}[${index}]`);
            node = parent;
        }
        return '/' + parts.reverse().join('/');
    };
    const describe = (el) => {
        const tag = el.tagName.toLowerCase();
        const attributes = {};
        for (const attr of el.attributes) attributes[attr.name] = attr.value;
        let label = null;
        if (el.labels && el.labels[0]) {
            label = el.labels[0].innerText.trim();
        } else if (el.getAttribute('aria-label')) {
            label = el.getAttribute('aria-label').trim();
        }
        return {
            uid: uidOf(el),
            tag,
            attributes,
            label,
            text: ['button', 'select', 'summary'].includes(tag) ? (el.innerText || '').trim() : null,
            required: !!el.required || el.hasAttribute('required'),
            parentTag: el.parentElement ? el.parentElement.tagName.toLowerCase() : null,
            rendered: rendered(el),
            optionCount: el.options ? el.options.length : 0,
            path: pathOf(el),
            hasShadow: !!el.shadowRoot,
        };
    };
    const added = [];
    const reveals = (m) => {
        const el = m.target;
        if (m.attributeName === 'open') return el.tagName === 'DETAILS' && el.open;
        return !el.hasAttribute('hidden');
    };
    const collect = (mutations) => {
        mutations.forEach((m) => {
            if (m.type === 'attributes') {
                if (reveals(m)) added.push(uidOf(m.target));
                return;
            }
            m.addedNodes.forEach((n) => {
                if (n.nodeType === 1) added.push(uidOf(n));
            });
        });
    };
    const observer = new MutationObserver(collect);
    // shadow roots seen by any scan; observed once the watcher starts
    const roots = [];
    const state = { observing: false, observed: new WeakSet() };
    const attach = (root) => {
        if (state.observed.has(root)) return;
        state.observed.add(root);
        observer.observe(root, {
            childList: true,
            subtree: true,
            attributes: true,
            attributeFilter: ['open', 'hidden'],
        });
    };
    const watch = (root) => {
        if (!roots.some((ref) => ref.deref() === root)) roots.push(new WeakRef(root));
        if (state.observing) attach(root);
    };
    const start = () => {
        state.observing = true;
        attach(document.documentElement);
        roots.forEach((ref) => {
            const root = ref.deref();
            if (root && root.isConnected) attach(root);
        });
    };
    const serialize = (node) => {
        if (node.nodeType === 3) {
            return node.data.trim() ? { text: node.data } : null;
        }
        if (node.nodeType !== 1) return null;
        const attributes = {};
        for (const attr of node.attributes) attributes[attr.name] = attr.value;
        const out = {
            tag: node.tagName.toLowerCase(),
            attributes,
            children: Array.from(node.childNodes).map(serialize).filter(Boolean),
        };
        if (node.shadowRoot) {
            out.shadowRoot = Array.from(node.shadowRoot.childNodes).map(serialize).filter(Boolean);
        }
        return out;
    };
    window.__xray = { refs, uidOf, resolve, describe, added, observer, collect, state, watch, start, serialize };
}
const xray = window.__xray;
"""

_ELEMENTS_JS = """
(rootUid) => {
    const root = xray.resolve(rootUid);
    if (!root) return [];
    const elements = root.nodeType === 1 ? [root] : [];
    elements.push(...root.querySelectorAll('*'));
    return elements.map((el) => {
        if (el.shadowRoot) xray.watch(el.shadowRoot);
        return xray.describe(el);
    });
}
"""

_PERFORM_JS = """
([uid, action]) => {
    const el = xray.resolve(uid);
    if (!el) return false;
    switch (action.kind) {
        case 'open_container': {
            const target = action.target === 'parent' ? el.parentElement : el;
            if (target) target.open = true;
            break;
        }
        case 'expand_select':
            el.size = action.rows;
            break;
        case 'follow_link':
            el.click();
            break;
        case 'toggle_check':
            el.checked = !el.checked;
            el.dispatchEvent(new Event('change', { bubbles: true }));
            break;
        case 'fill_text':
            el.focus();
            el.value = action.value;
            el.dispatchEvent(new Event('input', { bubbles: true }));
            break;
        default:
            (action.events || ['mousedown', 'click']).forEach((type) =>
                el.dispatchEvent(new MouseEvent(type, { bubbles: true }))
            );
    }
    return true;
}
"""

_REVEAL_JS = """
() => {
    document.querySelectorAll('details:not([open])').forEach((d) => { d.open = true; });
    document.querySelectorAll('[hidden]').forEach((el) => el.removeAttribute('hidden'));
}
"""

_RESET_JS = """
(uids) => {
    document.querySelectorAll('details[open]').forEach((d) => { d.open = false; });
    document.querySelectorAll('select').forEach((s) => { s.size = 1; });
    uids.forEach((uid) => {
        const el = xray.resolve(uid);
        if (el && el.isConnected && el.getAttribute('aria-expanded') === 'true') {
            ['mousedown', 'click'].forEach((type) => el.dispatchEvent(new MouseEvent(type, { bubbles: true })));
        }
    });
}
"""

_OBSERVE_JS = """
() => {
    xray.start();
}
"""

_TAKE_RECORDS_JS = """
() => {
    xray.collect(xray.observer.takeRecords());
    return xray.added.splice(0);
}
"""

_DISCONNECT_JS = """
() => {
    xray.observer.disconnect();
    xray.state.observing = false;
    xray.state.observed = new WeakSet();
    xray.added.splice(0);
    xray.refs.clear();
}
"""


class ElementRef:
    """Python-side handle for one page node; one instance per uid for the run."""

    __slots__ = ("uid", "__weakref__")

    def __init__(self, uid: str) -> None:
        self.uid = uid

    def __repr__(self) -> str:
        return f"ElementRef({self.uid})"


class _PlaywrightObservation(Observation):
    def __init__(self, host: "PlaywrightHost") -> None:
        self.host = host

    async def take_records(self) -> List[Any]:
        try:
            uids = await self.host._call(_TAKE_RECORDS_JS)
        except PlaywrightError as exc:
            logging.warning("mutation_drain_failed reason=%s", exc)
            return []
        return [self.host._ref(uid) for uid in uids or []]

    async def disconnect(self) -> None:
        try:
            await self.host._call(_DISCONNECT_JS)
        except PlaywrightError as exc:
            logging.debug("mutation_disconnect_failed reason=%s", exc)
        self.host._refs.clear()


class PlaywrightHost(HostTree):
    """HostTree over a live Playwright page.

    Mutations are queued page-side and handed over when the engine drains
    after each settle delay, so the observe callback is never invoked from
    the page.
    """

    def __init__(self, page: Optional[Page]) -> None:
        self.page = page
        self._refs: Dict[str, ElementRef] = {}

    def _require_page(self) -> Page:
        if self.page is None:
            raise TreeUnavailableError("Browser page is not initialized. Use within an async context manager.")
        return self.page

    def _ref(self, uid: str) -> ElementRef:
        ref = self._refs.get(uid)
        if ref is None:
            ref = self._refs[uid] = ElementRef(uid)
        return ref

    async def _call(self, script: str, arg: Any = None) -> Any:
        page = self._require_page()
        wrapped = f"(arg) => {{ {_INSTALL_JS} return ({script})(arg); }}"
        return await page.evaluate(wrapped, arg)

    def _view(self, data: dict) -> ElementView:
        uid = data["uid"]
        return ElementView(
            node=self._ref(uid),
            tag=data["tag"],
            attributes=data.get("attributes") or {},
            label=data.get("label"),
            text=data.get("text"),
            required=bool(data.get("required")),
            parent_tag=data.get("parentTag"),
            rendered=bool(data.get("rendered", True)),
            option_count=int(data.get("optionCount") or 0),
            path=data.get("path") or "",
            shadow_root=self._ref(f"shadow:{uid}") if data.get("hasShadow") else None,
        )

    @property
    def base_url(self) -> str:
        return self._require_page().url

    async def document(self) -> ElementRef:
        try:
            ok = await self._call("() => !!document.documentElement")
        except PlaywrightError as exc:
            raise TreeUnavailableError(f"cannot read document root: {exc}") from exc
        if not ok:
            raise TreeUnavailableError("document has no root element")
        return self._ref("document")

    async def elements(self, root: ElementRef) -> List[ElementView]:
        try:
            items = await self._call(_ELEMENTS_JS, root.uid)
        except PlaywrightError as exc:
            logging.warning("scan_failed root=%s reason=%s", root.uid, exc)
            return []
        return [self._view(item) for item in items or []]

    async def describe(self, node: ElementRef) -> ElementView:
        data = await self._call("(uid) => { const el = xray.resolve(uid); return el ? xray.describe(el) : null; }", node.uid)
        if data is None:
            return ElementView(node=node, tag="", rendered=False)
        return self._view(data)

    async def is_connected(self, node: ElementRef) -> bool:
        try:
            return bool(
                await self._call("(uid) => { const el = xray.resolve(uid); return !!el && el.isConnected; }", node.uid)
            )
        except PlaywrightError:
            return False

    async def perform(self, node: ElementRef, action: Action) -> None:
        if isinstance(action, SkipLink):
            return
        try:
            await self._call(_PERFORM_JS, [node.uid, dataclasses.asdict(action)])
        except PlaywrightError as exc:
            # a same-origin link may navigate and tear down the execution context
            logging.warning("action_failed uid=%s action=%s reason=%s", node.uid, action.kind, exc)

    async def reveal_all(self) -> None:
        await self._call(_REVEAL_JS)

    async def reset_baseline(self, nodes: Sequence[ElementRef]) -> None:
        await self._call(_RESET_JS, [node.uid for node in nodes])

    async def serialize(self) -> dict:
        try:
            tree = await self._call("() => xray.serialize(document.documentElement)")
        except PlaywrightError as exc:
            raise TreeUnavailableError(f"cannot serialize document: {exc}") from exc
        return tree or {}

    async def observe(self, callback: AddedNodesCallback) -> Observation:
        await self._call(_OBSERVE_JS)
        return _PlaywrightObservation(self)

    async def sleep(self, ms: int) -> None:
        await self._require_page().wait_for_timeout(max(ms, 0))
