import asyncio

from dom_xray.config import Settings
from dom_xray.explorer.loop import explore
from dom_xray.explorer.playwright_host import PlaywrightHost


def view(uid, tag, attributes=None, has_shadow=False, path=""):
    return {
        "uid": uid,
        "tag": tag,
        "attributes": attributes or {},
        "label": None,
        "text": None,
        "required": False,
        "parentTag": "body",
        "rendered": True,
        "optionCount": 0,
        "path": path,
        "hasShadow": has_shadow,
    }


class FakePage:
    """Answers the host's evaluate calls from a small table of page nodes."""

    url = "https://app.example.com/"

    def __init__(self):
        self.nodes = {
            "x1": view("x1", "x-panel", has_shadow=True, path="/html[1]/body[1]/x-panel[1]"),
            "x2": view("x2", "button", {"id": "add"}, path="/html[1]/body[1]/x-panel[1]/#shadow-root/button[1]"),
        }
        self.children = {"document": ["x1"], "shadow:x1": ["x2"]}
        self.pending = []
        self.calls = []

    async def evaluate(self, script, arg=None):
        if "querySelectorAll('*')" in script:
            self.calls.append(("elements", arg))
            own = [arg] if arg in self.nodes else []
            return [self.nodes[uid] for uid in own + self.children.get(arg, [])]
        if "xray.start()" in script:
            self.calls.append(("start", None))
            return None
        if "xray.collect(" in script:
            self.calls.append(("take_records", None))
            pending, self.pending = self.pending, []
            return pending
        if "switch (action.kind)" in script:
            uid, action = arg
            self.calls.append(("perform", uid))
            if uid == "x2":
                # a node attached under the pre-existing shadow root
                self.nodes["x3"] = view("x3", "input", {"id": "late"}, path="/html[1]/body[1]/x-panel[1]/#shadow-root/input[1]")
                self.children["shadow:x1"].append("x3")
                self.pending.append("x3")
            return True
        if "return el ? xray.describe(el) : null" in script:
            return self.nodes.get(arg)
        if "return !!el && el.isConnected" in script:
            return arg in self.nodes
        if "xray.observer.disconnect()" in script:
            self.calls.append(("disconnect", None))
            return None
        if "!!document.documentElement" in script:
            return True
        return None

    async def wait_for_timeout(self, ms):
        return None


def test_shadow_root_seen_before_watch_start_is_observed():
    page = FakePage()

    report = asyncio.run(explore(PlaywrightHost(page), Settings(settle_delay_ms=0)))

    assert [record.attributes.get("id") for record in report.records] == ["add", "late"]
    kinds = [kind for kind, _ in page.calls]
    assert kinds.index("elements") < kinds.index("start") < kinds.index("perform")
    assert ("perform", "x3") in page.calls
    assert kinds[-1] == "disconnect"


def test_installed_observer_tracks_roots_and_reveals():
    host = PlaywrightHost(FakePage())
    sent = []

    async def capture(script, arg=None):
        sent.append(script)
        return None

    host.page.evaluate = capture

    async def run():
        observation = await host.observe(lambda nodes: None)
        await observation.take_records()

    asyncio.run(run())

    script = sent[0]
    # roots are remembered even before observing starts, then attached on start
    assert "if (state.observing) attach(root);" in script
    assert "roots.forEach" in script
    assert "attributeFilter: ['open', 'hidden']" in script
