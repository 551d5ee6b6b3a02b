import asyncio

import pytest

from dom_xray.config import Settings
from dom_xray.dom.html_loader import parse_html
from dom_xray.explorer.actions import (
    ActionDispatcher,
    ExpandSelect,
    FillText,
    FollowLink,
    OpenContainer,
    PointerClick,
    SkipLink,
    ToggleCheck,
    plan_action,
)
from dom_xray.explorer.host import ElementView
from dom_xray.explorer.memory_host import MemoryHost

BASE = "https://shop.example.com/catalog/index.html"


def view(tag, parent_tag=None, option_count=0, **attributes):
    return ElementView(node=object(), tag=tag, attributes=attributes, parent_tag=parent_tag, option_count=option_count)


@pytest.mark.parametrize(
    "element, expected",
    [
        (view("summary", parent_tag="details"), OpenContainer(target="parent")),
        (view("details"), OpenContainer(target="self")),
        (view("select", option_count=3), ExpandSelect(rows=5)),
        (view("select", option_count=12), ExpandSelect(rows=12)),
        (view("input", type="checkbox"), ToggleCheck()),
        (view("input", type="Radio"), ToggleCheck()),
        (view("input"), FillText(value="test")),
        (view("button"), PointerClick()),
        (view("summary", parent_tag="div"), PointerClick()),
        (view("input", type="text"), PointerClick()),
        (view("div", role="menuitem"), PointerClick()),
        (view("div", contenteditable="true"), PointerClick()),
    ],
)
def test_plan_action_per_kind(element, expected):
    assert plan_action(element, BASE) == expected


@pytest.mark.parametrize(
    "href, expected_url",
    [
        ("#reviews", BASE + "#reviews"),
        ("/cart", "https://shop.example.com/cart"),
        ("details.html", "https://shop.example.com/catalog/details.html"),
        ("https://shop.example.com:443/checkout", "https://shop.example.com:443/checkout"),
        ("", BASE),
    ],
)
def test_same_origin_links_are_followed(href, expected_url):
    assert plan_action(view("a", href=href), BASE) == FollowLink(url=expected_url)


@pytest.mark.parametrize(
    "href",
    [
        "https://tracker.example.org/pixel",
        "http://shop.example.com/insecure",
        "https://shop.example.com:8443/admin",
        "//cdn.example.net/lib.js",
        "mailto:sales@example.com",
    ],
)
def test_cross_origin_links_are_skipped(href):
    action = plan_action(view("a", href=href), BASE)

    assert isinstance(action, SkipLink)
    assert action.reason == "cross_origin"


def make_host(html, url=BASE):
    document = parse_html(html, url=url)
    return document, MemoryHost(document), Settings(settle_delay_ms=0)


def test_select_expands_to_at_least_five_rows():
    document, host, settings = make_host("<select id='s'><option>a</option><option>b</option><option>c</option></select>")
    select = document.get_element_by_id("s")

    action = asyncio.run(ActionDispatcher(host, settings).activate(select))

    assert action == ExpandSelect(rows=5)
    assert select.size == 5
    assert select.get_attribute("size") == "5"


def test_checkbox_toggles_and_notifies_once():
    document, host, settings = make_host("<input id='agree' type='checkbox'>")
    checkbox = document.get_element_by_id("agree")
    changes = []
    checkbox.add_event_listener("change", lambda event: changes.append(event.target))

    asyncio.run(ActionDispatcher(host, settings).activate(checkbox))

    assert checkbox.checked is True
    assert changes == [checkbox]


def test_change_notification_bubbles():
    document, host, settings = make_host("<form id='f'><input id='r' type='radio'></form>")
    seen = []
    document.get_element_by_id("f").add_event_listener("change", lambda event: seen.append(event.type))

    asyncio.run(ActionDispatcher(host, settings).activate(document.get_element_by_id("r")))

    assert seen == ["change"]


def test_untyped_input_is_focused_and_filled():
    document, host, settings = make_host("<input id='q'>")
    field = document.get_element_by_id("q")
    events = []
    field.add_event_listener("focus", lambda event: events.append("focus"))
    field.add_event_listener("input", lambda event: events.append(("input", event.target.value)))

    asyncio.run(ActionDispatcher(host, Settings(settle_delay_ms=0, fill_value="hello")).activate(field))

    assert field.value == "hello"
    assert document.active_element is field
    assert events == ["focus", ("input", "hello")]


def test_summary_opens_its_container():
    document, host, settings = make_host("<details id='d'><summary id='s'>More</summary><p>body</p></details>")

    asyncio.run(ActionDispatcher(host, settings).activate(document.get_element_by_id("s")))

    assert document.get_element_by_id("d").open is True


def test_fallback_dispatches_mousedown_then_click_bubbling():
    document, host, settings = make_host("<div id='wrap'><span id='menu' role='button'>Menu</span></div>")
    seen = []
    for event_type in ("mousedown", "click"):
        document.get_element_by_id("wrap").add_event_listener(
            event_type, lambda event: seen.append((event.type, event.bubbles))
        )

    asyncio.run(ActionDispatcher(host, settings).activate(document.get_element_by_id("menu")))

    assert seen == [("mousedown", True), ("click", True)]


def test_only_same_origin_link_is_activated():
    document, host, settings = make_host(
        "<a id='local' href='#specs'>Specs</a><a id='remote' href='https://other.example.org/'>Elsewhere</a>"
    )
    dispatcher = ActionDispatcher(host, settings)

    local_action = asyncio.run(dispatcher.activate(document.get_element_by_id("local")))
    remote_action = asyncio.run(dispatcher.activate(document.get_element_by_id("remote")))

    assert isinstance(local_action, FollowLink)
    assert isinstance(remote_action, SkipLink)
    assert document.navigations == [BASE + "#specs"]
    assert dispatcher.performed == {"follow_link": 1, "skip_link": 1}


def test_settle_delay_is_awaited_after_each_action():
    document, host, _settings = make_host("<button id='b'>B</button>")
    delays = []

    async def record_sleep(ms):
        delays.append(ms)

    host.sleep = record_sleep

    asyncio.run(ActionDispatcher(host, Settings(settle_delay_ms=200)).activate(document.get_element_by_id("b")))

    assert delays == [200]
