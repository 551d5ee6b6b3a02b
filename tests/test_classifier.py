import pytest

from dom_xray.explorer.classifier import is_combo_trigger, is_control, is_trigger
from dom_xray.explorer.host import ElementView


def view(tag, **attributes):
    return ElementView(node=object(), tag=tag, attributes=attributes)


@pytest.mark.parametrize("tag", ["input", "select", "textarea", "button", "summary"])
def test_form_controls_are_controls(tag):
    assert is_control(view(tag))


@pytest.mark.parametrize("tag", ["a", "div", "details", "label", "option"])
def test_other_tags_are_not_controls(tag):
    assert not is_control(view(tag))


@pytest.mark.parametrize(
    "element",
    [
        view("a", href="/next"),
        view("button"),
        view("summary"),
        view("input"),
        view("input", type="checkbox"),
        view("select"),
        view("textarea"),
        view("div", contenteditable="true"),
        view("div", tabindex="0"),
        view("span", tabindex="3"),
        view("div", **{"aria-haspopup": "menu"}),
        view("div", role="button"),
        view("li", role="presentation menuitem"),
        view("div", role="switch"),
        view("div", role="combobox"),
        view("a", role="link"),
    ],
)
def test_trigger_classifier_matches(element):
    assert is_trigger(element)


@pytest.mark.parametrize(
    "element",
    [
        view("a"),
        view("a", href="/report.pdf", download=""),
        view("input", type="hidden"),
        view("input", type="HIDDEN"),
        view("input", disabled=""),
        view("select", disabled=""),
        view("textarea", disabled=""),
        view("div", contenteditable="false"),
        view("div", contenteditable=""),
        view("div", tabindex="-1"),
        view("div", role="presentation"),
        view("details"),
        view("p"),
    ],
)
def test_trigger_classifier_rejects(element):
    assert not is_trigger(element)


def test_disabled_input_with_tab_order_is_still_a_trigger():
    assert is_trigger(view("input", disabled="", tabindex="0"))


@pytest.mark.parametrize("value", ["-2", "auto", ""])
def test_any_tab_order_other_than_minus_one_is_a_trigger(value):
    assert is_trigger(view("div", tabindex=value))


def test_combo_classifier_is_narrower():
    assert is_combo_trigger(view("select"))
    assert is_combo_trigger(view("button"))
    assert is_combo_trigger(view("div", **{"aria-haspopup": "true"}))
    assert is_combo_trigger(view("ul", role="menu"))
    assert is_combo_trigger(view("div", role="combobox"))

    assert not is_combo_trigger(view("a", href="#top"))
    assert not is_combo_trigger(view("input", type="checkbox"))
    assert not is_combo_trigger(view("summary"))
    assert not is_combo_trigger(view("div", tabindex="0"))
