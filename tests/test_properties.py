from __future__ import annotations

from typing import Any

import pytest

from xquery import load, parse_selector
from xquery.selector import Rule

NESTED_HTML = """
<div class="a" id="top">
  <ul class="b">
    <li class="a">1</li>
    <li class="c a"><span class="a">x</span></li>
    <li><div class="b"><span class="a c">deep</span></div></li>
  </ul>
  <p class="b"><span class="c">y</span></p>
</div>
<section>
  <div class="c"><p class="a b">z</p></div>
  <span id="lone">w</span>
</section>
"""


def _matches_rule(element: Any, rule: Rule) -> bool:
    if rule.tag_name and rule.tag_name != "*" and element.tag != rule.tag_name:
        return False
    classes = (element.get("class") or "").split()
    if any(name not in classes for name in rule.classes):
        return False
    return rule.id is None or element.get("id") == rule.id


def _ancestors(element: Any, top: Any) -> list[Any]:
    # Ancestors strictly below the document element
    found = []
    parent = element.getparent()
    while parent is not None and parent is not top:
        found.append(parent)
        parent = parent.getparent()
    return found


def _matches_chain(element: Any, rules: list[Rule], index: int, top: Any) -> bool:
    if not _matches_rule(element, rules[index]):
        return False
    if index == 0:
        return True
    if rules[index].direct_child:
        parent = element.getparent()
        return parent is not None and parent is not top and _matches_chain(parent, rules, index - 1, top)
    return any(_matches_chain(ancestor, rules, index - 1, top) for ancestor in _ancestors(element, top))


def _reference_select(top: Any, selector: str) -> list[Any]:
    rules = parse_selector(selector)
    return [element for element in top.iterdescendants() if _matches_chain(element, rules, len(rules) - 1, top)]


@pytest.mark.parametrize(
    "selector",
    [
        "div",
        ".a",
        "span",
        "div .a",
        "div > .a",
        "ul li.a",
        "ul > li > span",
        "section p.a.b",
        "#top span",
        "#top > p > span",
        "* > span",
        "li span.a",
        "div .b span.c",
        "section > *",
        ".a .a",
        "#lone",
    ],
)
def test_plain_selectors_match_reference_scan(selector: str) -> None:
    doc = load(NESTED_HTML)
    top = doc.nodes[0]

    assert list(doc.find(selector).nodes) == _reference_select(top, selector)


def _series_positions(a: int, b: int, count: int) -> list[int]:
    positions = []
    for position in range(1, count + 1):
        if a == 0:
            if position == b:
                positions.append(position)
        elif (position - b) % a == 0 and (position - b) // a >= 0:
            positions.append(position)
    return positions


@pytest.mark.parametrize("count", range(0, 7))
@pytest.mark.parametrize(
    ("expr", "a", "b"),
    [
        ("2n+1", 2, 1),
        ("odd", 2, 1),
        ("even", 2, 0),
        ("3n+1", 3, 1),
        ("3n-1", 3, -1),
        ("n+3", 1, 3),
        ("-n+3", -1, 3),
        ("-2n+5", -2, 5),
        ("4", 0, 4),
    ],
)
def test_nth_child_series(expr: str, a: int, b: int, count: int) -> None:
    doc = load("<ul>" + "".join(f"<li>{i}</li>" for i in range(1, count + 1)) + "</ul>")

    selected = doc.find(f"ul > li:nth-child({expr})")

    assert [int(text) for text in (node.text() for node in selected)] == _series_positions(a, b, count)


def test_nth_child_odd_with_no_children() -> None:
    assert load("<ul></ul>").find("li:nth-child(2n+1)").length() == 0


def test_not_selects_the_complement() -> None:
    doc = load(NESTED_HTML)
    everything = set(doc.find("span").nodes)
    with_class = set(doc.find("span.a").nodes)
    without_class = set(doc.find("span:not(.a)").nodes)

    assert with_class and without_class
    assert with_class.isdisjoint(without_class)
    assert with_class | without_class == everything


def test_not_within_child_axis() -> None:
    doc = load(NESTED_HTML)
    items = doc.find("ul.b")

    assert items.children(":not(.a)").length() == 1
    assert items.children(".a").length() == 2


def test_scenario_test_class_membership() -> None:
    doc = load(
        "<div id='r'><div class='test'>1</div><p class='test'>2</p><div class='test'>3</div></div>"
    )

    assert doc.find(".test").length() == 3
    assert doc.find(".test", 1).is_("p")
    assert doc.find(".test").eq(5).length() == 0
