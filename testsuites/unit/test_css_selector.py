import pytest

from locator_engine.framework.css_selector import matches, parse_nth_expression, parse_selector
from locator_engine.framework.exceptions import InvalidQuerySyntax
from locator_engine.framework.tree import Node
from testsuites.trees import login_page


def select(root, selector):
    plan = parse_selector(selector)
    return [node for node in root.iter_preorder() if matches(node, plan)]


def ids(nodes):
    return [node.attributes.get("id") or node.tag for node in nodes]


@pytest.fixture
def page():
    return login_page()


@pytest.mark.parametrize(
    "selector, expected",
    [
        ("#username", ["username"]),
        ("input.field", ["username", "password"]),
        ("input.field.primary", ["username"]),
        ("form > input", ["username", "password"]),
        ("body input[type='password']", ["password"]),
        ("label + input", ["username", "password"]),
        ("#username ~ button", ["button", "cancel"]),
        ("[data-testid]", ["button"]),
        ("[class~=btn]", ["button", "cancel"]),
        ("[lang|=en]", ["button"]),
        ("a[href^='/h']", ["a", "a"]),
        ("a[href$=help]", ["a"]),
        ("input[placeholder*='or email']", ["username"]),
        ("#login, #cancel", ["login", "cancel"]),
        ("form *:first-child", ["label"]),
        ("form > :last-child", ["cancel"]),
        ("button:not(#cancel)", ["button"]),
        ("div:visible", ["dup", "dup"]),
        ("button:has-text('Log In')", ["button"]),
        ("#toast:has-text(\"Login error\")", ["toast"]),
    ],
)
def test_selector_matches_in_document_order(page, selector, expected):
    assert ids(select(page, selector)) == expected


def test_substring_operators_with_empty_operand_never_match(page):
    assert select(page, "a[href^='']") == []
    assert select(page, "a[href$='']") == []
    assert select(page, "a[href*='']") == []
    assert ids(select(page, "[data-testid='btn-submit']")) == ["button"]


def test_nth_child_family():
    root = Node("ul", children=[Node("li", {"id": f"i{n}"}) for n in range(1, 7)])
    assert ids(select(root, "li:nth-child(2)")) == ["i2"]
    assert ids(select(root, "li:nth-child(odd)")) == ["i1", "i3", "i5"]
    assert ids(select(root, "li:nth-child(3n)")) == ["i3", "i6"]
    assert ids(select(root, "li:nth-child(-n+2)")) == ["i1", "i2"]
    assert ids(select(root, "li:nth-last-child(1)")) == ["i6"]


def test_of_type_pseudo_classes():
    root = Node("div", children=[Node("p", {"id": "p1"}), Node("span", {"id": "s1"}), Node("p", {"id": "p2"})])
    assert ids(select(root, "p:first-of-type")) == ["p1"]
    assert ids(select(root, "p:last-of-type")) == ["p2"]
    assert ids(select(root, "span:only-of-type")) == ["s1"]
    assert ids(select(root, "p:nth-of-type(2)")) == ["p2"]


def test_structural_root_and_empty():
    root = Node("html", children=[Node("p", {"id": "blank"}), Node("p", {"id": "texty"}, "x")])
    assert ids(select(root, ":root")) == ["html"]
    assert ids(select(root, "p:empty")) == ["blank"]


def test_descendant_combinator_backtracks():
    # "div > span" must be satisfied by the nearer div even though the outer one fails ".x"
    root = Node("div", {"class": "x"}, children=[Node("div", children=[Node("span", {"id": "target"})])])
    assert ids(select(root, ".x span")) == ["target"]
    assert ids(select(root, ".x > span")) == []
    assert ids(select(root, ".x div > span")) == ["target"]


@pytest.mark.parametrize(
    "selector",
    [
        "",
        "   ",
        "div[",
        "div[id='x'",
        "a[href='unterminated]",
        "div:hover",
        "li:nth-child(foo)",
        "li:nth-child",
        "div >",
        "#",
        "div)",
    ],
)
def test_invalid_selectors_fail_at_compile_time(selector):
    with pytest.raises(InvalidQuerySyntax):
        parse_selector(selector)


def test_syntax_error_reports_position():
    with pytest.raises(InvalidQuerySyntax) as exc_info:
        parse_selector("div:hover")
    assert exc_info.value.position == 4
    assert "hover" in exc_info.value.message


@pytest.mark.parametrize(
    "expr, expected",
    [("odd", (2, 1)), ("even", (2, 0)), ("3", (0, 3)), ("2n+1", (2, 1)), ("-n+3", (-1, 3)), ("n", (1, 0)), ("2n+", None), ("x", None)],
)
def test_parse_nth_expression(expr, expected):
    assert parse_nth_expression(expr) == expected
