import pytest

from locator_engine.framework.exceptions import MalformedExpression
from locator_engine.framework.matcher import MatcherEngine, match
from locator_engine.framework.query import By, locate_with
from locator_engine.framework.tree import Node
from testsuites.trees import grid, login_page


@pytest.fixture
def page():
    return login_page()


def ids(nodes):
    return [node.attributes.get("id") for node in nodes]


def test_duplicate_ids_are_all_returned_in_document_order(page):
    nodes = match(By.id("dup"), page)
    assert [node.text for node in nodes] == ["first", "second"]


def test_class_name_uses_whitespace_tokenization(page):
    assert ids(match(By.class_name("primary"), page)) == ["username"]
    assert ids(match(By.class_name("field"), page)) == ["username", "password"]
    # substring of a class token is not a match
    assert match(By.class_name("prim"), page) == []


def test_name_and_tag(page):
    assert ids(match(By.name("password"), page)) == ["password"]
    assert [n.tag for n in match(By.tag_name("A"), page)] == ["a", "a"]


def test_link_text_compares_normalized_text_of_anchors(page):
    assert [n.attributes["href"] for n in match(By.link_text("Need help?"), page)] == ["/help"]
    assert match(By.link_text("Need"), page) == []
    assert [n.attributes["href"] for n in match(By.partial_link_text("help"), page)] == ["/help"]
    assert [n.attributes["href"] for n in match(By.partial_link_text("H"), page)] == ["/home"]


def test_root_is_part_of_the_default_scope(page):
    assert match(By.tag_name("html"), page) == [page]


def test_context_limits_search_to_descendants(page):
    form = page.children[0].children[0]
    assert ids(match(By.tag_name("input"), page, form)) == ["username", "password"]
    assert match(By.id("login"), page, form) == []
    assert match(By.id("dup"), page, form) == []


def test_xpath_results_are_clipped_to_the_context(page):
    form = page.children[0].children[0]
    assert ids(match(By.xpath("//button"), page, form)) == [None, "cancel"]
    assert match(By.xpath("//div"), page, form) == []
    assert match(By.xpath(".."), page, form) == []


def test_css_combinators_may_look_above_the_context(page):
    form = page.children[0].children[0]
    assert ids(match(By.css_selector("body input"), page, form)) == ["username", "password"]


def test_xpath_evaluation_errors_carry_the_query(page):
    with pytest.raises(MalformedExpression) as exc_info:
        match(By.xpath("count(//a)"), page)
    assert exc_info.value.query == "By.xpath('count(//a)')"


def test_xpath_step_budget_is_configurable(page):
    engine = MatcherEngine(xpath_max_steps=5)
    with pytest.raises(MalformedExpression):
        engine.match(By.xpath("//*"), page)


def test_unknown_query_type_is_rejected(page):
    with pytest.raises(TypeError):
        match("By.id('login')", page)


# ------------------------------------------------------------------
# Relative locators
# ------------------------------------------------------------------

def test_relative_results_rank_by_distance_then_document_order():
    root = grid()
    anchor = By.id("cell-1-1")

    near = match(locate_with(By.class_name("cell")).near(anchor, 20), root)
    # four orthogonal neighbours at distance 20, in document order
    assert ids(near) == ["cell-0-1", "cell-1-0", "cell-1-2", "cell-2-1"]

    wider = match(locate_with(By.class_name("cell")).near(anchor, 30), root)
    assert ids(wider)[:4] == ids(near)
    assert ids(wider)[4:] == ["cell-0-0", "cell-0-2", "cell-2-0", "cell-2-2"]


def test_directional_relations():
    root = grid()
    anchor = By.id("cell-1-1")
    cells = By.class_name("cell")

    assert ids(match(locate_with(cells).above(anchor), root)) == ["cell-0-1", "cell-0-0", "cell-0-2"]
    assert ids(match(locate_with(cells).below(anchor), root)) == ["cell-2-1", "cell-2-0", "cell-2-2"]
    assert ids(match(locate_with(cells).to_left_of(anchor), root)) == ["cell-1-0", "cell-0-0", "cell-2-0"]
    assert ids(match(locate_with(cells).to_right_of(anchor), root)) == ["cell-1-2", "cell-0-2", "cell-2-2"]


def test_anchor_is_never_its_own_candidate():
    root = grid()
    result = match(locate_with(By.class_name("cell")).near(By.id("cell-1-1"), 1000), root)
    assert "cell-1-1" not in ids(result)
    assert len(result) == 8


def test_candidates_without_geometry_are_skipped(page):
    query = locate_with(By.tag_name("a")).below(By.id("login"))
    assert [n.attributes["href"] for n in match(query, page)] == ["/help"]


def test_unresolvable_anchor_yields_no_candidates(page):
    assert match(locate_with(By.tag_name("a")).below(By.id("missing")), page) == []
    # anchor without a bounding box
    assert match(locate_with(By.tag_name("a")).below(By.id("toast")), page) == []


def test_first_anchor_match_in_document_order_is_used(page):
    query = locate_with(By.tag_name("div")).below(By.id("dup"))
    assert [n.text for n in match(query, page)] == ["second"]


def test_literal_node_anchor():
    root = grid()
    anchor = Node("span", bounding_box=[40, 40, 10, 10])
    result = match(locate_with(By.class_name("cell")).near(anchor, 1), root)
    assert ids(result) == ["cell-2-2"]


def test_label_to_input_pairing(page):
    query = locate_with(By.tag_name("input")).to_right_of(By.xpath("//label[text()='Password']"))
    assert ids(match(query, page))[0] == "password"
