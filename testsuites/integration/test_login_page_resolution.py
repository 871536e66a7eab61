"""
================================================================================
Login Page Resolution Test Cases
================================================================================

End-to-end resolution against the login page fixture: every locator
strategy, relative locators, dynamic templates and fallback chains working
through the public API.

Key Testing Patterns:
- Tree fixtures loaded from YAML
- One compiled query per strategy
- Allure integration for detailed reporting

================================================================================
"""

import pytest
import allure

from locator_engine.framework import (
    AmbiguousMatch,
    By,
    Condition,
    ElementResolver,
    FindOptions,
    NotFound,
    SmartLocator,
    Strategy,
    build_dynamic_query,
    locate_with,
)


# ================================================================================
# Strategy Tests
# ================================================================================

@allure.epic("Element Location")
@allure.feature("Locator Strategies")
class TestStrategyResolution:
    """Every strategy resolves the same login page elements."""

    @allure.story("Plain Strategies")
    @allure.title("Username input is reachable through each strategy")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke
    @pytest.mark.parametrize("query", [
        By.id("username"),
        By.name("username"),
        By.css_selector("form#login input[type='text']"),
        By.css_selector("label[for='username'] + input"),
        By.xpath("//form[@id='login']/input[1]"),
        By.xpath("//label[text()='Username']/following-sibling::input[1]"),
    ], ids=lambda query: query.describe())
    def test_username_by_every_strategy(self, resolver: ElementResolver, query):
        """
        Verify that equivalent queries resolve to the same node.
        """
        with allure.step(f"Resolve {query.describe()}"):
            node = resolver.find_one(query)

        with allure.step("Verify resolved node"):
            assert node.attributes["id"] == "username"

    @allure.story("Link Text")
    @allure.title("Help link found by full and partial text")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    def test_link_text(self, resolver: ElementResolver):
        full = resolver.find_one(By.link_text("Need help?"))
        partial = resolver.find_one(By.partial_link_text("help"))

        assert full is partial
        assert full.attributes["href"] == "/help"

    @allure.story("Scoping")
    @allure.title("Context limits the search to the form")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.xpath
    def test_context_scoping(self, resolver: ElementResolver):
        form = resolver.find_one(By.id("login"))
        options = FindOptions(context=form)

        with allure.step("Inputs inside the form"):
            inputs = resolver.find_all(By.tag_name("input"), options)
            assert [n.attributes["id"] for n in inputs] == ["username", "password", "remember"]

        with allure.step("Cells outside the form are excluded"):
            assert resolver.find_all(By.xpath("//td"), options) == []

    @allure.story("Strict Mode")
    @allure.title("Strict lookups reject ambiguous queries")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P2
    def test_strict_mode(self, resolver: ElementResolver):
        with pytest.raises(AmbiguousMatch) as exc_info:
            resolver.find_one(By.tag_name("tr"), FindOptions(strict=True))
        assert exc_info.value.count == 2


# ================================================================================
# Relative Locator Tests
# ================================================================================

@allure.epic("Element Location")
@allure.feature("Relative Locators")
class TestRelativeResolution:
    """Geometric queries built on the rendered boxes."""

    @allure.story("Label Pairing")
    @allure.title("Checkbox found to the right of its label")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.relative
    def test_checkbox_right_of_label(self, resolver: ElementResolver):
        query = locate_with(By.tag_name("input")).to_right_of(By.css_selector("label[for='remember']"))

        with allure.step(f"Resolve {query.describe()}"):
            nodes = resolver.find_all(query)

        assert [n.attributes["id"] for n in nodes] == ["remember"]

    @allure.story("Proximity")
    @allure.title("Near ranks candidates by distance")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.relative
    def test_near(self, resolver: ElementResolver):
        query = locate_with(By.tag_name("input")).near(By.css_selector("label[for='remember']"), 80)
        assert resolver.find_one(query).attributes["id"] == "remember"

        # the submit button sits below every input
        above = locate_with(By.tag_name("input")).above(By.css_selector("[data-testid='btn-submit']"))
        assert [n.attributes["id"] for n in resolver.find_all(above)] == ["remember", "password", "username"]

    @allure.story("Hidden Anchor")
    @allure.title("Anchor without geometry yields no candidates")
    @allure.severity(allure.severity_level.MINOR)
    @pytest.mark.P2
    @pytest.mark.relative
    def test_hidden_anchor(self, resolver: ElementResolver):
        query = locate_with(By.tag_name("input")).below(By.id("toast"))
        instant = FindOptions(timeout_ms=0)
        assert resolver.find_all(query, instant) == []
        with pytest.raises(NotFound):
            resolver.find_one(query, instant)


# ================================================================================
# Dynamic Template Tests
# ================================================================================

@allure.epic("Element Location")
@allure.feature("Dynamic Locators")
class TestDynamicTemplates:
    """Templates filled with runtime values."""

    @allure.story("XPath Templates")
    @allure.title("Table cell addressed by row and header")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.xpath
    def test_xpath_template(self, resolver: ElementResolver):
        query = build_dynamic_query("//tr[@data-row=%s]/td[@headers=%s]", "2", "location")
        assert resolver.find_one(query).text == "Berlin"

    @allure.story("XPath Templates")
    @allure.title("Values with apostrophes are quoted safely")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.xpath
    def test_value_with_apostrophe(self, resolver: ElementResolver):
        query = build_dynamic_query("//td[text()=%s]", "O'Fallon")
        assert resolver.find_one(query).attributes["headers"] == "location"

    @allure.story("CSS Templates")
    @allure.title("CSS template with quoted and bare values")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    @pytest.mark.css
    def test_css_template(self, resolver: ElementResolver):
        query = build_dynamic_query(
            "tr[data-row='%s'] td[headers=%s]", "1", "device", strategy=Strategy.CSS_SELECTOR
        )
        assert resolver.find_one(query).text == "Laptop"


# ================================================================================
# Fallback Chain Tests
# ================================================================================

@allure.epic("Element Location")
@allure.feature("Smart Locators")
class TestFallbackChains:
    """Named elements resolved through fallback chains."""

    @allure.story("Fallback")
    @allure.title("Login flow elements resolve with health tracking")
    @allure.severity(allure.severity_level.CRITICAL)
    @pytest.mark.P0
    @pytest.mark.smoke
    def test_login_flow_elements(self, resolver: ElementResolver):
        smart = SmartLocator(resolver)
        instant = FindOptions()

        with allure.step("Resolve form elements"):
            username = smart.locate("username_input", instant)
            password = smart.locate("password_input", instant)
            submit = smart.locate("submit_button", instant)

        assert username.attributes["id"] == "username"
        assert password.attributes["type"] == "password"
        assert submit.text == "Log In"

        with allure.step("Health report lists the fallbacks"):
            report = smart.get_health_report()
            allure.attach(report, name="Locator Health Report", attachment_type=allure.attachment_type.TEXT)
            assert "[username_input]" in report
            assert "[password_input]" in report
            assert "[submit_button]" not in report

    @allure.story("Fallback")
    @allure.title("Hidden toast is not reported as visible")
    @allure.severity(allure.severity_level.NORMAL)
    @pytest.mark.P1
    def test_hidden_toast(self, resolver: ElementResolver):
        smart = SmartLocator(resolver)
        visible = FindOptions(condition=Condition.VISIBLE)

        assert smart.is_present("toast_error", FindOptions())
        assert not smart.is_present("toast_error", visible)
