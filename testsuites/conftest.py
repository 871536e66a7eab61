"""
================================================================================
Test Suite Pytest Configuration
================================================================================

This module provides the pytest configuration for the test suites.
It registers common markers and tags tests by directory.

================================================================================
"""

from pathlib import Path

import pytest


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - core resolution guarantees"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases and minor features"
    )
    config.addinivalue_line(
        "markers", "P3: Low priority tests - extensive validation"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "smoke: Quick verification tests"
    )
    config.addinivalue_line(
        "markers", "regression: Full regression test suite"
    )
    config.addinivalue_line(
        "markers", "unit: Isolated tests of one engine component"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests between components"
    )

    # Feature markers
    config.addinivalue_line(
        "markers", "css: Tests related to CSS selector evaluation"
    )
    config.addinivalue_line(
        "markers", "xpath: Tests related to XPath evaluation"
    )
    config.addinivalue_line(
        "markers", "relative: Tests related to relative (geometric) locators"
    )
    config.addinivalue_line(
        "markers", "wait: Tests related to polling and timeouts"
    )


def pytest_collection_modifyitems(config, items):
    """
    Modify collected test items.

    Adds the suite marker from the directory a test lives in.
    """
    for item in items:
        parts = Path(str(item.fspath)).parts
        if "unit" in parts:
            item.add_marker(pytest.mark.unit)
        if "integration" in parts:
            item.add_marker(pytest.mark.integration)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Locator Engine Test Suite",
        "=" * 60,
        "",
    ]
