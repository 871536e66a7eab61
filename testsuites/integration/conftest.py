"""
================================================================================
Integration Test Configuration
================================================================================

Fixtures shared by the integration suites: the login page tree loaded from
its YAML fixture, static and live sources over it, and a resolver whose
defaults come from the repository configuration.

================================================================================
"""

import pytest

from locator_engine.common import ConfigLoader
from locator_engine.framework import ElementResolver, LiveTreeSource, Node, load_tree


# ================================================================================
# Tree Fixtures
# ================================================================================

@pytest.fixture
def login_tree(fixtures_dir) -> Node:
    """Fresh copy of the login page tree for each test."""
    return load_tree(fixtures_dir / "login_page.yaml")


@pytest.fixture
def live_source(login_tree: Node) -> LiveTreeSource:
    """Live source over the login page; tests mutate it through ``mutate()``."""
    return LiveTreeSource(login_tree)


# ================================================================================
# Resolver Fixtures
# ================================================================================

@pytest.fixture
def resolver(login_tree: Node) -> ElementResolver:
    """Resolver over the static login page using the 'fast' wait scenario."""
    return ElementResolver.from_config(login_tree, ConfigLoader(), scenario="fast")
