"""
================================================================================
Locator Engine
================================================================================

Element-location engine for UI test automation.

Modules:
    - framework: Query compilation, matching, waiting and resolution
    - common: Shared configuration and logging utilities

Example:
    from locator_engine import By, FindOptions, find_one, locate_with

    button = find_one(source, By.css_selector("form#login button[type='submit']"),
                      FindOptions(timeout_ms=2000))
    label = find_one(source, locate_with(By.tag_name("label")).above(By.id("email")))

================================================================================
"""

from . import common, framework
from .framework import *  # noqa: F401,F403
from .framework import __all__ as _framework_all

__version__ = "1.0.0"

__all__ = list(_framework_all) + ["common", "framework"]
