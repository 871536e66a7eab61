"""
================================================================================
Locator Engine Common Utilities
================================================================================

Shared configuration management and logging setup.

Exports:
    - ConfigLoader: Singleton YAML + environment configuration
    - ConfigurationError: Raised for unreadable configuration files
    - init_logger / get_logger: Loguru bootstrap

Usage:
    from locator_engine.common import ConfigLoader, init_logger

    init_logger()
    timeout = ConfigLoader().get("wait.timeout_ms", 0)

================================================================================
"""

from .config_loader import ConfigLoader, ConfigurationError
from .global_config import get_logger, init_logger, reset_logger

__all__ = [
    "ConfigLoader",
    "ConfigurationError",
    "init_logger",
    "get_logger",
    "reset_logger",
]
