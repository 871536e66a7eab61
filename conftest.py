"""
Repository-level pytest configuration.

Provides:
  - Session fixtures shared by every suite (repo paths)
  - Isolation of the ConfigLoader singleton and engine-related env variables
  - A Loguru capture fixture (Loguru does not feed pytest's caplog)
"""

from __future__ import annotations

from pathlib import Path
from typing import Generator, List

import pytest
from loguru import logger

from locator_engine.common import ConfigLoader


# Environment variables that would silently change engine configuration
_ENGINE_ENV_VARS = (
    "ENV",
    "ENVIRONMENT",
    "LOGGING_LEVEL",
    "WAIT_TIMEOUT_MS",
    "WAIT_POLL_INTERVAL_MS",
    "XPATH_MAX_STEPS",
    "RELATIVE_DEFAULT_DISTANCE",
    "LOCATORS_PRIORITY",
)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return repo root path."""
    return Path(__file__).parent


@pytest.fixture(scope="session")
def fixtures_dir(project_root: Path) -> Path:
    """Directory holding YAML tree fixtures."""
    return project_root / "testsuites" / "fixtures"


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch) -> Generator[None, None, None]:
    """Every test starts with a fresh ConfigLoader and no engine env overrides."""
    for name in _ENGINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    ConfigLoader.reset()
    yield
    ConfigLoader.reset()


@pytest.fixture
def log_messages() -> Generator[List[str], None, None]:
    """Collect Loguru records as 'LEVEL message' strings."""
    messages: List[str] = []
    handler_id = logger.add(
        lambda message: messages.append(
            f"{message.record['level'].name} {message.record['message']}"
        ),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)
