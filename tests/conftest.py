"""Shared pytest fixtures for maintenance gate tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import pytest

from maintenance_gate.config import Config

GATE_ENV_VARS = (
    "SERVER_PORT",
    "SERVER_HOST",
    "TARGET_URL",
    "HEALTH_CHECK_URL",
    "HEALTH_CHECK_INTERVAL",
    "HEALTH_CHECK_TIMEOUT",
    "HEALTH_CHECK_SUCCESS_CODE",
    "HEALTH_CHECK_BODY",
    "LOG_LEVEL",
    "LOG_JSON",
    "LOG_COLOR",
    "MAINTENANCE_TEMPLATES_DIR",
)


@pytest.fixture
def config() -> Config:
    """Configuration pointing at test hosts."""
    return Config(
        server_port=3000,
        target_url="https://target.example.com",
        health_check_url="https://target.example.com/healthz",
        health_check_interval=60,
        health_check_timeout=1,
    )


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    """Remove every gate environment variable for the duration of a test.

    Variables set later (for example by python-dotenv) are removed again on
    teardown.
    """
    originally_set = {name for name in GATE_ENV_VARS if name in os.environ}
    for name in GATE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield monkeypatch
    for name in GATE_ENV_VARS:
        if name not in originally_set:
            os.environ.pop(name, None)


@pytest.fixture(autouse=True)
def _reset_gate_loggers() -> Iterator[None]:
    """Undo logger level changes made by setup_logging between tests."""
    root_level = logging.getLogger().level
    yield
    logging.getLogger("maintenance_gate").setLevel(logging.NOTSET)
    logging.getLogger().setLevel(root_level)
