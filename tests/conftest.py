from __future__ import annotations

import os

import pytest

from tests._fakes import FakeLedgerSource


_ISOLATED_ENV_VARS = (
    "XRPL_RPC_URL",
    "XRPL_RPC_TIMEOUT_SECONDS",
    "XRPL_RPC_MAX_RETRIES",
    "XRPL_REQUIRE_TXN_SUCCESS",
    "CACHE_TTL_SECONDS",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "EVENTS_MAX_BLOCK_RANGE",
    "EVENTS_MAX_WORKERS",
)

_PREVIOUS_ENV: dict[str, str | None] = {}


def pytest_configure(config: pytest.Config) -> None:
    """Run every test against the default service configuration."""
    global _PREVIOUS_ENV
    _PREVIOUS_ENV = {key: os.environ.get(key) for key in _ISOLATED_ENV_VARS}
    for key in _ISOLATED_ENV_VARS:
        os.environ.pop(key, None)
    # Never point tests at a public node.
    os.environ["XRPL_RPC_URL"] = "http://127.0.0.1:9"


def pytest_unconfigure(config: pytest.Config) -> None:
    for key, value in _PREVIOUS_ENV.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


@pytest.fixture
def source() -> FakeLedgerSource:
    return FakeLedgerSource()
