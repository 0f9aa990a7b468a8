"""Shared test configuration and fixtures."""

try:
    import capture_agent.main  # noqa: F401
except ImportError:
    raise ImportError("capture_agent is not importable. Run: pip install -e '.[dev]'") from None

import pytest

from _fakes import FakeSessions
from capture_agent.config import Settings


@pytest.fixture(autouse=True)
def _block_real_browser(monkeypatch):
    """Unit tests must never launch Chromium; inject a FakeSessions factory instead."""

    def _no_real_browser():
        raise RuntimeError("Test tried to start a real browser. Inject a FakeSessions factory.")

    monkeypatch.setattr("capture_agent.browser.async_playwright", _no_real_browser)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        capture_navigation_timeout_ms=1000,
        features_navigation_timeout_ms=1000,
        features_body_wait_ms=100,
        features_read_timeout_ms=200,
        trigger_ceiling_ms=200,
    )


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions()
