"""
Global test configuration.
"""

import os

import pytest

from cached_content import Dependency, LiveRegistries


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, isolated unit tests")
    config.addinivalue_line(
        "markers", "allow_env_pollution: keep CACHED_CONTENT_* variables for this test"
    )


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_cache_env(request, monkeypatch):
    """Ensure a clean CACHED_CONTENT_* environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("CACHED_CONTENT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


@pytest.fixture
def live():
    """Fresh live bindings tracking scripts and styles."""
    return LiveRegistries()


@pytest.fixture
def dep():
    """Factory for simple dependencies: dep("a") -> Dependency("a", src="/a.js")."""

    def _make(handle: str, **kwargs) -> Dependency:
        kwargs.setdefault("src", f"/{handle}.js")
        return Dependency(handle, **kwargs)

    return _make
