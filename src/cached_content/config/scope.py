"""Configuration scoping for entry-time overrides.

Scopes only affect `resolve_config()` calls made inside them. A cache built
from a `FrozenConfig` does not see later ambient changes.
"""

from collections.abc import Generator
from contextlib import contextmanager
import contextvars
from typing import Any

from .types import ResolvedConfig

_ambient_resolved_config: contextvars.ContextVar[ResolvedConfig] = (
    contextvars.ContextVar("cached_content_resolved_config")
)


def get_ambient_resolved_config() -> ResolvedConfig | None:
    """Return the configuration set by the innermost scope, or None."""
    try:
        return _ambient_resolved_config.get()
    except LookupError:
        return None


@contextmanager
def config_scope(config: ResolvedConfig) -> Generator[None]:
    """Temporarily use a different resolved configuration.

    Example:
        test_config = resolve_config().with_overrides(enabled=False)

        with config_scope(test_config):
            cache = ContentCache(store, registries)  # Gets test_config
    """
    token = _ambient_resolved_config.set(config)
    try:
        yield
    finally:
        _ambient_resolved_config.reset(token)


@contextmanager
def config_override(**overrides: Any) -> Generator[None]:
    """Convenience context manager for programmatic config overrides.

    Example:
        with config_override(ttl_seconds=5):
            config = resolve_config()  # ttl_seconds == 5
    """
    base_config = get_ambient_resolved_config()
    if base_config is None:
        # Import here to avoid circular dependency at module level
        from .api import resolve_config

        base_config = resolve_config()
    with config_scope(base_config.with_overrides(**overrides)):
        yield
