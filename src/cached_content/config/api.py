"""Public API for the configuration system."""

from pathlib import Path
from typing import Any

from .resolver import ConfigResolver
from .types import ResolvedConfig

# Global resolver instance for efficient reuse
_resolver = ConfigResolver()


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Defaults. Inside a
    `config_scope()`, the scoped configuration replaces file/env resolution
    and `programmatic` overrides are applied on top of it.

    Args:
        programmatic: Dictionary of programmatic overrides (highest precedence).
                     Only known configuration fields are used.
        profile: Profile name to load from pyproject.toml. If None,
                uses CACHED_CONTENT_PROFILE environment variable if set.
        project_root: Directory to search for pyproject.toml. If None,
                     searches current directory and parents.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ValueError: If configuration validation fails.
        ConfigFileError: If pyproject.toml exists but is malformed.

    Example:
        config = resolve_config({"ttl_seconds": 300})
        cache = ContentCache(store, registries, config=config.to_frozen())
    """
    from .scope import get_ambient_resolved_config

    ambient_config = get_ambient_resolved_config()
    if ambient_config is not None:
        if programmatic:
            return ambient_config.with_overrides(**programmatic)
        return ambient_config

    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        project_root=project_root,
    )


def print_config_audit(config: ResolvedConfig) -> None:
    """Print a human-readable audit of configuration sources."""
    print(config.audit())  # noqa: T201
