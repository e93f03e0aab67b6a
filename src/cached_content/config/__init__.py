"""Configuration management for the content cache.

Resolve-once, freeze-then-flow:
- ResolvedConfig: Post-resolution configuration with audit metadata
- FrozenConfig: Immutable configuration consumed by ContentCache
- SourceMap: Audit tracking of configuration value origins
"""

from .api import print_config_audit, resolve_config
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import ConfigResolver, SourceTracker
from .schema import CacheSettings
from .scope import config_override, config_scope, get_ambient_resolved_config
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    # Main API
    "resolve_config",
    "print_config_audit",
    # Scoping
    "config_scope",
    "config_override",
    "get_ambient_resolved_config",
    # Core types
    "ResolvedConfig",
    "FrozenConfig",
    "SourceMap",
    "ConfigOrigin",
    # Advanced usage
    "CacheSettings",
    "ConfigResolver",
    "FileConfigLoader",
    "ConfigFileError",
    "SourceTracker",
]
