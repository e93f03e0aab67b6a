"""Fragment caching for rendered content that preserves registry side effects."""

import importlib.metadata
import logging

from cached_content.assets import (
    BlockAssets,
    BlockType,
    BlockTypeRegistry,
    identify_block_assets,
)
from cached_content.cache import CacheState, ContentCache
from cached_content.config import FrozenConfig, ResolvedConfig, resolve_config
from cached_content.differ import diff
from cached_content.exceptions import (
    CachedContentError,
    CacheStoreError,
    MalformedRecordError,
    RegistryInconsistencyError,
)
from cached_content.invalidation import (
    EntitySaved,
    handle_entity_saved,
    should_invalidate,
)
from cached_content.keys import key_for
from cached_content.merger import MergePolicy, merge, replay
from cached_content.record import CacheRecord, RegistryDelta, build_record
from cached_content.registry import (
    SCRIPT_MODULES,
    SCRIPTS,
    STYLES,
    Dependency,
    DependencyRegistry,
    LiveRegistries,
)
from cached_content.snapshot import (
    RenderContext,
    begin_isolated_render,
    isolated_render,
    restore,
)
from cached_content.store import (
    CacheStore,
    FailSoftStore,
    InMemoryCacheStore,
    JSONFileCacheStore,
)
from cached_content.telemetry import SimpleReporter, TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("cached-content")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Orchestration
    "ContentCache",
    "CacheState",
    # Registries
    "Dependency",
    "DependencyRegistry",
    "LiveRegistries",
    "SCRIPTS",
    "STYLES",
    "SCRIPT_MODULES",
    # Snapshot / diff / merge
    "begin_isolated_render",
    "restore",
    "isolated_render",
    "RenderContext",
    "diff",
    "merge",
    "replay",
    "MergePolicy",
    # Records
    "CacheRecord",
    "RegistryDelta",
    "build_record",
    # Stores
    "CacheStore",
    "InMemoryCacheStore",
    "JSONFileCacheStore",
    "FailSoftStore",
    # Keys & invalidation
    "key_for",
    "EntitySaved",
    "should_invalidate",
    "handle_entity_saved",
    # Block assets
    "BlockType",
    "BlockTypeRegistry",
    "BlockAssets",
    "identify_block_assets",
    # Configuration
    "resolve_config",
    "ResolvedConfig",
    "FrozenConfig",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    "SimpleReporter",
    # Exceptions
    "CachedContentError",
    "RegistryInconsistencyError",
    "MalformedRecordError",
    "CacheStoreError",
]
