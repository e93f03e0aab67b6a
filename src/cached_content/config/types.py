"""Core configuration data types for the content cache.

This module defines the fundamental data structures used throughout the configuration
system, following the resolve-once, freeze-then-flow pattern.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

from cached_content.merger import MergePolicy

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    This represents the validated, merged result of combining programmatic overrides,
    environment variables, files, and defaults. It includes audit metadata for
    observability.
    """

    enabled: bool
    ttl_seconds: int
    key_prefix: str
    tracked_registries: tuple[str, ...]
    miss_merge_policy: str

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used by the cache.

        Returns:
            FrozenConfig with the same field values, excluding audit metadata.
        """
        return FrozenConfig(
            enabled=self.enabled,
            ttl_seconds=self.ttl_seconds,
            key_prefix=self.key_prefix,
            tracked_registries=self.tracked_registries,
            miss_merge_policy=self.miss_merge_policy,
        )

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        This is useful for scoped configuration changes or test setup.

        Args:
            **overrides: Field values to override. Unknown fields are ignored.

        Returns:
            New ResolvedConfig with overrides applied and origin updated.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)

        for field, value in overrides.items():
            if field in self._fields and field != "origin":
                new_values[field] = value
                new_origin[field] = "programmatic"

        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Generate a report showing the origin of each field.

        Returns:
            One `field: origin:value` line per resolved field.
        """
        lines = []
        for field in self._fields:
            if field in self.origin:
                origin = self.origin[field]
                value = getattr(self, field)
                if origin == "env":
                    lines.append(f"{field}: env:CACHED_CONTENT_{field.upper()}={value}")
                else:
                    lines.append(f"{field}: {origin}:{value}")
        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration handed to `ContentCache`.

    Contains only the resolved field values without audit metadata.
    Any attempt to modify this object will raise an exception.
    """

    enabled: bool = True
    ttl_seconds: int = 60
    key_prefix: str = "the_cached_content_"
    tracked_registries: tuple[str, ...] = ("scripts", "styles")
    miss_merge_policy: MergePolicy = MergePolicy.UNION

    def __post_init__(self) -> None:
        # Raises ValueError for unknown policy names before any render runs.
        object.__setattr__(
            self, "miss_merge_policy", MergePolicy(self.miss_merge_policy)
        )
