"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from various sources (environment, files, programmatic) into the correct
types with proper defaults.
"""

from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from cached_content.keys import DEFAULT_KEY_PREFIX
from cached_content.registry import DEFAULT_KINDS

FIELD_NAMES = (
    "enabled",
    "ttl_seconds",
    "key_prefix",
    "tracked_registries",
    "miss_merge_policy",
)


class CacheSettings(BaseSettings):
    """Pydantic settings schema for the content cache.

    This handles validation, type coercion, and default values for all
    configuration fields. It integrates with environment variables using
    the CACHED_CONTENT_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="CACHED_CONTENT_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Serve and store cached content; when false every call renders live",
    )

    ttl_seconds: int = Field(
        default=60,
        description="Default expiry for cache records in seconds (0 = no expiry)",
        ge=0,
    )

    key_prefix: str = Field(
        default=DEFAULT_KEY_PREFIX,
        description="Prefix prepended to hashed entity ids",
        min_length=1,
    )

    tracked_registries: Annotated[tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_KINDS,
        description="Registry kinds isolated and recorded around each render",
    )

    miss_merge_policy: Literal["replace", "union"] = Field(
        default="union",
        description="Queue policy when replaying a freshly rendered record",
    )

    @field_validator("tracked_registries", mode="before")
    @classmethod
    def parse_kinds(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a sequence."""
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",")]
        if isinstance(v, list | tuple):
            kinds = tuple(dict.fromkeys(k for k in v if k))
            if not kinds:
                raise ValueError("At least one registry kind must be tracked")
            return kinds
        return v

    @field_validator("miss_merge_policy", mode="before")
    @classmethod
    def parse_policy(cls, v: Any) -> Any:
        """Normalize policy names case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation.

        Returns:
            Dictionary with field names as keys and resolved values.
        """
        return {name: getattr(self, name) for name in FIELD_NAMES}
