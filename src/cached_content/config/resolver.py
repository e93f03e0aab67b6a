"""Configuration resolution with precedence handling.

This module implements the core resolution algorithm that merges configuration
from multiple sources according to the documented precedence order:
Programmatic > Environment > Project file > Defaults
"""

import os
from pathlib import Path
from typing import Any

from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import CacheSettings
from .types import ConfigOrigin, ResolvedConfig


class SourceTracker:
    """Tracks the origin of configuration values during resolution."""

    def __init__(self) -> None:
        self._origins: dict[str, ConfigOrigin] = {}

    def set_multiple(self, fields: dict[str, Any], origin: ConfigOrigin) -> None:
        """Record the origin for multiple fields at once."""
        for field in fields:
            self._origins[field] = origin

    def get_source_map(self) -> dict[str, ConfigOrigin]:
        return dict(self._origins)


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence)
            profile: Profile name to load from pyproject.toml
            project_root: Directory to search for pyproject.toml

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ValueError: If validation fails.
            ConfigFileError: If the project file is malformed.
        """
        source_tracker = SourceTracker()
        merged_config: dict[str, Any] = {}

        if profile is None:
            profile = os.getenv("CACHED_CONTENT_PROFILE")

        # Step 1: Start with schema defaults
        defaults = CacheSettings.model_construct().to_dict()
        merged_config.update(defaults)
        source_tracker.set_multiple(defaults, "default")

        # Step 2: Apply project file configuration
        project_config = self._known(
            self.file_loader.load_project_config(
                project_root=project_root, profile=profile
            )
        )
        merged_config.update(project_config)
        source_tracker.set_multiple(project_config, "file")

        # Step 3: Apply environment variables
        env_config = self._known(self.env_loader.load_env_config())
        merged_config.update(env_config)
        source_tracker.set_multiple(env_config, "env")

        # Step 4: Apply programmatic overrides (highest precedence)
        overrides = self._known(programmatic or {})
        merged_config.update(overrides)
        source_tracker.set_multiple(overrides, "programmatic")

        # Step 5: Validate the final configuration using Pydantic
        try:
            validated = CacheSettings.model_validate(merged_config)
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(
            **validated.to_dict(), origin=source_tracker.get_source_map()
        )

    @staticmethod
    def _known(values: dict[str, Any]) -> dict[str, Any]:
        """Drop fields the schema does not define."""
        return {k: v for k, v in values.items() if k in CacheSettings.model_fields}


__all__ = ["ConfigFileError", "ConfigResolver", "SourceTracker"]
