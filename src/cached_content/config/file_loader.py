"""File-based configuration loading with profile support.

This module handles loading configuration from the `[tool.cached_content]`
table of a project's pyproject.toml, with optional named profiles under
`[tool.cached_content.profiles.<name>]`.
"""

from pathlib import Path
import tomllib
from typing import Any


class ConfigFileError(Exception):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause.

        Args:
            file_path: The file that failed to load
            message: Human-readable error message
            cause: The underlying exception that caused the failure
        """
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads configuration from pyproject.toml with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from pyproject.toml in the project root.

        Args:
            project_root: Directory to search for pyproject.toml. If None,
                         searches current directory and parents.
            profile: Optional profile name to load from
                    [tool.cached_content.profiles.<name>]. If None, loads
                    from [tool.cached_content].

        Returns:
            Dictionary of configuration values from the file.
            Empty dict if file doesn't exist or has no cached_content section.

        Raises:
            ConfigFileError: If file exists but cannot be parsed or the
                requested profile is missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}

        try:
            with Path(pyproject_path).open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e

        section = data.get("tool", {}).get("cached_content", {})
        if not isinstance(section, dict) or not section:
            return {}

        if profile:
            profiles = section.get("profiles", {})
            if profile not in profiles:
                available = list(profiles.keys()) if profiles else []
                raise ConfigFileError(
                    pyproject_path,
                    f"Profile '{profile}' not found. Available profiles: {available}",
                )
            return dict(profiles[profile])

        config = dict(section)
        config.pop("profiles", None)
        return config

    def _find_pyproject_toml(self, start: Path | None) -> Path | None:
        """Search `start` (or the cwd) and its parents for pyproject.toml."""
        current = (start or Path.cwd()).resolve()
        for directory in (current, *current.parents):
            candidate = directory / "pyproject.toml"
            if candidate.is_file():
                return candidate
        return None
