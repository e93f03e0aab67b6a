"""Environment variable configuration loading.

This module handles loading configuration from environment variables with
the CACHED_CONTENT_ prefix, with type coercion through the settings schema.
"""

import os
from typing import Any

from .schema import FIELD_NAMES, CacheSettings

ENV_PREFIX = "CACHED_CONTENT_"


def env_var_for(field_name: str) -> str:
    return f"{ENV_PREFIX}{field_name.upper()}"


class EnvironmentConfigLoader:
    """Loads configuration from CACHED_CONTENT_* environment variables."""

    def load_env_config(self) -> dict[str, Any]:
        """Load configuration from environment variables.

        Returns:
            Dictionary of configuration values found in environment.
            Only includes fields that are actually set (not defaults).

        Raises:
            ValueError: If environment variables contain invalid values.
        """
        env_values = {
            field: os.environ[env_var_for(field)]
            for field in FIELD_NAMES
            if env_var_for(field) in os.environ
        }
        if not env_values:
            return {}

        try:
            settings = CacheSettings(**env_values)
        except Exception as e:
            env_var_list = [
                f"{env_var_for(field)}={value}" for field, value in env_values.items()
            ]
            raise ValueError(
                f"Invalid environment variable values: {', '.join(env_var_list)}. "
                f"Error: {e}"
            ) from e

        return {field: getattr(settings, field) for field in env_values}
