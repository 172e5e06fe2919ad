"""Configuration loading utilities."""

import json
from pathlib import Path
from typing import Any

from lnprune.config.schema import Settings


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".lnprune" / "config.json"


def load_settings(config_path: Path | None = None) -> Settings:
    """
    Load settings from file (when present) and LNPRUNE_* environment variables.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded settings object. Values from the file take precedence over
        the environment.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path) as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("config must be a JSON object")
            return Settings(**convert_keys(data))
        except (json.JSONDecodeError, ValueError) as e:
            raise ValueError(
                f"Failed to load config from {path}: {e}. "
                "Fix the file or remove it to use defaults."
            ) from e

    return Settings()


def convert_keys(data: Any) -> Any:
    """Convert camelCase and kebab-case keys to snake_case for Pydantic."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    """Convert camelCase (or kebab-case) to snake_case."""
    result = []
    for i, char in enumerate(name.replace("-", "_")):
        if char.isupper() and i > 0:
            result.append("_")
        result.append(char.lower())
    return "".join(result)
