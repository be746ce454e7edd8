"""YAML config loader and dotted-key lookup."""

from pathlib import Path
from typing import Any

import yaml

from weatherstore.config.schema import StoreConfig


def load_config(path: str | Path | None = None) -> StoreConfig:
    """Load and validate config from a YAML file.

    With no path, or an empty file, every setting takes its default.
    """
    if path is None:
        return StoreConfig()
    with open(Path(path)) as f:
        raw = yaml.safe_load(f) or {}
    return StoreConfig(**raw)


def get_config_value(config: StoreConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'database.path'."""
    obj: Any = config
    for part in dotted_key.split("."):
        if hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict) and part in obj:
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj
