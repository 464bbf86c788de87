"""
Configuration utilities for the storage layer.
Provides configuration loading from the environment and from files.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, List

import yaml


def cast_config_value(value: Any, cast_type: Optional[type] = None, default: Any = None) -> Any:
    """Cast a raw configuration value, falling back to default."""
    if value is None or cast_type is None:
        return value

    try:
        if cast_type == bool:
            if isinstance(value, str):
                return value.lower() in ('true', '1', 'yes', 'on')
            return bool(value)
        elif cast_type == list:
            # Comma-separated strings become lists
            if isinstance(value, str):
                return [item.strip() for item in value.split(',') if item.strip()]
            return list(value) if value else []
        else:
            return cast_type(value)
    except (ValueError, TypeError):
        return default


def get_config_value(key: str, default: Any = None,
                     cast_type: Optional[type] = None,
                     env_prefix: str = "CASSANDRASTORE_") -> Any:
    """
    Get configuration value from environment or return default.
    Optionally cast to specified type.
    """
    env_key = f"{env_prefix}{key.upper()}"
    value = os.environ.get(env_key, default)
    return cast_config_value(value, cast_type, default)


def get_list_config(key: str, default: Optional[List[str]] = None,
                    env_prefix: str = "CASSANDRASTORE_") -> List[str]:
    """Get list configuration value (comma-separated)."""
    if default is None:
        default = []
    return get_config_value(key, default, list, env_prefix)


def flatten_config(config: Dict[str, Any], parent: str = "") -> Dict[str, Any]:
    """
    Flatten nested mappings into dotted keys.

    {'store': {'cassandra': {'keyspace': 'x'}}} becomes
    {'store.cassandra.keyspace': 'x'}.
    """
    flat = {}
    for key, value in config.items():
        full_key = f"{parent}.{key}" if parent else str(key)
        if isinstance(value, dict):
            flat.update(flatten_config(value, full_key))
        else:
            flat[full_key] = value
    return flat


def load_config_file(file_path: str) -> Dict[str, Any]:
    """Load configuration from a file (JSON or YAML)."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    file_ext = Path(file_path).suffix.lower()

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_ext in ['.json']:
            return json.load(f)
        elif file_ext in ['.yaml', '.yml']:
            return yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file format: {file_ext}")
