"""Configuration management for coderag."""

from .manager import (
    CHUNKING_KEYS,
    DEFAULT_CONFIG,
    DEFAULT_EXCLUDED_DIRS,
    chunking_settings,
    load_config,
    resolve_index_dir,
)

__all__ = [
    "CHUNKING_KEYS",
    "DEFAULT_CONFIG",
    "DEFAULT_EXCLUDED_DIRS",
    "chunking_settings",
    "load_config",
    "resolve_index_dir",
]
