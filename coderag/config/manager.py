"""Configuration management for coderag."""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Dict, List

from ..core.models import ChunkingMode

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".coderag.json"

DEFAULT_EXCLUDED_DIRS: List[str] = [
    ".git",
    "node_modules",
    "dist",
    "build",
    ".next",
    ".nuxt",
    "coverage",
    ".cache",
    ".idea",
    ".vscode",
    "target",
    "out",
    ".venv",
    "venv",
    "__pycache__",
]

DEFAULT_CONFIG: Dict = {
    "index_dir": ".coderag",
    "max_file_size_kb": 300,
    "excluded_dirs": [],
    "ollama_url": "http://127.0.0.1:11434",
    "request_timeout": 120,
    "chunking": {
        "mode": "structural",
        "chunk_size": 1400,
        "overlap_lines": 20,
    },
    "embedding": {
        "backend": "ollama",
        "model": "nomic-embed-text-v2-moe:latest",
        "batch_size": 16,
    },
    "search": {"top_k": 8},
    "review": {
        "model": "qwen3:8b",
        "max_diff_chars": 18000,
        "max_context_tokens": 12000,
    },
    "vector_store": {
        # Empty host keeps the collection on disk inside the index directory.
        "qdrant": {
            "host": "",
            "port": 6333,
        },
    },
}

# Settings whose change invalidates every stored embedding.
CHUNKING_KEYS = ("embedding_model", "chunking_mode", "chunk_size", "overlap_lines")


def _merge(base: Dict, override: Dict) -> Dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(repo: Path) -> Dict:
    """Load configuration.

    Defaults, then ``<repo>/.coderag.json`` if present, then environment
    overrides (``OLLAMA_BASE_URL``, ``CODE_RAG_EMBED_MODEL``,
    ``CODE_RAG_REVIEW_MODEL``, ``QDRANT_HOST``, ``QDRANT_PORT``).
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    config_file = Path(repo) / CONFIG_FILENAME
    if config_file.is_file():
        overrides = json.loads(config_file.read_text(encoding="utf-8"))
        if not isinstance(overrides, dict):
            raise ValueError(f"{config_file} must contain a JSON object")
        _merge(config, overrides)
        logger.debug(f"Loaded config overrides from {config_file}")

    config["ollama_url"] = os.getenv("OLLAMA_BASE_URL", config["ollama_url"])
    config["embedding"]["model"] = os.getenv("CODE_RAG_EMBED_MODEL", config["embedding"]["model"])
    config["review"]["model"] = os.getenv("CODE_RAG_REVIEW_MODEL", config["review"]["model"])
    config["vector_store"]["qdrant"]["host"] = os.getenv("QDRANT_HOST", config["vector_store"]["qdrant"]["host"])
    config["vector_store"]["qdrant"]["port"] = int(os.getenv("QDRANT_PORT", str(config["vector_store"]["qdrant"]["port"])))

    return config


def chunking_settings(cfg: Dict) -> Dict:
    """The settings a stored embedding depends on."""
    chunking = cfg.get("chunking", {})
    return {
        "embedding_model": cfg.get("embedding", {}).get("model", ""),
        "chunking_mode": ChunkingMode(chunking.get("mode", "structural")).value,
        "chunk_size": int(chunking.get("chunk_size", 1400)),
        "overlap_lines": int(chunking.get("overlap_lines", 20)),
    }



def resolve_index_dir(repo: Path, cfg: Dict) -> Path:
    """Absolute index directory; relative ``index_dir`` values live under ``repo``."""
    index_dir = Path(cfg.get("index_dir", ".coderag"))
    if not index_dir.is_absolute():
        index_dir = Path(repo) / index_dir
    return index_dir
