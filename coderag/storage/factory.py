"""Factory for creating vector store instances."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict

from qdrant_client import QdrantClient

from ..errors import IndexLockedError
from .base import VectorStore
from .qdrant import CHUNKS_COLLECTION, QdrantVectorStore

logger = logging.getLogger(__name__)

QDRANT_SUBDIR = "qdrant"

# Embedded Qdrant locks its storage folder per client, so one client per
# folder is shared by every store opened in this process.
_local_clients: Dict[str, QdrantClient] = {}
_local_clients_lock = threading.Lock()


def _local_client(storage: Path) -> QdrantClient:
    key = str(storage.resolve())
    with _local_clients_lock:
        client = _local_clients.get(key)
        if client is None:
            storage.mkdir(parents=True, exist_ok=True)
            try:
                client = QdrantClient(path=key)
            except RuntimeError as e:
                if "already accessed" not in str(e):
                    raise
                raise IndexLockedError(str(storage.parent)) from e
            _local_clients[key] = client
            logger.debug(f"Opened local Qdrant storage {key}")
        return client


def close_local_clients() -> None:
    """Close every shared embedded client, releasing the folder locks."""
    with _local_clients_lock:
        clients = list(_local_clients.values())
        _local_clients.clear()
    for client in clients:
        client.close()


def make_vector_store(cfg: Dict, index_dir: Path) -> VectorStore:
    """Open the chunk store of ``index_dir``.

    Without a configured Qdrant host the collection lives on disk under
    ``<index_dir>/qdrant``. Stores opened on the same folder in one process
    share a client, so concurrent queries work; a second process gets
    ``IndexLockedError`` while the folder is held. With a host, the remote
    server is used and each store owns its client.
    """
    qdrant_cfg = cfg.get("vector_store", {}).get("qdrant", {})
    host = qdrant_cfg.get("host") or ""
    collection_name = qdrant_cfg.get("collection", CHUNKS_COLLECTION)

    if host:
        port = int(qdrant_cfg.get("port", 6333))
        client = QdrantClient(host=host, port=port, timeout=int(cfg.get("request_timeout", 120)))
        return QdrantVectorStore(client=client, collection_name=collection_name)

    client = _local_client(Path(index_dir) / QDRANT_SUBDIR)
    return QdrantVectorStore(client=client, collection_name=collection_name, owns_client=False)
