"""Vector storage backends (Qdrant only) and the index manifest."""

from .base import VectorStore
from .factory import close_local_clients, make_vector_store
from .manifest import MANIFEST_FILE, clear_manifest, load_manifest, save_manifest
from .qdrant import CHUNKS_COLLECTION, QdrantVectorStore

__all__ = [
    "VectorStore",
    "QdrantVectorStore",
    "CHUNKS_COLLECTION",
    "close_local_clients",
    "make_vector_store",
    "MANIFEST_FILE",
    "clear_manifest",
    "load_manifest",
    "save_manifest",
]
