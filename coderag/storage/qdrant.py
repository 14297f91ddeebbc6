"""Qdrant vector database backend."""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional

from qdrant_client import QdrantClient
from qdrant_client.models import (
    CreateAlias,
    CreateAliasOperation,
    DeleteAlias,
    DeleteAliasOperation,
    Distance,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from ..core.models import ChunkingStrategy, IndexedChunk, RetrievalResult
from ..core.vectors import distance_to_score
from .base import VectorStore

logger = logging.getLogger(__name__)

CHUNKS_COLLECTION = "code_chunks"

# Point ids must be UUIDs or integers; derive one from the chunk id.
_POINT_NAMESPACE = uuid.UUID("5b0f6f1e-8c1d-4b7e-9a53-2f4c0d1e7a61")


def _point_id(chunk_id: str) -> str:
    return str(uuid.uuid5(_POINT_NAMESPACE, chunk_id))


def _payload(chunk: IndexedChunk) -> Dict:
    return {
        "chunk_id": chunk.id,
        "path": chunk.path,
        "language": chunk.language,
        "start_line": chunk.start_line,
        "end_line": chunk.end_line,
        "content": chunk.content,
        "node_type": chunk.node_type or "",
        "symbol": chunk.symbol or "",
        "chunking_strategy": ChunkingStrategy(chunk.chunking_strategy).value,
        "content_hash": chunk.content_hash,
        "file_mtime_ms": chunk.file_mtime_ms,
        "file_size": chunk.file_size,
    }


def _to_chunk(payload: Optional[Dict], vector) -> IndexedChunk:
    payload = payload or {}
    strategy = payload.get("chunking_strategy")
    if isinstance(vector, dict):
        vector = next(iter(vector.values()), [])
    return IndexedChunk(
        id=str(payload.get("chunk_id", "")),
        path=str(payload.get("path", "")),
        language=str(payload.get("language", "")),
        start_line=int(payload.get("start_line", 0)),
        end_line=int(payload.get("end_line", 0)),
        content=str(payload.get("content", "")),
        node_type=payload.get("node_type") or None,
        symbol=payload.get("symbol") or None,
        chunking_strategy=ChunkingStrategy.STRUCTURAL if strategy == "structural" else ChunkingStrategy.WINDOWED,
        content_hash=str(payload.get("content_hash", "")),
        file_mtime_ms=float(payload.get("file_mtime_ms", 0)),
        file_size=int(payload.get("file_size", 0)),
        embedding=[float(x) for x in (vector or [])],
    )


class QdrantVectorStore(VectorStore):
    """Chunk collection stored in Qdrant behind an alias.

    Each replace writes a fresh physical collection and then moves the alias,
    so readers of the alias never see a partially written collection.
    """

    def __init__(
        self,
        client: QdrantClient,
        collection_name: str = CHUNKS_COLLECTION,
        upload_batch_size: int = 128,
        owns_client: bool = True,
    ):
        self.client = client
        self.collection_name = collection_name
        self.upload_batch_size = upload_batch_size
        # Shared clients are closed by whoever shares them.
        self.owns_client = owns_client

    def _current_collection(self) -> Optional[str]:
        for alias in self.client.get_aliases().aliases:
            if alias.alias_name == self.collection_name:
                return alias.collection_name
        return None

    def _ensure_payload_index(self, physical_name: str) -> None:
        try:
            self.client.create_payload_index(
                collection_name=physical_name,
                field_name="path",
                field_schema=PayloadSchemaType.KEYWORD,
            )
        except Exception as e:
            logger.warning(f"Could not create payload index on '{physical_name}', searches will scan: {e}")

    def _switch_alias(self, old_name: Optional[str], new_name: Optional[str]) -> None:
        operations = []
        if old_name is not None:
            operations.append(DeleteAliasOperation(delete_alias=DeleteAlias(alias_name=self.collection_name)))
        if new_name is not None:
            operations.append(
                CreateAliasOperation(
                    create_alias=CreateAlias(collection_name=new_name, alias_name=self.collection_name)
                )
            )
        if operations:
            self.client.update_collection_aliases(change_aliases_operations=operations)

    def _drop_replaced(self, old_name: str) -> None:
        # The alias already points at the new collection.
        try:
            self.client.delete_collection(collection_name=old_name)
        except Exception as e:
            logger.warning(f"Could not drop replaced collection {old_name}: {e}", exc_info=True)

    def replace_collection(self, chunks: List[IndexedChunk]) -> None:
        old_name = self._current_collection()

        if not chunks:
            logger.warning("No chunks to save, dropping collection")
            self._switch_alias(old_name, None)
            if old_name is not None:
                self._drop_replaced(old_name)
            return

        vector_dim = len(chunks[0].embedding)
        if vector_dim <= 0:
            raise ValueError("Chunks must contain embeddings (non-empty 'embedding').")
        for i, chunk in enumerate(chunks):
            if len(chunk.embedding) != vector_dim:
                raise ValueError(
                    f"Chunk {i} at {chunk.path}:{chunk.start_line} has different dimension: "
                    f"{len(chunk.embedding)} vs expected {vector_dim}"
                )

        new_name = f"{self.collection_name}_{uuid.uuid4().hex[:12]}"
        self.client.create_collection(
            collection_name=new_name,
            vectors_config=VectorParams(size=vector_dim, distance=Distance.EUCLID),
        )

        points = [
            PointStruct(id=_point_id(chunk.id), vector=list(chunk.embedding), payload=_payload(chunk))
            for chunk in chunks
        ]
        batch_size = self.upload_batch_size
        total_batches = (len(points) + batch_size - 1) // batch_size
        logger.info(f"Uploading {len(points)} points in {total_batches} batches")

        try:
            for i in range(0, len(points), batch_size):
                batch_num = i // batch_size + 1
                try:
                    self.client.upsert(collection_name=new_name, points=points[i:i + batch_size])
                except Exception as e:
                    raise RuntimeError(
                        f"Failed to upsert batch {batch_num}/{total_batches} "
                        f"(points {i}-{i + batch_size}): {e}"
                    ) from e
                logger.debug(f"Uploaded batch {batch_num}/{total_batches}")
        except Exception:
            self.client.delete_collection(collection_name=new_name)
            raise

        self._ensure_payload_index(new_name)
        self._switch_alias(old_name, new_name)
        if old_name is not None:
            self._drop_replaced(old_name)

        logger.info(f"Saved {len(points)} chunks to collection '{self.collection_name}' ({new_name})")

    def load_all(self) -> List[IndexedChunk]:
        """Load all chunks from Qdrant."""
        if self._current_collection() is None:
            return []

        chunks: List[IndexedChunk] = []
        offset = None
        while True:
            points, next_offset = self.client.scroll(
                collection_name=self.collection_name,
                limit=256,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )
            for p in points:
                chunks.append(_to_chunk(p.payload, p.vector))
            if next_offset is None:
                break
            offset = next_offset
        return chunks

    def vector_search(self, query_vector: List[float], limit: int) -> List[RetrievalResult]:
        """Search using Qdrant's vector search."""
        if limit <= 0 or self._current_collection() is None:
            return []

        try:
            results = self.client.query_points(
                collection_name=self.collection_name,
                query=list(query_vector),
                limit=limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error(f"Error searching in collection '{self.collection_name}': {e}")
            raise

        hits: List[RetrievalResult] = []
        for point in results.points:
            # Euclidean collections report the distance as the point score.
            hits.append(RetrievalResult(score=distance_to_score(point.score), chunk=_to_chunk(point.payload, None)))
        return hits

    def exists(self) -> bool:
        """Check if collection exists and has data."""
        if self._current_collection() is None:
            return False
        return self.count() > 0

    def count(self) -> int:
        """Count chunks in the collection."""
        if self._current_collection() is None:
            return 0
        return self.client.count(collection_name=self.collection_name, exact=True).count

    def close(self) -> None:
        if self.owns_client:
            self.client.close()
