"""Semantic search functionality."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..config import resolve_index_dir
from ..core import Embedder, RetrievalResult, make_embedder, retrieve_top_k
from ..errors import IndexNotFoundError
from ..storage import VectorStore, load_manifest, make_vector_store
from .base import Searcher

logger = logging.getLogger(__name__)


class DefaultSearcher(Searcher):

    def __init__(self, embedder: Optional[Embedder] = None, store: Optional[VectorStore] = None):
        self.embedder = embedder
        self.store = store

    def search(
        self,
        repo: Path,
        cfg: Dict,
        query: str,
        top_k: Optional[int] = None,
        embedding_model: Optional[str] = None,
        exact: bool = False,
    ) -> List[RetrievalResult]:
        index_dir = resolve_index_dir(Path(repo).resolve(), cfg)
        manifest = load_manifest(index_dir)
        if manifest is None:
            raise IndexNotFoundError(str(index_dir))

        if top_k is None:
            top_k = int(cfg.get("search", {}).get("top_k", 8))
        model = embedding_model or manifest.embedding_model
        logger.debug(f"Searching {index_dir} (model={model}, top_k={top_k}, exact={exact})")
        emb = self.embedder or make_embedder(cfg, model_name=model)
        qv = emb.embed_one(query)

        store = self.store or make_vector_store(cfg, index_dir)
        try:
            if exact:
                return retrieve_top_k(qv, store.load_all(), top_k)
            return store.vector_search(qv, top_k)
        finally:
            if self.store is None:
                store.close()


def search_index(
    repo: Path,
    cfg: Dict,
    query: str,
    top_k: Optional[int] = None,
    embedding_model: Optional[str] = None,
    exact: bool = False,
    embedder: Optional[Embedder] = None,
    store: Optional[VectorStore] = None,
) -> List[RetrievalResult]:
    searcher = DefaultSearcher(embedder=embedder, store=store)
    return searcher.search(repo, cfg, query, top_k=top_k, embedding_model=embedding_model, exact=exact)


def format_hit(hit: RetrievalResult, max_chars: int = 180) -> str:
    """One-line header plus a whitespace-collapsed preview of the chunk."""
    c = hit.chunk
    node = f" node={c.node_type}" if c.node_type else ""
    symbol = f" symbol={c.symbol}" if c.symbol else ""
    preview = " ".join(c.content.split())[:max_chars]
    return f"{hit.score:0.4f}  {c.path}:{c.start_line}-{c.end_line}{node}{symbol}\n{preview}\n"
