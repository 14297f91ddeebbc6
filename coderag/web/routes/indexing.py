"""Indexing routes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ...config import load_config
from ...core import Embedder
from ...indexing import build_index
from ..deps import get_embedder, resolve_repo
from ..schemas import IndexRequest, IndexResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/index", response_model=IndexResponse)
async def index_repository(request: IndexRequest, embedder: Optional[Embedder] = Depends(get_embedder)):
    """Build or rebuild the index of a repository."""
    repo = resolve_repo(request.repo_path)
    cfg = load_config(repo)
    if request.embedding_model:
        cfg["embedding"]["model"] = request.embedding_model
    if request.chunking:
        cfg["chunking"]["mode"] = request.chunking
    if request.chunk_size is not None:
        cfg["chunking"]["chunk_size"] = request.chunk_size
    if request.overlap_lines is not None:
        cfg["chunking"]["overlap_lines"] = request.overlap_lines

    logger.info(f"Indexing {repo}")
    stats = await run_in_threadpool(build_index, repo, cfg, embedder)
    return IndexResponse(
        index_path=stats.index_path,
        files_scanned=stats.files_scanned,
        files_indexed=stats.files_indexed,
        chunks_total=stats.chunks_total,
        chunks_embedded=stats.chunks_embedded,
        chunks_reused=stats.chunks_reused,
    )
