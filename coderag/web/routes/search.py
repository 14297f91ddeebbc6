"""Search and review routes."""

import time
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from ...config import load_config
from ...core import Embedder, RetrievalResult
from ...review import OllamaClient, run_review
from ...search import search_index
from ..deps import get_embedder, get_llm, get_token_counter, resolve_repo
from ..schemas import ReviewRequest, ReviewResponse, SearchRequest, SearchResponse, SearchResult

router = APIRouter()


def _to_results(hits: List[RetrievalResult]) -> List[SearchResult]:
    return [
        SearchResult(
            file_path=hit.chunk.path,
            language=hit.chunk.language,
            start_line=hit.chunk.start_line,
            end_line=hit.chunk.end_line,
            score=hit.score,
            node_type=hit.chunk.node_type,
            symbol=hit.chunk.symbol,
            text=hit.chunk.content,
        )
        for hit in hits
    ]


@router.post("/search", response_model=SearchResponse)
async def search(request: SearchRequest, embedder: Optional[Embedder] = Depends(get_embedder)):
    repo = resolve_repo(request.repo_path)
    cfg = load_config(repo)
    hits = await run_in_threadpool(
        search_index,
        repo,
        cfg,
        request.query,
        top_k=request.top_k,
        embedding_model=request.embedding_model,
        exact=request.exact,
        embedder=embedder,
    )
    return SearchResponse(results=_to_results(hits))


@router.post("/review", response_model=ReviewResponse)
async def review(
    request: ReviewRequest,
    embedder: Optional[Embedder] = Depends(get_embedder),
    llm: Optional[OllamaClient] = Depends(get_llm),
    count_tokens: Optional[Callable[[str], int]] = Depends(get_token_counter),
):
    repo = resolve_repo(request.repo_path)
    cfg = load_config(repo)
    start_time = time.time()
    result = await run_in_threadpool(
        run_review,
        repo,
        cfg,
        query=request.query,
        diff=request.diff,
        top_k=request.top_k,
        embedding_model=request.embedding_model,
        review_model=request.review_model,
        embedder=embedder,
        llm=llm,
        count_tokens=count_tokens,
    )
    return ReviewResponse(
        output=result.output,
        sources=_to_results(result.retrieval),
        time_taken=time.time() - start_time,
    )
