"""Code review: git diff + retrieved context -> generation model."""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..config import resolve_index_dir
from ..core import Embedder, RetrievalResult
from ..errors import IndexNotFoundError, ReviewInputError
from ..search import search_index
from ..storage import VectorStore, load_manifest
from .git import working_tree_diff
from .llm_client import OllamaClient, create_client
from .prompt import REVIEW_SYSTEM_PROMPT, PromptConfig, ReviewPromptBuilder, render_search_query, truncate

logger = logging.getLogger(__name__)

DEFAULT_REVIEW_QUERY = "Review the current diff"


@dataclasses.dataclass
class ReviewResult:
    output: str
    retrieval: List[RetrievalResult]
    used_diff: str


def load_diff(repo: Path, diff_file: Optional[str] = None) -> str:
    """Contents of ``diff_file`` (relative to ``repo``) or the working-tree diff."""
    if diff_file:
        path = Path(diff_file)
        if not path.is_absolute():
            path = repo / path
        return path.read_text(encoding="utf-8").strip()
    return working_tree_diff(repo)


def run_review(
    repo: Path,
    cfg: Dict,
    query: str = DEFAULT_REVIEW_QUERY,
    diff_file: Optional[str] = None,
    diff: Optional[str] = None,
    top_k: Optional[int] = None,
    embedding_model: Optional[str] = None,
    review_model: Optional[str] = None,
    embedder: Optional[Embedder] = None,
    store: Optional[VectorStore] = None,
    llm: Optional[OllamaClient] = None,
    count_tokens: Optional[Callable[[str], int]] = None,
) -> ReviewResult:
    """Review the current change with the repository index as context.

    An explicit ``diff`` takes precedence over ``diff_file`` and the git
    working tree.

    Raises:
        IndexNotFoundError: If the repository has not been indexed
        ReviewInputError: If there is neither a query nor a diff
    """
    repo = Path(repo).resolve()
    index_dir = resolve_index_dir(repo, cfg)
    if load_manifest(index_dir) is None:
        raise IndexNotFoundError(str(index_dir))

    review_cfg = cfg.get("review", {})
    if diff is None:
        diff = load_diff(repo, diff_file)
    diff = truncate(diff.strip(), int(review_cfg.get("max_diff_chars", 18000)))
    if not diff and not query:
        raise ReviewInputError("No review input: pass --query or provide a git diff.")

    retrieval = search_index(
        repo,
        cfg,
        render_search_query(query, diff),
        top_k=top_k,
        embedding_model=embedding_model,
        embedder=embedder,
        store=store,
    )
    logger.info(f"Retrieved {len(retrieval)} snippets for review")

    builder = ReviewPromptBuilder(
        PromptConfig(max_context_tokens=int(review_cfg.get("max_context_tokens", 12000))),
        count_tokens=count_tokens,
    )
    prompt = builder.build(query, diff, retrieval)

    client = llm or create_client(cfg)
    output = client.generate(review_model or review_cfg.get("model"), prompt, REVIEW_SYSTEM_PROMPT)
    return ReviewResult(output=output, retrieval=retrieval, used_diff=diff)
