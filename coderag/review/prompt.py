"""Review prompt assembly."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Callable, List

import tiktoken

from ..core import RetrievalResult

logger = logging.getLogger(__name__)

REVIEW_SYSTEM_PROMPT = """
You are a senior engineer performing a code review.
Use only the provided diff and the retrieved repository context.
If the data is insufficient, say so explicitly.
Answer format:
1) Findings (critical/important/minor) with files and lines where possible.
2) Regression risks.
3) A short list of concrete fixes.
Answer in the user's language.
""".strip()

TRUNCATION_MARKER = "\n\n[...truncated...]"


@functools.lru_cache(maxsize=None)
def _encoding(name: str):
    return tiktoken.get_encoding(name)


def tiktoken_counter(encoding_name: str = "cl100k_base") -> Callable[[str], int]:
    """Return a token counting function backed by tiktoken."""

    def count_tokens(text: str) -> int:
        return len(_encoding(encoding_name).encode(text))

    return count_tokens


def truncate(value: str, max_chars: int) -> str:
    if len(value) <= max_chars:
        return value
    return value[:max_chars] + TRUNCATION_MARKER


@dataclass(frozen=True)
class PromptConfig:
    max_context_tokens: int = 12000
    encoding: str = "cl100k_base"


def _format_context_item(hit: RetrievalResult) -> str:
    c = hit.chunk
    return "\n".join([
        f"Score: {hit.score:0.4f}",
        f"Path: {c.path}:{c.start_line}-{c.end_line}",
        "```",
        c.content,
        "```",
    ])


class ReviewPromptBuilder:
    def __init__(self, config: PromptConfig | None = None, count_tokens: Callable[[str], int] | None = None):
        self.config = config or PromptConfig()
        self.count_tokens = count_tokens or tiktoken_counter(self.config.encoding)

    def select_context(self, hits: List[RetrievalResult]) -> List[str]:
        """Format hits best-first until the token budget is spent."""
        items: List[str] = []
        used = 0
        for hit in hits:
            item = _format_context_item(hit)
            tokens = self.count_tokens(item)
            if used + tokens > self.config.max_context_tokens:
                logger.debug(f"Context budget reached after {len(items)} of {len(hits)} snippets")
                break
            items.append(item)
            used += tokens
        return items

    def build(self, query: str, diff: str, hits: List[RetrievalResult]) -> str:
        items = self.select_context(hits)
        context = "\n\n".join(items) if items else "No RAG context found."
        return "\n".join([
            "Review task:",
            query,
            "",
            "Diff:",
            diff or "No diff found",
            "",
            "RAG context:",
            context,
        ]).strip()


def render_search_query(query: str, diff: str, max_diff_chars: int = 4000) -> str:
    """Text embedded to retrieve context for a review."""
    return f"{query}\n\n{truncate(diff, max_diff_chars)}"
