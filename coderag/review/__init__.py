"""Code review with retrieved repository context."""

from .llm_client import LLMConfig, OllamaClient, create_client
from .reviewer import DEFAULT_REVIEW_QUERY, ReviewResult, load_diff, run_review

__all__ = [
    "LLMConfig",
    "OllamaClient",
    "create_client",
    "DEFAULT_REVIEW_QUERY",
    "ReviewResult",
    "load_diff",
    "run_review",
]
