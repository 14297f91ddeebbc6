"""
coderag command line.

Usage:
  coderag index  [--repo PATH] [--chunking structural|windowed] ...
  coderag search --query "where are sessions created?"
  coderag review [--diff-file change.diff] [--show-sources]
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

from .config import load_config
from .core import ChunkingMode
from .errors import CodeRagError
from .indexing import build_index
from .review import DEFAULT_REVIEW_QUERY, run_review
from .search import format_hit, search_index
from .storage import close_local_clients
from .utils import repo_root

logger = logging.getLogger(__name__)


def _comma_list(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _add_common(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--repo", type=Path, default=None, help="repository root (default: enclosing git repo)")
    ap.add_argument("--index-dir", default=None, help="directory for index artifacts")
    ap.add_argument("--ollama-url", default=None, help="Ollama base URL")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="coderag", description="RAG indexing of codebases + local code review")
    sub = ap.add_subparsers(dest="command", required=True)

    idx = sub.add_parser("index", help="Index a repository into the local vector store")
    _add_common(idx)
    idx.add_argument("--embedding-model", default=None, help="embedding model name")
    idx.add_argument("--chunking", choices=[m.value for m in ChunkingMode], default=None, help="chunking mode")
    idx.add_argument("--chunk-size", type=int, default=None, help="chunk size in characters")
    idx.add_argument("--overlap-lines", type=int, default=None, help="line overlap between chunks")
    idx.add_argument("--max-file-size-kb", type=int, default=None, help="max indexed file size in kilobytes")
    idx.add_argument("--batch-size", type=int, default=None, help="embedding batch size")
    idx.add_argument("--exclude", type=_comma_list, action="append", default=[], help="comma-separated excluded directories")

    srch = sub.add_parser("search", help="Debug retrieval: closest code chunks for a query")
    _add_common(srch)
    srch.add_argument("--query", required=True, help="search query")
    srch.add_argument("--embedding-model", default=None, help="override embedding model used for retrieval")
    srch.add_argument("--top-k", type=int, default=None, help="how many snippets to retrieve")
    srch.add_argument("--exact", action="store_true", help="rank all chunks by cosine similarity in memory")

    rev = sub.add_parser("review", help="Review the git diff using RAG context")
    _add_common(rev)
    rev.add_argument("--query", default=DEFAULT_REVIEW_QUERY, help="review task/prompt")
    rev.add_argument("--embedding-model", default=None, help="override embedding model used for retrieval")
    rev.add_argument("--review-model", default=None, help="review LLM model")
    rev.add_argument("--top-k", type=int, default=None, help="how many snippets to retrieve")
    rev.add_argument("--max-diff-chars", type=int, default=None, help="maximum diff chars passed into prompt")
    rev.add_argument("--diff-file", default=None, help="optional explicit diff file")
    rev.add_argument("--show-sources", action="store_true", help="print retrieved snippet locations")
    return ap


def _config_for(args: argparse.Namespace, repo: Path) -> Dict:
    cfg = load_config(repo)
    if args.index_dir:
        cfg["index_dir"] = args.index_dir
    if args.ollama_url:
        cfg["ollama_url"] = args.ollama_url

    if args.command == "index":
        if args.embedding_model:
            cfg["embedding"]["model"] = args.embedding_model
        if args.chunking:
            cfg["chunking"]["mode"] = args.chunking
        if args.chunk_size is not None:
            cfg["chunking"]["chunk_size"] = args.chunk_size
        if args.overlap_lines is not None:
            cfg["chunking"]["overlap_lines"] = args.overlap_lines
        if args.max_file_size_kb is not None:
            cfg["max_file_size_kb"] = args.max_file_size_kb
        if args.batch_size is not None:
            cfg["embedding"]["batch_size"] = args.batch_size
        for dirs in args.exclude:
            cfg["excluded_dirs"] = [*cfg.get("excluded_dirs", []), *dirs]

    if args.command == "review" and args.max_diff_chars is not None:
        cfg["review"]["max_diff_chars"] = args.max_diff_chars
    return cfg


def _cmd_index(repo: Path, cfg: Dict, args: argparse.Namespace) -> int:
    stats = build_index(repo, cfg)
    print(f"Index saved: {stats.index_path}")
    print(f"Files: {stats.files_indexed}, chunks: {stats.chunks_total}")
    print(f"Embedded: {stats.chunks_embedded}, reused: {stats.chunks_reused}")
    return 0


def _cmd_search(repo: Path, cfg: Dict, args: argparse.Namespace) -> int:
    hits = search_index(repo, cfg, args.query, top_k=args.top_k, embedding_model=args.embedding_model, exact=args.exact)
    if not hits:
        print("No results.")
        return 0
    for hit in hits:
        print(format_hit(hit))
    return 0


def _cmd_review(repo: Path, cfg: Dict, args: argparse.Namespace) -> int:
    result = run_review(
        repo,
        cfg,
        query=args.query,
        diff_file=args.diff_file,
        top_k=args.top_k,
        embedding_model=args.embedding_model,
        review_model=args.review_model,
    )
    print(result.output)
    if args.show_sources:
        print("\nRAG sources:")
        for item in result.retrieval:
            c = item.chunk
            print(f"- {c.path}:{c.start_line}-{c.end_line} (score={item.score:.4f})")
    return 0


COMMANDS = {
    "index": _cmd_index,
    "search": _cmd_search,
    "review": _cmd_review,
}


def main(argv: List[str] | None = None) -> int:
    """Main CLI entrypoint."""
    if argv is None:
        argv = sys.argv[1:]

    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repo = (args.repo or repo_root(Path.cwd())).resolve()
    try:
        cfg = _config_for(args, repo)
        return COMMANDS[args.command](repo, cfg, args)
    except (CodeRagError, ValueError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        close_local_clients()


if __name__ == "__main__":
    sys.exit(main())
