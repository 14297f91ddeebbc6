import pytest

from coderag import cli
from coderag.core import IndexStats, RetrievalResult


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("OLLAMA_BASE_URL", "CODE_RAG_EMBED_MODEL", "CODE_RAG_REVIEW_MODEL", "QDRANT_HOST", "QDRANT_PORT"):
        monkeypatch.delenv(var, raising=False)


def test_index_flags_override_config(sample_repo, monkeypatch, capsys):
    seen = {}

    def fake_build_index(repo, cfg):
        seen["repo"] = repo
        seen["cfg"] = cfg
        return IndexStats(
            files_scanned=3, files_indexed=3, chunks_total=7, chunks_embedded=5, chunks_reused=2, index_path="/idx"
        )

    monkeypatch.setattr(cli, "build_index", fake_build_index)
    code = cli.main([
        "index",
        "--repo", str(sample_repo),
        "--chunking", "windowed",
        "--chunk-size", "900",
        "--overlap-lines", "4",
        "--embedding-model", "e5",
        "--max-file-size-kb", "64",
        "--batch-size", "8",
        "--exclude", "fixtures, generated",
        "--exclude", "vendor",
        "--ollama-url", "http://ollama:11434",
    ])

    assert code == 0
    cfg = seen["cfg"]
    assert seen["repo"] == sample_repo.resolve()
    assert cfg["chunking"] == {"mode": "windowed", "chunk_size": 900, "overlap_lines": 4}
    assert cfg["embedding"]["model"] == "e5"
    assert cfg["embedding"]["batch_size"] == 8
    assert cfg["max_file_size_kb"] == 64
    assert cfg["excluded_dirs"] == ["fixtures", "generated", "vendor"]
    assert cfg["ollama_url"] == "http://ollama:11434"
    out = capsys.readouterr().out
    assert "Index saved: /idx" in out
    assert "Embedded: 5, reused: 2" in out


def test_invalid_chunking_choice_exits(sample_repo):
    with pytest.raises(SystemExit):
        cli.main(["index", "--repo", str(sample_repo), "--chunking", "ast"])


def test_search_without_index_reports_error(sample_repo, capsys):
    code = cli.main(["search", "--repo", str(sample_repo), "--query", "sessions"])

    assert code == 1
    assert "Index not found" in capsys.readouterr().err


def test_search_prints_hits(sample_repo, monkeypatch, capsys):
    def fake_search(repo, cfg, query, top_k=None, embedding_model=None, exact=False):
        assert (query, top_k, exact) == ("sessions", 2, True)
        return []

    monkeypatch.setattr(cli, "search_index", fake_search)
    code = cli.main(["search", "--repo", str(sample_repo), "--query", "sessions", "--top-k", "2", "--exact"])

    assert code == 0
    assert "No results." in capsys.readouterr().out


def test_review_prints_output_and_sources(sample_repo, monkeypatch, capsys):
    from coderag.core import ChunkingStrategy, IndexedChunk
    from coderag.review import ReviewResult

    chunk = IndexedChunk(
        id="x", path="src/sessions.py", language="python", start_line=8, end_line=15, content="class SessionStore: ...",
        chunking_strategy=ChunkingStrategy.STRUCTURAL, content_hash="h", file_mtime_ms=0.0, file_size=1, embedding=[],
    )

    def fake_review(repo, cfg, **kwargs):
        assert kwargs["diff_file"] == "change.diff"
        assert cfg["review"]["max_diff_chars"] == 100
        return ReviewResult(output="All good", retrieval=[RetrievalResult(score=0.5, chunk=chunk)], used_diff="")

    monkeypatch.setattr(cli, "run_review", fake_review)
    code = cli.main([
        "review", "--repo", str(sample_repo), "--diff-file", "change.diff", "--max-diff-chars", "100", "--show-sources",
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert "All good" in out
    assert "- src/sessions.py:8-15 (score=0.5000)" in out
