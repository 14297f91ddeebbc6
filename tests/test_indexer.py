import logging
from pathlib import Path

import pytest

from coderag.core import ChunkingStrategy
from coderag.errors import EmbeddingCountMismatch
from coderag.indexing import build_index
from coderag.storage import load_manifest

from conftest import FakeEmbedder, ShortEmbedder


def test_build_writes_chunks_and_manifest(sample_repo, cfg, embedder, memory_store):
    stats = build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert stats.files_scanned == 3
    assert stats.files_indexed == 3
    assert stats.chunks_total == memory_store.count()
    assert stats.chunks_embedded == stats.chunks_total
    assert stats.chunks_reused == 0
    assert stats.index_path == str(sample_repo.resolve() / ".coderag")

    manifest = load_manifest(sample_repo / ".coderag")
    assert manifest.embedding_model == "fake-embed"
    assert manifest.chunking_mode.value == "structural"
    assert manifest.chunks_indexed == stats.chunks_total
    assert manifest.files_indexed == 3
    assert ".coderag" in manifest.excluded_dirs
    assert "node_modules" in manifest.excluded_dirs

    chunks = memory_store.load_all()
    paths = {c.path for c in chunks}
    assert paths == {"README.md", "src/counter.ts", "src/sessions.py"}
    readme = [c for c in chunks if c.path == "README.md"]
    assert all(c.chunking_strategy == ChunkingStrategy.WINDOWED for c in readme)
    assert all(c.language == "md" for c in readme)
    py = [c for c in chunks if c.path == "src/sessions.py"]
    assert all(c.chunking_strategy == ChunkingStrategy.STRUCTURAL for c in py)
    assert len({c.id for c in chunks}) == len(chunks)


def test_rebuild_with_same_inputs_reuses_every_embedding(sample_repo, cfg, embedder, memory_store):
    first = build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    embedder.calls.clear()

    second = build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert embedder.calls == []
    assert second.chunks_reused == first.chunks_total
    assert second.chunks_embedded == 0
    assert second.chunks_total == first.chunks_total


def test_edited_file_only_reembeds_changed_chunks(sample_repo, cfg, embedder, memory_store):
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    embedder.calls.clear()

    readme = sample_repo / "README.md"
    readme.write_text(readme.read_text(encoding="utf-8") + "More text.\n", encoding="utf-8")
    stats = build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert stats.chunks_embedded >= 1
    assert stats.chunks_reused > 0
    assert all("More text." in t for t in embedder.embedded_texts)


def test_reused_chunks_carry_current_file_metadata(sample_repo, cfg, embedder, memory_store):
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    (sample_repo / "src" / "sessions.py").touch()
    new_mtime = (sample_repo / "src" / "sessions.py").stat().st_mtime * 1000.0

    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    py = [c for c in memory_store.load_all() if c.path == "src/sessions.py"]
    assert py
    assert all(c.file_mtime_ms == pytest.approx(new_mtime) for c in py)


@pytest.mark.parametrize(
    "section,key,value",
    [
        ("chunking", "mode", "windowed"),
        ("chunking", "chunk_size", 600),
        ("chunking", "overlap_lines", 3),
        ("embedding", "model", "fake-embed-2"),
    ],
)
def test_changed_settings_reembed_everything(sample_repo, cfg, embedder, memory_store, section, key, value):
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    embedder.calls.clear()

    cfg[section][key] = value
    stats = build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert stats.chunks_reused == 0
    assert stats.chunks_embedded == stats.chunks_total
    assert len(embedder.embedded_texts) == stats.chunks_total


def test_count_mismatch_fails_without_touching_previous_index(sample_repo, cfg, embedder, memory_store):
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    before = sorted(c.id for c in memory_store.load_all())
    manifest_before = load_manifest(sample_repo / ".coderag")

    cfg["chunking"]["chunk_size"] = 500
    with pytest.raises(EmbeddingCountMismatch):
        build_index(sample_repo, cfg, embedder=ShortEmbedder(), store=memory_store)

    assert sorted(c.id for c in memory_store.load_all()) == before
    assert load_manifest(sample_repo / ".coderag") == manifest_before


def test_count_mismatch_on_first_build_persists_nothing(sample_repo, cfg, memory_store):
    with pytest.raises(EmbeddingCountMismatch):
        build_index(sample_repo, cfg, embedder=ShortEmbedder(), store=memory_store)

    assert memory_store.load_all() == []
    assert load_manifest(sample_repo / ".coderag") is None


def test_index_dir_is_not_indexed(sample_repo, cfg, embedder, memory_store):
    (sample_repo / ".coderag").mkdir()
    (sample_repo / ".coderag" / "notes.txt").write_text("should not be indexed\n", encoding="utf-8")

    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert all(not c.path.startswith(".coderag/") for c in memory_store.load_all())


def test_empty_repository(tmp_path, cfg, embedder, memory_store):
    empty = tmp_path / "empty"
    empty.mkdir()

    stats = build_index(empty, cfg, embedder=embedder, store=memory_store)

    assert stats.chunks_total == 0
    assert embedder.calls == []
    assert load_manifest(empty / ".coderag").chunks_indexed == 0


def test_uses_fresh_embedder_model_in_manifest(sample_repo, cfg, memory_store):
    cfg["embedding"]["model"] = "another"
    build_index(sample_repo, cfg, embedder=FakeEmbedder("another"), store=memory_store)

    assert load_manifest(sample_repo / ".coderag").embedding_model == "another"


def test_unreadable_file_is_skipped(sample_repo, cfg, embedder, memory_store, monkeypatch, caplog):
    real_read_text = Path.read_text

    def read_text(self, *args, **kwargs):
        if self.name == "counter.ts":
            raise PermissionError(13, "Permission denied", str(self))
        return real_read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", read_text)
    with caplog.at_level(logging.WARNING, logger="coderag.indexing.indexer"):
        stats = build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert stats.files_scanned == 3
    assert stats.files_indexed == 2
    assert {c.path for c in memory_store.load_all()} == {"README.md", "src/sessions.py"}
    assert load_manifest(sample_repo / ".coderag").files_indexed == 2
    assert any("Skipping src/counter.ts" in r.getMessage() for r in caplog.records)


def test_manifest_is_absent_while_collection_is_replaced(sample_repo, cfg, embedder, memory_store, monkeypatch):
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    real_replace = memory_store.replace_collection
    seen = []

    def replace(chunks):
        seen.append(load_manifest(sample_repo / ".coderag"))
        real_replace(chunks)

    monkeypatch.setattr(memory_store, "replace_collection", replace)
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert seen == [None]
    assert load_manifest(sample_repo / ".coderag") is not None


def test_failed_replace_restores_previous_manifest(sample_repo, cfg, embedder, memory_store, monkeypatch):
    build_index(sample_repo, cfg, embedder=embedder, store=memory_store)
    manifest_before = load_manifest(sample_repo / ".coderag")

    def broken_replace(chunks):
        raise RuntimeError("upload failed")

    monkeypatch.setattr(memory_store, "replace_collection", broken_replace)
    (sample_repo / "src" / "extra.py").write_text("def extra():\n    return 2\n", encoding="utf-8")
    with pytest.raises(RuntimeError, match="upload failed"):
        build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert load_manifest(sample_repo / ".coderag") == manifest_before


def test_failed_first_replace_leaves_no_manifest(sample_repo, cfg, embedder, memory_store, monkeypatch):
    def broken_replace(chunks):
        raise RuntimeError("upload failed")

    monkeypatch.setattr(memory_store, "replace_collection", broken_replace)
    with pytest.raises(RuntimeError):
        build_index(sample_repo, cfg, embedder=embedder, store=memory_store)

    assert load_manifest(sample_repo / ".coderag") is None
