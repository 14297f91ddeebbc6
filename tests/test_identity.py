from coderag.core import ChunkingStrategy, IndexedChunk, IndexManifest
from coderag.indexing import ChunkKey, EmbeddingCache, chunk_id, is_cache_compatible


def _manifest(**overrides):
    values = dict(
        generated_at="2026-01-01T00:00:00Z",
        repo_root="/repo",
        embedding_model="m",
        chunking_mode="structural",
        chunk_size=1400,
        overlap_lines=20,
        max_file_size_bytes=300 * 1024,
    )
    values.update(overrides)
    return IndexManifest(**values)


SETTINGS = {"embedding_model": "m", "chunking_mode": "structural", "chunk_size": 1400, "overlap_lines": 20}


def _chunk(start=1, end=3, content_hash="abc", node_type="FunctionDeclaration", symbol="f"):
    key = ChunkKey.of("src/a.py", start, end, content_hash, ChunkingStrategy.STRUCTURAL, node_type, symbol)
    return IndexedChunk(
        id=chunk_id(key),
        path="src/a.py",
        language="python",
        start_line=start,
        end_line=end,
        content="def f(): ...",
        chunking_strategy=ChunkingStrategy.STRUCTURAL,
        content_hash=content_hash,
        file_mtime_ms=1.0,
        file_size=10,
        embedding=[0.1, 0.2],
        node_type=node_type,
        symbol=symbol,
    )


def test_chunk_id_is_stable_and_truncated():
    key = ChunkKey.of("a.py", 1, 2, "h", ChunkingStrategy.WINDOWED)
    assert chunk_id(key) == chunk_id(ChunkKey.of("a.py", 1, 2, "h", "windowed"))
    assert len(chunk_id(key)) == 20


def test_missing_node_type_and_symbol_equal_empty():
    a = ChunkKey.of("a.py", 1, 2, "h", ChunkingStrategy.WINDOWED)
    b = ChunkKey.of("a.py", 1, 2, "h", ChunkingStrategy.WINDOWED, node_type="", symbol="")
    assert a == b


def test_moved_chunk_gets_new_identity():
    a = ChunkKey.of("a.py", 1, 2, "h", ChunkingStrategy.STRUCTURAL, "FunctionDeclaration", "f")
    b = ChunkKey.of("a.py", 5, 6, "h", ChunkingStrategy.STRUCTURAL, "FunctionDeclaration", "f")
    assert a != b
    assert chunk_id(a) != chunk_id(b)


def test_separator_characters_in_path_do_not_collide():
    a = ChunkKey.of("a|1", 2, 3, "h", ChunkingStrategy.WINDOWED)
    b = ChunkKey.of("a", 1, 2, "h", ChunkingStrategy.WINDOWED)
    assert chunk_id(a) != chunk_id(b)


def test_strategy_is_part_of_identity():
    a = ChunkKey.of("a.py", 1, 2, "h", ChunkingStrategy.STRUCTURAL)
    b = ChunkKey.of("a.py", 1, 2, "h", ChunkingStrategy.WINDOWED)
    assert chunk_id(a) != chunk_id(b)


def test_cache_compatibility():
    assert is_cache_compatible(_manifest(), SETTINGS)
    assert not is_cache_compatible(None, SETTINGS)
    assert not is_cache_compatible(_manifest(embedding_model="other"), SETTINGS)
    assert not is_cache_compatible(_manifest(chunking_mode="windowed"), SETTINGS)
    assert not is_cache_compatible(_manifest(chunk_size=800), SETTINGS)
    assert not is_cache_compatible(_manifest(overlap_lines=0), SETTINGS)


def test_cache_lookup_matches_exact_key():
    cache = EmbeddingCache([_chunk()])

    hit = cache.lookup(ChunkKey.of("src/a.py", 1, 3, "abc", "structural", "FunctionDeclaration", "f"))
    assert hit is not None
    assert hit.embedding == [0.1, 0.2]
    assert cache.lookup(ChunkKey.of("src/a.py", 1, 3, "abc", "structural", "FunctionDeclaration", "g")) is None


def test_incompatible_previous_build_does_not_load_chunks():
    loaded = []

    def load():
        loaded.append(True)
        return [_chunk()]

    cache = EmbeddingCache.from_previous(_manifest(chunk_size=10), SETTINGS, load)
    assert len(cache) == 0
    assert loaded == []

    cache = EmbeddingCache.from_previous(_manifest(), SETTINGS, load)
    assert len(cache) == 1
