import hashlib
from pathlib import Path
from typing import List

import pytest
from qdrant_client import QdrantClient

from coderag.config import load_config
from coderag.core import Embedder
from coderag.storage import QdrantVectorStore, close_local_clients


class FakeEmbedder(Embedder):
    """Deterministic embedder: 16 dims derived from a hash of the text."""

    def __init__(self, model_name: str = "fake-embed", dim: int = 16):
        self.model_name = model_name
        self.dim = dim
        self.calls: List[List[str]] = []

    def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors = []
        for t in texts:
            digest = hashlib.sha256(t.encode("utf-8")).digest()
            vectors.append([float(b) / 255.0 + 0.01 for b in digest[: self.dim]])
        return vectors

    @property
    def embedded_texts(self) -> List[str]:
        return [t for batch in self.calls for t in batch]


class ShortEmbedder(FakeEmbedder):
    """Returns one vector fewer than requested."""

    def embed(self, texts: List[str]) -> List[List[float]]:
        return super().embed(texts)[:-1]


SAMPLE_PY = '''"""Sessions."""

import os

TIMEOUT = 30


class SessionStore:
    def __init__(self, root):
        self.root = root

    def create(self, user):
        return os.path.join(self.root, user)


def cleanup(store):
    return store.root
'''

SAMPLE_TS = """export function add(a: number, b: number): number {
  return a + b;
}

export class Counter {
  private value = 0;

  increment(): number {
    return ++this.value;
  }
}
"""


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def memory_store():
    store = QdrantVectorStore(QdrantClient(location=":memory:"))
    yield store
    store.close()


@pytest.fixture
def sample_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    (repo / "src").mkdir(parents=True)
    (repo / "src" / "sessions.py").write_text(SAMPLE_PY, encoding="utf-8")
    (repo / "src" / "counter.ts").write_text(SAMPLE_TS, encoding="utf-8")
    (repo / "README.md").write_text("# Demo\n\nSessions live under the store root.\n", encoding="utf-8")
    (repo / "node_modules" / "dep").mkdir(parents=True)
    (repo / "node_modules" / "dep" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    return repo


@pytest.fixture
def cfg(sample_repo: Path, monkeypatch):
    for var in ("OLLAMA_BASE_URL", "CODE_RAG_EMBED_MODEL", "CODE_RAG_REVIEW_MODEL", "QDRANT_HOST", "QDRANT_PORT"):
        monkeypatch.delenv(var, raising=False)
    config = load_config(sample_repo)
    config["embedding"]["model"] = "fake-embed"
    return config


@pytest.fixture(autouse=True)
def _release_local_qdrant():
    yield
    close_local_clients()
