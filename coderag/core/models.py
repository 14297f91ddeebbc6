"""Data models for coderag."""

from __future__ import annotations

import dataclasses
import enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ChunkingMode(str, enum.Enum):
    """How a build asks files to be chunked."""

    STRUCTURAL = "structural"
    WINDOWED = "windowed"


class ChunkingStrategy(str, enum.Enum):
    """How a particular chunk was actually produced."""

    STRUCTURAL = "structural"
    WINDOWED = "windowed"


class NodeKind(str, enum.Enum):
    """Declaration kinds the structural chunker keeps as whole units."""

    FUNCTION = "FunctionDeclaration"
    CLASS = "ClassDeclaration"
    INTERFACE = "InterfaceDeclaration"
    ENUM = "EnumDeclaration"
    TYPE_ALIAS = "TypeAliasDeclaration"
    METHOD = "MethodDeclaration"
    CONSTRUCTOR = "Constructor"
    VARIABLE = "VariableStatement"


@dataclasses.dataclass(frozen=True)
class SourceFile:
    """A readable text file found by the file lister."""

    abs_path: str
    rel_path: str
    mtime_ms: float
    size: int


@dataclasses.dataclass
class ChunkPart:
    """A contiguous line range of one file (1-based, inclusive)."""

    start_line: int
    end_line: int
    content: str
    chunking_strategy: ChunkingStrategy
    node_type: Optional[str] = None
    symbol: Optional[str] = None


@dataclasses.dataclass
class IndexedChunk:
    """Represents a persisted code chunk with metadata and embedding."""

    id: str
    path: str
    language: str
    start_line: int
    end_line: int
    content: str
    chunking_strategy: ChunkingStrategy
    content_hash: str
    file_mtime_ms: float
    file_size: int
    embedding: List[float]
    node_type: Optional[str] = None
    symbol: Optional[str] = None


@dataclasses.dataclass
class RetrievalResult:
    score: float
    chunk: IndexedChunk


@dataclasses.dataclass
class IndexStats:
    files_scanned: int
    files_indexed: int
    chunks_total: int
    chunks_embedded: int
    chunks_reused: int
    index_path: str


class IndexManifest(BaseModel):
    """Metadata describing how a persisted index was built."""

    version: int = 1
    generated_at: str
    repo_root: str
    embedding_model: str
    chunking_mode: ChunkingMode
    chunk_size: int
    overlap_lines: int
    excluded_dirs: List[str] = Field(default_factory=list)
    max_file_size_bytes: int
    files_indexed: int = 0
    chunks_indexed: int = 0
