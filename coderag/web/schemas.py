from pydantic import BaseModel, Field
from typing import Optional, List, Literal


class IndexRequest(BaseModel):
    repo_path: str
    embedding_model: Optional[str] = None
    chunking: Optional[Literal["structural", "windowed"]] = None
    chunk_size: Optional[int] = Field(default=None, gt=0)
    overlap_lines: Optional[int] = Field(default=None, ge=0)


class IndexResponse(BaseModel):
    index_path: str
    files_scanned: int
    files_indexed: int
    chunks_total: int
    chunks_embedded: int
    chunks_reused: int


class SearchRequest(BaseModel):
    repo_path: str
    query: str
    top_k: Optional[int] = Field(default=None, gt=0)
    embedding_model: Optional[str] = None
    exact: bool = False


class SearchResult(BaseModel):
    file_path: str
    language: str
    start_line: int
    end_line: int
    score: float
    node_type: Optional[str] = None
    symbol: Optional[str] = None
    text: str


class SearchResponse(BaseModel):
    results: List[SearchResult]


class ReviewRequest(BaseModel):
    repo_path: str
    query: str = "Review the current diff"
    diff: Optional[str] = None
    top_k: Optional[int] = Field(default=None, gt=0)
    embedding_model: Optional[str] = None
    review_model: Optional[str] = None


class ReviewResponse(BaseModel):
    output: str
    sources: List[SearchResult]
    time_taken: float
