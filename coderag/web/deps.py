"""Request dependencies.

Each provider returns ``None`` so the library builds its default from the
repository configuration; tests replace them through
``app.dependency_overrides``.
"""

from pathlib import Path
from typing import Callable, Optional

from fastapi import HTTPException

from ..core import Embedder
from ..review import OllamaClient


def resolve_repo(repo_path: str) -> Path:
    path = Path(repo_path).expanduser()
    if not path.exists():
        raise HTTPException(status_code=404, detail="Repository path does not exist")
    if not path.is_dir():
        raise HTTPException(status_code=400, detail="Repository path is not a directory")
    return path.resolve()


def get_embedder() -> Optional[Embedder]:
    return None


def get_llm() -> Optional[OllamaClient]:
    return None


def get_token_counter() -> Optional[Callable[[str], int]]:
    return None
