from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from pydantic import BaseModel, ValidationError

from ..errors import GenerationError

logger = logging.getLogger(__name__)


class GenerateResponse(BaseModel):
    response: Optional[str] = None
    done: bool = True
    total_duration: Optional[int] = None


@dataclass
class LLMConfig:
    api_base: str = "http://127.0.0.1:11434"
    model: str = "qwen3:8b"
    timeout: float = 120.0


class OllamaClient:

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig()
        self.api_base = self.config.api_base.rstrip("/")

    def generate(self, model: Optional[str], prompt: str, system: str) -> str:
        url = f"{self.api_base}/api/generate"
        payload = {
            "model": model or self.config.model,
            "prompt": prompt,
            "system": system,
            "stream": False,
        }
        try:
            response = requests.post(url, json=payload, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise GenerationError(f"Ollama request failed /api/generate: {e}") from e
        if not response.ok:
            raise GenerationError(f"Ollama request failed ({response.status_code}) /api/generate: {response.text}")

        try:
            data = GenerateResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise GenerationError("Ollama /api/generate returned a malformed response") from e
        if data.response is None:
            raise GenerationError("Ollama /api/generate response does not contain response")
        if data.total_duration:
            logger.debug(f"Generation took {data.total_duration / 1e9:.1f}s")
        return data.response.strip()


def create_client(cfg: dict) -> OllamaClient:
    config = LLMConfig(
        api_base=cfg.get("ollama_url", LLMConfig.api_base),
        model=cfg.get("review", {}).get("model", LLMConfig.model),
        timeout=float(cfg.get("request_timeout", LLMConfig.timeout)),
    )
    return OllamaClient(config)
