import logging
from typing import Optional

import requests
from langchain_core.embeddings import Embeddings

from .errors import EmbeddingServiceError, ModelServiceError
from .result import Err, Ok, Result

logger = logging.getLogger(__name__)


class OllamaClient:
    """Chat-completion client. `messages` may carry base64 `images` for vision models."""

    def __init__(self, model: str, base_url: str, timeout: float, options: Optional[dict] = None):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.options = options or {}

    def complete(self, system: str, messages: list[dict]) -> Result[str]:
        # NOTE: format:"json" is not used; callers prime the assistant turn with "{"
        # and repair the reply themselves.
        payload = {
            "model": self.model,
            "stream": False,
            "options": self.options,
            "messages": [{"role": "system", "content": system}, *messages],
        }
        try:
            r = requests.post(f"{self.base_url}/api/chat", json=payload, timeout=self.timeout)
            r.raise_for_status()
            content = r.json().get("message", {}).get("content", "")
        except (requests.RequestException, ValueError) as e:
            logger.error("Ollama chat call failed (model=%s): %s", self.model, e)
            return Err(ModelServiceError(f"Model call failed: {e}"))
        logger.debug("Ollama chat reply: %d chars", len(content))
        return Ok(content)


class OllamaEmbedder(Embeddings):
    """One `/api/embed` call per text. Also serves as the FAISS embedding function."""

    def __init__(self, model: str, base_url: str, timeout: float):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def try_embed(self, text: str) -> Result[list[float]]:
        try:
            r = requests.post(
                f"{self.base_url}/api/embed",
                json={"model": self.model, "input": text},
                timeout=self.timeout,
            )
            r.raise_for_status()
            vectors = r.json().get("embeddings") or []
        except (requests.RequestException, ValueError) as e:
            logger.error("Ollama embed call failed (model=%s): %s", self.model, e)
            return Err(EmbeddingServiceError(f"Embedding call failed: {e}"))
        if not vectors or not vectors[0]:
            return Err(EmbeddingServiceError("Embedding service returned no vector."))
        return Ok([float(x) for x in vectors[0]])

    def embed_query(self, text: str) -> list[float]:
        return self.try_embed(text).unwrap()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]
