"""OpenAI-compatible embedding provider."""

from typing import Any

from ..base import HTTPEmbedder

OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatibleEmbedder(HTTPEmbedder):
    """
    Embedder for any API following the OpenAI embeddings format
    (OpenAI, Azure OpenAI, LocalAI, Ollama's compatibility layer, ...).

    Request: ``{"model": ..., "input": ...}`` posted to ``{base_url}/embeddings``
    Response: ``{"data": [{"embedding": [...], "index": 0}]}``
    """

    @property
    def url(self) -> str:
        return f"{(self.config.base_url or OPENAI_BASE_URL).rstrip('/')}/embeddings"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key or ''}"}

    def _build_payload(self, text: str) -> dict[str, Any]:
        return {"model": self.model, "input": text}

    def _extract_vector(self, data: Any) -> Any:
        return data["data"][0]["embedding"]
