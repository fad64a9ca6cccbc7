"""Google Generative Language (Gemini) embedding provider."""

from typing import Any

from ..base import HTTPEmbedder

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiEmbedder(HTTPEmbedder):
    """Embeds text with the Gemini ``embedContent`` endpoint.

    Request: ``{"model": "models/<model>", "content": {"parts": [{"text": ...}]}}``
    Response: ``{"embedding": {"values": [...]}}``

    The API key travels in the ``x-goog-api-key`` header.
    """

    @property
    def url(self) -> str:
        base_url = (self.config.base_url or GEMINI_BASE_URL).rstrip("/")
        return f"{base_url}/models/{self.model}:embedContent"

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.config.api_key or ""}

    def _build_payload(self, text: str) -> dict[str, Any]:
        return {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text}]},
        }

    def _extract_vector(self, data: Any) -> Any:
        return data["embedding"]["values"]
