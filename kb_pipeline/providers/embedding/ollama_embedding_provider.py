"""Ollama embedding provider adapter (local daemon, free).

Talks to the native ``/api/embeddings`` endpoint, which accepts a single
``prompt`` per request, so a batch of N texts costs N sequential requests.
No API key is required; the base URL comes from
``EmbeddingConfig.extra_params["ollama_url"]``.
"""

from __future__ import annotations

import structlog

from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.providers.embedding._http import post_json
from kb_pipeline.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a local Ollama server."""

    @property
    def base_url(self) -> str:
        url = self._config.extra_params.get("ollama_url") or DEFAULT_OLLAMA_URL
        return str(url).rstrip("/")

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        url = f"{self.base_url}/api/embeddings"
        embeddings: list[list[float]] = []
        for text in texts:
            try:
                data = await post_json(
                    url,
                    {"model": self._config.model, "prompt": text},
                    provider_name=self.get_provider_name(),
                    label="Ollama",
                    timeout=self._timeout,
                    client=self._http_client,
                )
            except ProviderError as exc:
                raise ProviderError(
                    message=f"{exc.message}. Is Ollama running at {self.base_url}?",
                    provider_name=self.get_provider_name(),
                ) from exc

            vector = data.get("embedding") if isinstance(data, dict) else None
            if not isinstance(vector, list):
                raise ProviderError(
                    message=f"Ollama returned no embedding: {str(data)[:500]}",
                    provider_name=self.get_provider_name(),
                )
            embeddings.append(vector)

        logger.info("ollama_embedding_batch", model=self._config.model, batch_size=len(texts))
        return embeddings
