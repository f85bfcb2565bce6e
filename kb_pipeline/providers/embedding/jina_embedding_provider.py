"""Jina AI embedding provider adapter (REST).

Calls ``POST https://api.jina.ai/v1/embeddings``; the response mirrors the
OpenAI shape (``data[].embedding``).
"""

from __future__ import annotations

import structlog

from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.providers.embedding._http import post_json
from kb_pipeline.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

JINA_EMBED_URL = "https://api.jina.ai/v1/embeddings"


class JinaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by Jina AI's ``/v1/embeddings`` endpoint."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        data = await post_json(
            JINA_EMBED_URL,
            {"input": texts, "model": self._config.model},
            provider_name=self.get_provider_name(),
            label="Jina",
            headers={"Authorization": f"Bearer {self._config.api_key}"},
            timeout=self._timeout,
            client=self._http_client,
        )

        try:
            items = data["data"]
            # Jina may return items out of order; "index" pins each to its input.
            if all("index" in item for item in items):
                items = sorted(items, key=lambda item: item["index"])
            embeddings = [item["embedding"] for item in items]
        except (KeyError, TypeError) as exc:
            raise ProviderError(
                message=f"Jina API returned an unexpected payload: {str(data)[:500]}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("jina_embedding_batch", model=self._config.model, batch_size=len(texts))
        return embeddings
