"""Cohere embedding provider adapter (REST).

Calls ``POST https://api.cohere.ai/v1/embed`` with ``input_type =
"search_document"``; the response carries one vector per input text under
``embeddings``.
"""

from __future__ import annotations

import structlog

from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.providers.embedding._http import post_json
from kb_pipeline.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

COHERE_EMBED_URL = "https://api.cohere.ai/v1/embed"


class CohereEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by Cohere's ``/v1/embed`` endpoint."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        data = await post_json(
            COHERE_EMBED_URL,
            {
                "texts": texts,
                "model": self._config.model,
                "input_type": "search_document",
            },
            provider_name=self.get_provider_name(),
            label="Cohere",
            headers={"Authorization": f"Bearer {self._config.api_key}"},
            timeout=self._timeout,
            client=self._http_client,
        )

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            raise ProviderError(
                message=f"Cohere API returned an unexpected payload: {str(data)[:500]}",
                provider_name=self.get_provider_name(),
            )

        logger.info("cohere_embedding_batch", model=self._config.model, batch_size=len(texts))
        return embeddings
