"""OpenAI and OpenRouter embedding provider adapters.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
OpenRouter exposes an OpenAI-compatible ``/embeddings`` endpoint, so the
same SDK is used with a different ``base_url`` and model namespace
(``openai/text-embedding-3-small``).
"""

from __future__ import annotations

import httpx
import openai
import structlog

from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.models.embedding import EmbeddingConfig
from kb_pipeline.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by the OpenAI embeddings API.

    The whole input list goes out in a single ``embeddings.create`` call;
    splitting oversized batches is the caller's job.
    """

    _base_url: str | None = None
    _label = "OpenAI"

    def __init__(
        self,
        config: EmbeddingConfig,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config, timeout, http_client)
        client_kwargs: dict = {"api_key": config.api_key, "timeout": timeout}
        if self._base_url:
            client_kwargs["base_url"] = self._base_url
        if http_client is not None:
            client_kwargs["http_client"] = http_client
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(
                input=texts,
                model=self._config.model,
            )
        except openai.APIError as exc:
            # APIError.body holds the decoded upstream error payload.
            body = getattr(exc, "body", None)
            raise ProviderError(
                message=f"{self._label} API error: {body if body is not None else exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "openai_embedding_batch",
            provider=self.get_provider_name(),
            model=self._config.model,
            batch_size=len(texts),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return [item.embedding for item in response.data]


class OpenRouterEmbeddingProvider(OpenAIEmbeddingProvider):
    """OpenAI SDK pointed at OpenRouter's OpenAI-compatible endpoint."""

    _base_url = OPENROUTER_BASE_URL
    _label = "OpenRouter"
