"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  One
concrete adapter exists per member of
:class:`~kb_pipeline.models.embedding.EmbeddingProviderName`; the adapters
differ wildly in calling convention (managed SDK, REST POST/JSON, a local
daemon called once per text) but look identical behind this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from kb_pipeline.models.embedding import EmbeddingConfig

if TYPE_CHECKING:
    import httpx


# Concrete implementations (kb_pipeline/providers/embedding/):
#   OpenAIEmbeddingProvider       openai SDK
#   OpenRouterEmbeddingProvider   openai SDK against openrouter.ai
#   CohereEmbeddingProvider       REST, batched
#   JinaEmbeddingProvider         REST, batched
#   OllamaEmbeddingProvider       local daemon, one request per text
class IEmbeddingProvider(ABC):
    """Contract for embedding backends used by the embedding gateway.

    Each instance is bound to one resolved :class:`EmbeddingConfig`; the
    gateway builds a fresh adapter per call so settings changes take effect
    immediately.  A shared ``http_client`` may be injected; adapters that
    receive none open a short-lived client per call.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._http_client = http_client

    @property
    def config(self) -> EmbeddingConfig:
        return self._config

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Provider batch-size limits
            are the caller's responsibility.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        kb_pipeline.utils.errors.ProviderError
            If the upstream call fails; the upstream error body is kept in
            the message.
        """

    def get_provider_name(self) -> str:
        return self._config.provider.value
