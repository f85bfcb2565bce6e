"""Embedding provider adapters.

One concrete implementation of IEmbeddingProvider per provider name:

    openai       OpenAIEmbeddingProvider      (openai SDK)
    openrouter   OpenRouterEmbeddingProvider  (openai SDK, openrouter.ai base URL)
    cohere       CohereEmbeddingProvider      (REST POST /v1/embed)
    jina         JinaEmbeddingProvider        (REST POST /v1/embeddings)
    ollama       OllamaEmbeddingProvider      (local daemon, one request per text)

PROVIDER_CLASSES is the dispatch table used by the embedding gateway.  It
must cover every EmbeddingProviderName member; a new provider needs an enum
member, a catalog entry and an adapter registered here.
"""

from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.models.embedding import EmbeddingProviderName
from kb_pipeline.providers.embedding.cohere_embedding_provider import CohereEmbeddingProvider
from kb_pipeline.providers.embedding.jina_embedding_provider import JinaEmbeddingProvider
from kb_pipeline.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from kb_pipeline.providers.embedding.openai_embedding_provider import (
    OpenAIEmbeddingProvider,
    OpenRouterEmbeddingProvider,
)

PROVIDER_CLASSES: dict[EmbeddingProviderName, type[IEmbeddingProvider]] = {
    EmbeddingProviderName.OPENAI: OpenAIEmbeddingProvider,
    EmbeddingProviderName.OPENROUTER: OpenRouterEmbeddingProvider,
    EmbeddingProviderName.COHERE: CohereEmbeddingProvider,
    EmbeddingProviderName.JINA: JinaEmbeddingProvider,
    EmbeddingProviderName.OLLAMA: OllamaEmbeddingProvider,
}

_missing = set(EmbeddingProviderName) - set(PROVIDER_CLASSES)
if _missing:
    raise RuntimeError(f"No embedding adapter registered for: {sorted(m.value for m in _missing)}")

__all__ = [
    "PROVIDER_CLASSES",
    "CohereEmbeddingProvider",
    "JinaEmbeddingProvider",
    "OllamaEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "OpenRouterEmbeddingProvider",
]
