"""Embedding provider catalog and resolved configuration models.

The set of embedding providers is closed: :class:`EmbeddingProviderName`
enumerates all five, and every member has exactly one catalog entry and one
adapter class (see ``kb_pipeline.providers.embedding.PROVIDER_CLASSES``).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingProviderName(str, Enum):
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    COHERE = "cohere"
    JINA = "jina"
    OLLAMA = "ollama"


class KeySource(str, Enum):
    """Which branch of the credential fallback chain produced the API key."""

    PRIMARY = "primary"  # decrypted from the settings store
    FALLBACK = "fallback"  # provider-specific environment variable
    NOT_REQUIRED = "not_required"  # local daemon, no key
    FAILED = "failed"  # nothing usable


class ProviderInfo(BaseModel):
    """Static description of one embedding provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    models: list[str]
    default_model: str
    dimensions: dict[str, int]
    requires_api_key: bool = True


PROVIDER_CATALOG: dict[EmbeddingProviderName, ProviderInfo] = {
    EmbeddingProviderName.OPENAI: ProviderInfo(
        name="OpenAI",
        models=["text-embedding-3-small", "text-embedding-3-large", "text-embedding-ada-002"],
        default_model="text-embedding-3-small",
        dimensions={
            "text-embedding-3-small": 1536,
            "text-embedding-3-large": 3072,
            "text-embedding-ada-002": 1536,
        },
    ),
    EmbeddingProviderName.OPENROUTER: ProviderInfo(
        name="OpenRouter",
        models=[
            "openai/text-embedding-3-small",
            "openai/text-embedding-3-large",
            "openai/text-embedding-ada-002",
        ],
        default_model="openai/text-embedding-3-small",
        dimensions={
            "openai/text-embedding-3-small": 1536,
            "openai/text-embedding-3-large": 3072,
            "openai/text-embedding-ada-002": 1536,
        },
    ),
    EmbeddingProviderName.COHERE: ProviderInfo(
        name="Cohere",
        models=["embed-english-v3.0", "embed-multilingual-v3.0", "embed-english-light-v3.0"],
        default_model="embed-english-v3.0",
        dimensions={
            "embed-english-v3.0": 1024,
            "embed-multilingual-v3.0": 1024,
            "embed-english-light-v3.0": 384,
        },
    ),
    EmbeddingProviderName.JINA: ProviderInfo(
        name="Jina AI",
        models=["jina-embeddings-v2-base-en", "jina-embeddings-v2-small-en"],
        default_model="jina-embeddings-v2-base-en",
        dimensions={"jina-embeddings-v2-base-en": 768, "jina-embeddings-v2-small-en": 512},
    ),
    EmbeddingProviderName.OLLAMA: ProviderInfo(
        name="Ollama (Local)",
        models=["nomic-embed-text", "all-minilm", "mxbai-embed-large"],
        default_model="nomic-embed-text",
        dimensions={"nomic-embed-text": 768, "all-minilm": 384, "mxbai-embed-large": 1024},
        requires_api_key=False,
    ),
}


class EmbeddingConfig(BaseModel):
    """One fully resolved embedding configuration, computed per call.

    ``extra_params`` carries provider-specific values such as the Ollama
    base URL.  ``api_key`` is never logged.
    """

    model_config = ConfigDict(frozen=True)

    provider: EmbeddingProviderName
    model: str
    api_key: str = Field(default="", repr=False)
    extra_params: dict[str, Any] = Field(default_factory=dict)
    key_source: KeySource = KeySource.FAILED


class ConnectionTestResult(BaseModel):
    """Outcome of :meth:`EmbeddingGateway.test_connection`."""

    model_config = ConfigDict(frozen=True)

    success: bool
    provider: str | None = None
    model: str | None = None
    dimensions: int | None = None
    message: str = ""
    error: str | None = None
