"""Abstract interfaces for the pipeline's pluggable parts.

    Interface            ->  Implementations
    ---------------------------------------------------------------
    IEmbeddingProvider   ->  providers/embedding/* (one per provider)
    IVectorStoreProvider ->  JsonVectorStore
    ICacheProvider       ->  RenderCache
    IChunkingStrategy    ->  TokenWindowChunker, PageChunker, HeaderChunker
    IDocumentStore       ->  external store; InMemoryDocumentStore bundled
    ISettingsStore       ->  external store; InMemorySettingsStore bundled
"""

from kb_pipeline.interfaces.cache_provider import ICacheProvider
from kb_pipeline.interfaces.chunking_strategy import IChunkingStrategy
from kb_pipeline.interfaces.document_store import IDocumentStore
from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.interfaces.settings_store import ISettingsStore, SecretDecryptor
from kb_pipeline.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "ICacheProvider",
    "IChunkingStrategy",
    "IDocumentStore",
    "IEmbeddingProvider",
    "ISettingsStore",
    "IVectorStoreProvider",
    "SecretDecryptor",
]
