"""Knowledge-base domain models -- re-exports all public model classes.

    - document.py  -- uploaded documents and deletion summaries
    - embedding.py -- provider catalog, resolved embedding configuration
    - rag.py       -- extracted text, chunks, vector records, search results
    - render.py    -- rendered page outcomes
"""

from __future__ import annotations

from kb_pipeline.models.document import (
    DeletionResult,
    Document,
    DocumentStatus,
    FileType,
)
from kb_pipeline.models.embedding import (
    PROVIDER_CATALOG,
    ConnectionTestResult,
    EmbeddingConfig,
    EmbeddingProviderName,
    KeySource,
    ProviderInfo,
)
from kb_pipeline.models.rag import (
    Chunk,
    ChunkMetadata,
    DescribedImage,
    DocumentMetadata,
    ExtractedText,
    IngestionResult,
    KnowledgeBaseStats,
    PageText,
    SearchResult,
    StoredChunk,
    VectorStoreSnapshot,
    VectorStoreStats,
    make_chunk_id,
)
from kb_pipeline.models.render import RenderOutcome, RenderPath

__all__ = [
    "PROVIDER_CATALOG",
    "Chunk",
    "ChunkMetadata",
    "ConnectionTestResult",
    "DeletionResult",
    "DescribedImage",
    "Document",
    "DocumentMetadata",
    "DocumentStatus",
    "EmbeddingConfig",
    "EmbeddingProviderName",
    "ExtractedText",
    "FileType",
    "IngestionResult",
    "KeySource",
    "KnowledgeBaseStats",
    "PageText",
    "ProviderInfo",
    "RenderOutcome",
    "RenderPath",
    "SearchResult",
    "StoredChunk",
    "VectorStoreSnapshot",
    "VectorStoreStats",
    "make_chunk_id",
]
