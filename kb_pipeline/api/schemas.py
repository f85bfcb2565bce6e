"""Pydantic request/response schemas for the knowledge-base API.

Request schemas end with "Request", response schemas with "Response".
Domain models (Document, SearchResult, VectorStoreStats, ...) are embedded
directly rather than mirrored.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from kb_pipeline.models.document import DeletionResult, Document
from kb_pipeline.models.embedding import ProviderInfo
from kb_pipeline.models.rag import SearchResult, VectorStoreStats


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


class UploadResponse(BaseModel):
    """Returned after a document was ingested."""

    success: bool = True
    document: Document
    chunks: int = Field(ge=0, description="Text chunks stored for the document.")
    total_tokens: int = Field(default=0, ge=0)
    message: str


class DocumentListResponse(BaseModel):
    documents: list[Document] = Field(default_factory=list)
    total: int = 0


class DeleteResponse(BaseModel):
    success: bool = True
    deletion: DeletionResult


class SearchRequest(BaseModel):
    """Semantic search over stored chunks."""

    query: str = Field(..., min_length=1, max_length=2000)
    limit: int = Field(default=5, ge=1, le=50)
    application: str | None = None
    doc_id: str | None = None


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResult] = Field(default_factory=list)
    count: int = 0


class StatsResponse(BaseModel):
    document_count: int = 0
    vector_store: VectorStoreStats


class ProvidersResponse(BaseModel):
    """Embedding provider catalog."""

    providers: dict[str, ProviderInfo]


class EmbeddingTestRequest(BaseModel):
    """Optional overrides for an embedding connection test."""

    provider: str | None = None
    model: str | None = None
    api_key: str | None = Field(default=None, repr=False)
    ollama_url: str | None = None
