"""RAG pipeline data models for the knowledge base.

Defines Pydantic v2 models for each hop of the pipeline:

    ExtractedText  -- output of the text extractor (flat text + per-page text)
    Chunk          -- output of a chunking strategy, not yet embedded
    StoredChunk    -- a vector-store record: content + embedding + metadata
    SearchResult   -- one ranked hit returned by a similarity search
    IngestionResult / DocumentMetadata -- summary returned by ``ingest``

Chunk ids are deterministic (``{doc_id}_{type_tag}_{index}``) so that
re-ingesting a document overwrites its previous records instead of
duplicating them.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from kb_pipeline.models.document import FileType

ChunkType = Literal["text", "image"]

# id tag per chunk type, e.g. "doc_1a2b_chunk_3" / "doc_1a2b_img_0"
CHUNK_ID_TAGS: dict[str, str] = {"text": "chunk", "image": "img"}


def make_chunk_id(doc_id: str, chunk_type: str, index: int) -> str:
    """Build the deterministic vector-store id for a chunk."""
    return f"{doc_id}_{CHUNK_ID_TAGS.get(chunk_type, chunk_type)}_{index}"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
class PageText(BaseModel):
    """Raw text of one PDF page (1-based ``page``)."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(ge=1)
    text: str


class ExtractedText(BaseModel):
    """Text pulled out of an uploaded file.

    ``page_texts`` is empty for Markdown; for PDFs it has one entry per page
    in page order, including blank pages, so page attribution stays exact.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    num_pages: int = Field(default=0, ge=0)
    page_texts: list[PageText] = Field(default_factory=list)
    info: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A retrieval unit produced by a chunking strategy, before embedding.

    The envelope fields (``doc_id``, ``source``, ``num_pages``,
    ``file_type``) are attached after chunking and ``application`` is
    stamped by the orchestrator, hence the ``model_copy(update=...)``
    calls upstream rather than mutation.
    """

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    content: str
    token_count: int = Field(default=0, ge=0)
    page_number: int | None = None
    start_page: int | None = None
    end_page: int | None = None
    header: str | None = None
    section_index: int | None = None
    # --- envelope ---
    doc_id: str = ""
    application: str = ""
    source: str = ""
    num_pages: int = 0
    file_type: FileType | None = None
    # --- image chunks only ---
    image_path: str | None = None
    image_filename: str | None = None


class ChunkMetadata(BaseModel):
    """Metadata stored alongside each embedding."""

    model_config = ConfigDict(frozen=True)

    type: ChunkType = "text"
    doc_id: str
    chunk_index: int = 0
    token_count: int = 0
    source: str = ""
    num_pages: int = 0
    application: str = ""
    page_number: int | None = None
    start_page: int | None = None
    end_page: int | None = None
    header: str | None = None
    section_index: int | None = None
    file_type: FileType | None = None
    image_path: str | None = None
    image_filename: str | None = None


class StoredChunk(BaseModel):
    """One record of the vector store."""

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    embedding: list[float]
    metadata: ChunkMetadata


class VectorStoreSnapshot(BaseModel):
    """The whole persisted vector store: every record plus the last-used
    embedding provider and model."""

    chunks: list[StoredChunk] = Field(default_factory=list)
    provider: str | None = None
    model: str | None = None


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------
class SearchResult(BaseModel):
    """A ranked hit from :meth:`IVectorStoreProvider.search`.

    ``similarity`` is the raw cosine similarity (range -1..1, 0 for a
    dimension mismatch); ``distance`` is ``1 - similarity``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    content: str
    metadata: ChunkMetadata
    similarity: float
    distance: float


class VectorStoreStats(BaseModel):
    """Introspection snapshot returned by ``get_stats``.

    ``provider_drift`` is ``True`` when the currently configured embedding
    provider/model differs from the one recorded with the stored vectors;
    searches then compare vectors from different models and quality
    degrades until the documents are re-ingested.
    """

    model_config = ConfigDict(frozen=True)

    collection_name: str = "file_based_store"
    total_chunks: int = 0
    embedding_provider: str | None = None
    embedding_model: str | None = None
    stored_provider: str | None = None
    stored_model: str | None = None
    provider_drift: bool = False
    dimensions: dict[int, int] = Field(
        default_factory=dict,
        description="Number of stored vectors per embedding length.",
    )


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------
class DocumentMetadata(BaseModel):
    """Per-document ingestion summary."""

    model_config = ConfigDict(frozen=True)

    doc_id: str
    filename: str
    file_type: FileType
    num_pages: int = 0
    total_chunks: int = 0
    total_tokens: int = 0
    extracted_text_length: int = 0
    info: dict[str, Any] = Field(default_factory=dict)


class IngestionResult(BaseModel):
    """Return value of :meth:`IngestionService.ingest`."""

    model_config = ConfigDict(frozen=True)

    chunks: list[Chunk] = Field(default_factory=list)
    metadata: DocumentMetadata


class DescribedImage(BaseModel):
    """An extracted document image plus its vision-model description.

    Input to :meth:`JsonVectorStore.add_image_chunks`; the description is
    the text that gets embedded.
    """

    model_config = ConfigDict(frozen=True)

    description: str
    image_path: str
    image_filename: str
    page_number: int | None = None


class KnowledgeBaseStats(BaseModel):
    """Vector-store statistics plus the number of known documents."""

    model_config = ConfigDict(frozen=True)

    vector_store: VectorStoreStats
    document_count: int = 0
