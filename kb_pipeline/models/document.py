"""Document metadata models.

A :class:`Document` is one uploaded file.  Its ``doc_id`` is the join key
across the document store, the vector store (``metadata.doc_id`` on every
chunk), the stored source PDF (``{doc_id}.pdf``), the rendered-page cache
(``{doc_id}_{page}``) and extracted page images (``{doc_id}_*``).
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class FileType(str, Enum):
    """Supported upload formats."""

    PDF = "pdf"
    MARKDOWN = "markdown"

    @classmethod
    def from_filename(cls, filename: str) -> FileType | None:
        """Resolve the file type from an extension, or ``None`` if unsupported."""
        suffix = Path(filename).suffix.lower()
        if suffix == ".pdf":
            return cls.PDF
        if suffix in (".md", ".markdown"):
            return cls.MARKDOWN
        return None


class DocumentStatus(str, Enum):
    """Only processed documents are recorded; a failed ingestion writes no row."""

    PROCESSED = "processed"


class Document(BaseModel):
    """Metadata record for one uploaded document.

    ``num_pages`` is the page count for PDFs and the section count for
    Markdown documents.  ``image_count`` counts image chunks (page images
    described by a vision model); it is 0 for text-only ingestion.
    """

    model_config = ConfigDict(frozen=True)

    doc_id: str = Field(description="Opaque, stable document identifier.")
    filename: str = Field(description="Original upload filename.")
    title: str = Field(description="Human-readable title.")
    application: str = Field(description="Logical application tag used to scope search.")
    file_type: FileType
    upload_date: str = Field(description="ISO-8601 timestamp of the (last) ingestion.")
    status: DocumentStatus = DocumentStatus.PROCESSED
    chunk_count: int = Field(default=0, ge=0)
    image_count: int = Field(default=0, ge=0)
    file_size: int = Field(default=0, ge=0, description="Upload size in bytes.")
    num_pages: int = Field(default=0, ge=0)


class DeletionResult(BaseModel):
    """What was removed when a document was deleted."""

    model_config = ConfigDict(frozen=True)

    doc_id: str
    vectors_removed: int = 0
    pdf_deleted: bool = False
    cached_pages_removed: int = 0
    images_removed: int = 0
