"""Abstract base class for the document-metadata store.

The production system keeps document rows in an external store (a
spreadsheet behind an API); the pipeline only needs these five operations.
:class:`~kb_pipeline.providers.metadata.InMemoryDocumentStore` is the
bundled implementation for tests and local runs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from kb_pipeline.models.document import Document


class IDocumentStore(ABC):
    """Contract for document metadata persistence."""

    @abstractmethod
    async def add_document(self, document: Document) -> Document:
        """Insert a new document row."""

    @abstractmethod
    async def get_document(self, doc_id: str) -> Document | None:
        """Return the document or ``None`` if unknown."""

    @abstractmethod
    async def get_all_documents(self) -> list[Document]:
        """Return every document row."""

    @abstractmethod
    async def update_document(self, doc_id: str, updates: dict[str, Any]) -> Document | None:
        """Apply a partial update; returns the new row or ``None`` if unknown."""

    @abstractmethod
    async def delete_document(self, doc_id: str) -> bool:
        """Delete the row; returns ``False`` if it did not exist."""
