"""In-memory document metadata store.

Dict-backed implementation of :class:`IDocumentStore` used by the test
suite and by local runs without the external spreadsheet store.  Not shared
across processes.
"""

from __future__ import annotations

from typing import Any

import structlog

from kb_pipeline.interfaces.document_store import IDocumentStore
from kb_pipeline.models.document import Document

logger = structlog.get_logger(logger_name=__name__)


class InMemoryDocumentStore(IDocumentStore):
    """Keeps :class:`Document` rows in insertion order."""

    def __init__(self) -> None:
        self._documents: dict[str, Document] = {}

    async def add_document(self, document: Document) -> Document:
        self._documents[document.doc_id] = document
        logger.debug("document_added", doc_id=document.doc_id)
        return document

    async def get_document(self, doc_id: str) -> Document | None:
        return self._documents.get(doc_id)

    async def get_all_documents(self) -> list[Document]:
        return list(self._documents.values())

    async def update_document(self, doc_id: str, updates: dict[str, Any]) -> Document | None:
        current = self._documents.get(doc_id)
        if current is None:
            return None
        updated = current.model_copy(update=updates)
        self._documents[doc_id] = updated
        logger.debug("document_updated", doc_id=doc_id, fields=sorted(updates))
        return updated

    async def delete_document(self, doc_id: str) -> bool:
        removed = self._documents.pop(doc_id, None)
        return removed is not None
