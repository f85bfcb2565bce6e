"""Orchestrator for document ingestion, deletion and retrieval.

Upload path: **extract -> chunk -> stamp -> embed/store -> keep PDF -> record**.

    1. TextExtractor     -- PDF (per-page text) or Markdown (raw text)
    2. Chunking strategy -- one chunk per page (PDF) / per heading (Markdown)
    3. Stamp envelope    -- doc_id, application, source, num_pages, file_type
    4. Vector store      -- embeds all chunk contents in one gateway call
    5. DocumentFileStore -- keeps the PDF for on-demand page rendering
    6. Document store    -- add, or refresh counts on re-ingestion

The temporary upload is removed whether or not ingestion succeeds, and a
failed ingestion never writes a Document row.

Delete path runs in a fixed order with the metadata row removed last, so a
crash part-way leaves a Document that can be deleted again rather than
vectors nobody owns.

All collaborators are injected; blocking PyMuPDF and file-system work runs
through ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from kb_pipeline.config.settings import Settings
from kb_pipeline.models.document import DeletionResult, Document, DocumentStatus, FileType
from kb_pipeline.models.rag import (
    CHUNK_ID_TAGS,
    DescribedImage,
    DocumentMetadata,
    IngestionResult,
    KnowledgeBaseStats,
    SearchResult,
)
from kb_pipeline.services.ingestion.chunker import select_strategy
from kb_pipeline.utils.errors import (
    ConfigurationError,
    KnowledgeBaseError,
    NotFoundError,
    ProviderError,
    RenderError,
    ValidationError,
)

if TYPE_CHECKING:
    from kb_pipeline.interfaces.document_store import IDocumentStore
    from kb_pipeline.providers.vector_store.json_vector_store import JsonVectorStore
    from kb_pipeline.services.document_files import DocumentFileStore
    from kb_pipeline.services.embedding_gateway import EmbeddingGateway
    from kb_pipeline.services.ingestion.text_extractor import TextExtractor
    from kb_pipeline.services.page_renderer import PageRenderer

logger = structlog.get_logger(logger_name=__name__)

# Page images described per document when vision enrichment is on.
MAX_DESCRIBED_PAGES = 20


def validate_upload(filename: str, size: int, max_bytes: int) -> FileType:
    """Check an upload's extension and size before it is ingested.

    Returns the resolved :class:`FileType`.

    Raises
    ------
    ValidationError
        For an unsupported extension or a file larger than *max_bytes*.
    """
    file_type = FileType.from_filename(filename or "")
    if file_type is None:
        raise ValidationError(
            message=f"Unsupported file type: {filename}. Only PDF and Markdown files are allowed."
        )
    if size > max_bytes:
        raise ValidationError(
            message=f"File too large: {size} bytes (limit {max_bytes} bytes)"
        )
    return file_type


class IngestionService:
    """Coordinates extractor, chunkers, vector store, file store and metadata store.

    Parameters
    ----------
    extractor:
        Text extractor for PDF and Markdown.
    vector_store:
        Embedding-backed chunk store.
    file_store:
        Stored PDFs and extracted page images.
    document_store:
        Document metadata collaborator.
    renderer:
        Page renderer; its cache is invalidated on re-ingestion and deletion.
    settings:
        Chunking thresholds and upload limits.
    gateway:
        Embedding gateway, needed only for page-image descriptions.
    """

    def __init__(
        self,
        extractor: TextExtractor,
        vector_store: JsonVectorStore,
        file_store: DocumentFileStore,
        document_store: IDocumentStore,
        renderer: PageRenderer,
        settings: Settings | None = None,
        gateway: EmbeddingGateway | None = None,
    ) -> None:
        self._extractor = extractor
        self._vector_store = vector_store
        self._file_store = file_store
        self._document_store = document_store
        self._renderer = renderer
        self._settings = settings or Settings()
        self._gateway = gateway

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def validate_upload(self, filename: str, size: int) -> FileType:
        return validate_upload(filename, size, self._settings.max_upload_bytes)

    async def ingest(
        self,
        file_path: str | Path,
        doc_id: str,
        application: str,
        *,
        filename: str | None = None,
        title: str | None = None,
        file_type: FileType | None = None,
        describe_images: bool = False,
    ) -> IngestionResult:
        """Ingest the uploaded file at *file_path* under *doc_id*.

        Parameters
        ----------
        file_path:
            Temporary upload; deleted when this call returns or raises.
        doc_id:
            Identifier of the document.  Re-using a known id re-ingests it.
        application:
            Application tag stamped on every chunk.
        filename:
            Original upload name (defaults to the temp file's name).
        title:
            Display title (defaults to the filename stem).
        file_type:
            Overrides detection from the filename extension.
        describe_images:
            For PDFs, also describe page images with the vision model when
            one is configured.
        """
        path = Path(file_path)
        name = filename or path.name
        start = time.monotonic()

        try:
            resolved_type = file_type or FileType.from_filename(name)
            if resolved_type is None:
                raise ValidationError(message=f"Unsupported file type: {name}")
            file_size = await asyncio.to_thread(lambda: path.stat().st_size if path.is_file() else 0)

            extracted = await asyncio.to_thread(self._extractor.extract, path, resolved_type)

            strategy = select_strategy(resolved_type, self._settings)
            raw_chunks = strategy.chunk(extracted)
            num_pages = (
                extracted.num_pages if resolved_type is FileType.PDF else len(raw_chunks)
            )
            chunks = [
                c.model_copy(
                    update={
                        "doc_id": doc_id,
                        "application": application,
                        "source": name,
                        "num_pages": num_pages,
                        "file_type": resolved_type,
                    }
                )
                for c in raw_chunks
            ]

            existing = await self._document_store.get_document(doc_id)
            if chunks:
                # Re-ingestion drops every record of the old version, images included.
                await self._vector_store.add_chunks(
                    chunks, "text", replace_document=True, replace_types=tuple(CHUNK_ID_TAGS)
                )
            elif existing is not None:
                await self._vector_store.delete_document(doc_id)

            if resolved_type is FileType.PDF:
                await asyncio.to_thread(self._file_store.keep_pdf, path, doc_id)

            document = await self._record_document(
                existing,
                doc_id=doc_id,
                filename=name,
                title=title or Path(name).stem,
                application=application,
                file_type=resolved_type,
                chunk_count=len(chunks),
                file_size=file_size,
                num_pages=num_pages,
            )
        except KnowledgeBaseError as exc:
            logger.error(
                "ingestion_failed",
                doc_id=doc_id,
                filename=name,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise
        finally:
            await asyncio.to_thread(self._file_store.delete_file, path)

        metadata = DocumentMetadata(
            doc_id=doc_id,
            filename=name,
            file_type=resolved_type,
            num_pages=num_pages,
            total_chunks=len(chunks),
            total_tokens=sum(c.token_count for c in chunks),
            extracted_text_length=len(extracted.text),
            info=extracted.info,
        )
        logger.info(
            "ingestion_complete",
            doc_id=doc_id,
            filename=name,
            file_type=resolved_type.value,
            strategy=strategy.get_strategy_name(),
            num_pages=num_pages,
            chunks=len(chunks),
            tokens=metadata.total_tokens,
            reingested=existing is not None,
            elapsed_s=round(time.monotonic() - start, 2),
        )

        if describe_images and resolved_type is FileType.PDF and document.num_pages:
            await self._describe_pages_best_effort(doc_id)

        return IngestionResult(chunks=chunks, metadata=metadata)

    async def _record_document(
        self,
        existing: Document | None,
        *,
        doc_id: str,
        filename: str,
        title: str,
        application: str,
        file_type: FileType,
        chunk_count: int,
        file_size: int,
        num_pages: int,
    ) -> Document:
        upload_date = datetime.now(timezone.utc).isoformat()
        if existing is None:
            return await self._document_store.add_document(
                Document(
                    doc_id=doc_id,
                    filename=filename,
                    title=title,
                    application=application,
                    file_type=file_type,
                    upload_date=upload_date,
                    status=DocumentStatus.PROCESSED,
                    chunk_count=chunk_count,
                    file_size=file_size,
                    num_pages=num_pages,
                )
            )

        # Pages may have changed under the same doc_id; old page images go too.
        await self._renderer.invalidate(doc_id)
        await asyncio.to_thread(self._file_store.delete_document_images, doc_id)
        updated = await self._document_store.update_document(
            doc_id,
            {
                "filename": filename,
                "title": title,
                "application": application,
                "file_type": file_type,
                "upload_date": upload_date,
                "status": DocumentStatus.PROCESSED,
                "chunk_count": chunk_count,
                "image_count": 0,
                "file_size": file_size,
                "num_pages": num_pages,
            },
        )
        return updated or existing

    # ------------------------------------------------------------------
    # Page images
    # ------------------------------------------------------------------

    async def describe_pages(self, doc_id: str, max_pages: int = MAX_DESCRIBED_PAGES) -> int:
        """Render, save and describe the first *max_pages* pages of a PDF.

        Each description becomes an ``image`` chunk pointing at the saved
        PNG.  Pages whose description fails are skipped.  Returns the number
        of image chunks stored and records it as the document's
        ``image_count``.
        """
        document = await self.get_document(doc_id)
        if document.file_type is not FileType.PDF:
            raise ValidationError(message=f"Document {doc_id} has no pages to describe")
        if self._gateway is None:
            raise ConfigurationError(message="No embedding gateway available for image descriptions")

        images: list[DescribedImage] = []
        for page_number in range(1, min(document.num_pages, max_pages) + 1):
            png = await self._renderer.render_page(doc_id, page_number)
            image_path = await asyncio.to_thread(
                self._file_store.save_document_image, doc_id, page_number, png
            )
            try:
                description = await self._gateway.describe_image(png)
            except ProviderError as exc:
                logger.warning(
                    "page_description_failed", doc_id=doc_id, page=page_number, error=str(exc)
                )
                continue
            images.append(
                DescribedImage(
                    description=description,
                    image_path=str(image_path),
                    image_filename=image_path.name,
                    page_number=page_number,
                )
            )

        count = await self._vector_store.add_image_chunks(
            images,
            doc_id,
            application=document.application,
            source=document.filename,
            num_pages=document.num_pages,
            file_type=document.file_type,
        )
        await self._document_store.update_document(doc_id, {"image_count": count})
        logger.info("pages_described", doc_id=doc_id, images=count)
        return count

    async def _describe_pages_best_effort(self, doc_id: str) -> None:
        if self._gateway is None or not await self._gateway.vision_available():
            logger.debug("page_description_skipped", doc_id=doc_id, reason="no_vision_model")
            return
        try:
            await self.describe_pages(doc_id)
        except (ConfigurationError, ProviderError, RenderError) as exc:
            logger.warning("page_description_aborted", doc_id=doc_id, error=str(exc))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_document(self, doc_id: str) -> DeletionResult:
        """Purge a document: vectors, stored PDF, cached pages, images, then metadata.

        Raises
        ------
        NotFoundError
            If no metadata row exists for *doc_id*.
        """
        if await self._document_store.get_document(doc_id) is None:
            raise NotFoundError(message=f"Document not found: {doc_id}")

        vectors_removed = await self._vector_store.delete_document(doc_id)
        pdf_deleted = await asyncio.to_thread(self._file_store.delete_stored_pdf, doc_id)
        cached_removed = await self._renderer.invalidate(doc_id)
        images_removed = await asyncio.to_thread(self._file_store.delete_document_images, doc_id)
        await self._document_store.delete_document(doc_id)

        result = DeletionResult(
            doc_id=doc_id,
            vectors_removed=vectors_removed,
            pdf_deleted=pdf_deleted,
            cached_pages_removed=cached_removed,
            images_removed=images_removed,
        )
        logger.info("document_deleted", **result.model_dump())
        return result

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        limit: int = 5,
        application: str | None = None,
        doc_id: str | None = None,
    ) -> list[SearchResult]:
        return await self._vector_store.search(
            query, limit=limit, application=application, doc_id=doc_id
        )

    async def safe_search(
        self,
        query: str,
        limit: int = 5,
        application: str | None = None,
        doc_id: str | None = None,
    ) -> list[SearchResult]:
        """Like :meth:`search` but returns ``[]`` on any pipeline error.

        For callers (chat) where retrieved context is an enrichment and a
        misconfigured provider must not break the conversation.
        """
        try:
            return await self.search(query, limit=limit, application=application, doc_id=doc_id)
        except KnowledgeBaseError as exc:
            logger.warning("vector_search_degraded", error_type=type(exc).__name__, error=str(exc))
            return []

    async def render_page(self, doc_id: str, page_number: int) -> bytes:
        return await self._renderer.render_page(doc_id, page_number)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def list_documents(self) -> list[Document]:
        return await self._document_store.get_all_documents()

    async def get_document(self, doc_id: str) -> Document:
        document = await self._document_store.get_document(doc_id)
        if document is None:
            raise NotFoundError(message=f"Document not found: {doc_id}")
        return document

    async def stats(self) -> KnowledgeBaseStats:
        vector_stats = await self._vector_store.get_stats()
        documents = await self._document_store.get_all_documents()
        return KnowledgeBaseStats(vector_store=vector_stats, document_count=len(documents))
