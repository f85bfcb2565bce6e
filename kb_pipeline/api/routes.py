"""FastAPI routes for knowledge-base documents.

# Endpoint                                      Method  Description
# ---------------------------------------------------------------------
# /api/v1/documents/upload                      POST    Upload + ingest a PDF/Markdown file
# /api/v1/documents/                            GET     List documents
# /api/v1/documents/{doc_id}                    GET     Document metadata
# /api/v1/documents/{doc_id}                    DELETE  Delete document and all artifacts
# /api/v1/documents/search                      POST    Semantic search
# /api/v1/documents/{doc_id}/pages/{page}       GET     Rendered page (PNG)
# /api/v1/documents/stats/summary               GET     Vector store + document stats
# /api/v1/documents/embeddings/providers        GET     Embedding provider catalog
# /api/v1/documents/embeddings/test             POST    Test embedding connection

Services are resolved from ``app.state`` (populated once in
``create_app``) through ``Annotated[..., Depends(...)]`` aliases.
Pipeline errors propagate to ErrorHandlingMiddleware, which picks the
status code.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from pathlib import Path
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Form, Request, Response, UploadFile

from kb_pipeline.api.schemas import (
    DeleteResponse,
    DocumentListResponse,
    EmbeddingTestRequest,
    ErrorResponse,
    ProvidersResponse,
    SearchRequest,
    SearchResponse,
    StatsResponse,
    UploadResponse,
)
from kb_pipeline.config.settings import Settings
from kb_pipeline.models.document import Document
from kb_pipeline.models.embedding import ConnectionTestResult
from kb_pipeline.services.embedding_gateway import EmbeddingGateway
from kb_pipeline.services.ingestion.ingestion_service import IngestionService
from kb_pipeline.utils.errors import ValidationError
from kb_pipeline.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])

# Uploads are read in 64 KB pieces so an oversized file is rejected early.
_UPLOAD_CHUNK_SIZE = 64 * 1024

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_gateway(request: Request) -> EmbeddingGateway:
    return request.app.state.embedding_gateway


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
GatewayDep = Annotated[EmbeddingGateway, Depends(_get_gateway)]
SettingsDep = Annotated[Settings, Depends(_get_settings)]


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses=_ERROR_RESPONSES,
    summary="Upload a PDF or Markdown document into the knowledge base",
)
async def upload_document(
    file: UploadFile,
    title: Annotated[str, Form(min_length=1)],
    application: Annotated[str, Form(min_length=1)],
    ingestion: IngestionDep,
    settings: SettingsDep,
    describe_images: Annotated[bool, Form()] = False,
) -> UploadResponse:
    filename = file.filename or ""
    ingestion.validate_upload(filename, 0)

    pieces: list[bytes] = []
    total_size = 0
    while True:
        piece = await file.read(_UPLOAD_CHUNK_SIZE)
        if not piece:
            break
        total_size += len(piece)
        if total_size > settings.max_upload_bytes:
            raise ValidationError(
                message=f"File too large. Maximum file size is {settings.max_upload_bytes} bytes."
            )
        pieces.append(piece)
    file_type = ingestion.validate_upload(filename, total_size)

    doc_id = f"doc_{uuid.uuid4().hex[:8]}"
    uploads_dir = settings.resolved_uploads_dir()
    temp_path = uploads_dir / f"{doc_id}-{int(time.time() * 1000)}{Path(filename).suffix.lower()}"

    def _write_upload() -> None:
        uploads_dir.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(b"".join(pieces))

    await asyncio.to_thread(_write_upload)
    _logger.info("document_upload_received", doc_id=doc_id, filename=filename, size=total_size)

    result = await ingestion.ingest(
        temp_path,
        doc_id,
        application,
        filename=filename,
        title=title,
        file_type=file_type,
        describe_images=describe_images,
    )
    document = await ingestion.get_document(doc_id)
    return UploadResponse(
        document=document,
        chunks=result.metadata.total_chunks,
        total_tokens=result.metadata.total_tokens,
        message=f"Document processed into {result.metadata.total_chunks} chunks",
    )


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


@router.get("/", response_model=DocumentListResponse, summary="List documents")
async def list_documents(ingestion: IngestionDep) -> DocumentListResponse:
    documents = await ingestion.list_documents()
    return DocumentListResponse(documents=documents, total=len(documents))


@router.get(
    "/stats/summary",
    response_model=StatsResponse,
    responses=_ERROR_RESPONSES,
    summary="Vector store and document statistics",
)
async def stats_summary(ingestion: IngestionDep) -> StatsResponse:
    stats = await ingestion.stats()
    return StatsResponse(document_count=stats.document_count, vector_store=stats.vector_store)


@router.get(
    "/embeddings/providers",
    response_model=ProvidersResponse,
    summary="List supported embedding providers",
)
async def embedding_providers(gateway: GatewayDep) -> ProvidersResponse:
    return ProvidersResponse(providers=gateway.available_providers())


@router.post(
    "/embeddings/test",
    response_model=ConnectionTestResult,
    summary="Embed a short test text with the current or overridden embedding settings",
)
async def test_embeddings(body: EmbeddingTestRequest, gateway: GatewayDep) -> ConnectionTestResult:
    return await gateway.test_connection(
        provider=body.provider,
        model=body.model,
        api_key=body.api_key,
        ollama_url=body.ollama_url,
    )


@router.get(
    "/{doc_id}",
    response_model=Document,
    responses=_ERROR_RESPONSES,
    summary="Get one document",
)
async def get_document(doc_id: str, ingestion: IngestionDep) -> Document:
    return await ingestion.get_document(doc_id)


@router.delete(
    "/{doc_id}",
    response_model=DeleteResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a document with its vectors, stored PDF and images",
)
async def delete_document(doc_id: str, ingestion: IngestionDep) -> DeleteResponse:
    deletion = await ingestion.delete_document(doc_id)
    return DeleteResponse(deletion=deletion)


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------


@router.post(
    "/search",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Semantic search over document chunks",
)
async def search_documents(body: SearchRequest, ingestion: IngestionDep) -> SearchResponse:
    results = await ingestion.search(
        body.query,
        limit=body.limit,
        application=body.application,
        doc_id=body.doc_id,
    )
    return SearchResponse(query=body.query, results=results, count=len(results))


@router.get(
    "/{doc_id}/pages/{page_number}",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}, **_ERROR_RESPONSES},
    summary="Render one page of a stored PDF as PNG",
)
async def get_page_image(doc_id: str, page_number: int, ingestion: IngestionDep) -> Response:
    image = await ingestion.render_page(doc_id, page_number)
    return Response(
        content=image,
        media_type="image/png",
        headers={"Cache-Control": "private, max-age=3600"},
    )
