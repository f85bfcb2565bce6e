"""Knowledge-base pipeline FastAPI application entry point.

Wires providers, services and routes together once per application via
dependency injection: everything the routes need is placed on
``app.state`` by :func:`create_app`.  :func:`build_services` is also usable
on its own for scripts that ingest or search without the web server.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from kb_pipeline.api.middleware import ErrorHandlingMiddleware, RequestLoggingMiddleware
from kb_pipeline.api.routes import router as documents_router
from kb_pipeline.config.settings import Settings
from kb_pipeline.interfaces.document_store import IDocumentStore
from kb_pipeline.interfaces.settings_store import ISettingsStore, SecretDecryptor
from kb_pipeline.providers.cache.render_cache import RenderCache
from kb_pipeline.providers.metadata import InMemoryDocumentStore, InMemorySettingsStore
from kb_pipeline.providers.vector_store.json_vector_store import JsonVectorStore
from kb_pipeline.services.document_files import DocumentFileStore
from kb_pipeline.services.embedding_gateway import EmbeddingGateway
from kb_pipeline.services.ingestion.ingestion_service import IngestionService
from kb_pipeline.services.ingestion.text_extractor import TextExtractor
from kb_pipeline.services.page_renderer import PageRenderer
from kb_pipeline.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

APP_VERSION = "0.1.0"


def _no_decrypt(ciphertext: str) -> str | None:
    """Fail-closed decryptor used when no secret key is wired in."""
    return None


# ---------------------------------------------------------------------------
# DI assembly
# ---------------------------------------------------------------------------


def build_services(
    app_settings: Settings,
    document_store: IDocumentStore | None = None,
    settings_store: ISettingsStore | None = None,
    decrypt: SecretDecryptor | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Construct every pipeline component from *app_settings*.

    The document store, settings store and decryptor are collaborators
    owned by the host application; in-memory stand-ins and a decryptor
    that always fails closed are used when none are given.
    """
    http_client = http_client or httpx.AsyncClient(timeout=app_settings.embedding_timeout)
    document_store = document_store or InMemoryDocumentStore()
    settings_store = settings_store or InMemorySettingsStore()

    gateway = EmbeddingGateway(
        settings_store=settings_store,
        decrypt=decrypt or _no_decrypt,
        settings=app_settings,
        http_client=http_client,
    )
    vector_store = JsonVectorStore(app_settings.resolved_vector_store_path(), gateway)
    file_store = DocumentFileStore(
        app_settings.resolved_documents_dir(),
        app_settings.resolved_images_dir(),
    )
    render_cache = RenderCache(
        max_size=app_settings.render_cache_size,
        ttl=app_settings.render_cache_ttl,
    )
    renderer = PageRenderer(file_store, render_cache, app_settings)
    ingestion_service = IngestionService(
        extractor=TextExtractor(),
        vector_store=vector_store,
        file_store=file_store,
        document_store=document_store,
        renderer=renderer,
        settings=app_settings,
        gateway=gateway,
    )

    return {
        "settings": app_settings,
        "http_client": http_client,
        "document_store": document_store,
        "settings_store": settings_store,
        "embedding_gateway": gateway,
        "vector_store": vector_store,
        "file_store": file_store,
        "render_cache": render_cache,
        "page_renderer": renderer,
        "ingestion_service": ingestion_service,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    app_settings: Settings = application.state.settings
    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=app_settings.app_env,
        data_dir=app_settings.data_dir,
    )

    yield

    http_client: httpx.AsyncClient = application.state.http_client
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    document_store: IDocumentStore | None = None,
    settings_store: ISettingsStore | None = None,
    decrypt: SecretDecryptor | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    application = FastAPI(
        title="Knowledge Base Pipeline API",
        version=APP_VERSION,
        description=(
            "Ingest PDF and Markdown support documents, search them semantically "
            "and render their pages on demand."
        ),
        lifespan=_lifespan,
    )

    components = build_services(
        app_settings,
        document_store=document_store,
        settings_store=settings_store,
        decrypt=decrypt,
        http_client=http_client,
    )
    for key, value in components.items():
        setattr(application.state, key, value)

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)

    application.include_router(documents_router)
    return application


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def run() -> None:
    """Serve the API with uvicorn (``kb-pipeline`` console script)."""
    app_settings = Settings()
    uvicorn.run(
        "kb_pipeline.main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        reload=(app_settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()
