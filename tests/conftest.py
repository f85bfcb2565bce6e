"""Shared pytest fixtures for the knowledge-base pipeline test suite."""

from __future__ import annotations

import hashlib
import math
import re
from pathlib import Path
from typing import Callable

import fitz
import pytest

from kb_pipeline.config.settings import Settings
from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.models.embedding import PROVIDER_CATALOG, EmbeddingProviderName
from kb_pipeline.providers.cache.render_cache import RenderCache
from kb_pipeline.providers.metadata import InMemoryDocumentStore, InMemorySettingsStore
from kb_pipeline.providers.vector_store.json_vector_store import JsonVectorStore
from kb_pipeline.services.document_files import DocumentFileStore
from kb_pipeline.services.embedding_gateway import EmbeddingGateway
from kb_pipeline.services.ingestion.ingestion_service import IngestionService
from kb_pipeline.services.ingestion.text_extractor import TextExtractor
from kb_pipeline.services.page_renderer import PageRenderer

_WORD = re.compile(r"[a-z0-9]+")

# ---------------------------------------------------------------------------
# Fake embedding backend
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic bag-of-words embeddings; no network.

    The vector length follows the catalog dimension of the configured model
    (16 when the model is unknown), so switching models changes the
    embedding space the same way a real provider switch does.
    """

    calls: list[list[str]] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        FakeEmbeddingProvider.calls.append(list(texts))
        info = PROVIDER_CATALOG[self.config.provider]
        dim = info.dimensions.get(self.config.model) or 16
        return [_bag_of_words(text, dim) for text in texts]


def _bag_of_words(text: str, dim: int) -> list[float]:
    vector = [0.0] * dim
    for word in _WORD.findall(text.lower()):
        bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % dim
        vector[bucket] += 1.0
    if not any(vector):
        vector[0] = 1e-3
    return vector


FAKE_PROVIDER_CLASSES = {name: FakeEmbeddingProvider for name in EmbeddingProviderName}


def fake_decrypt(ciphertext: str) -> str | None:
    """Accepts ``enc:<plaintext>``; anything else fails closed."""
    if ciphertext.startswith("enc:"):
        return ciphertext[len("enc:") :]
    return None


@pytest.fixture(autouse=True)
def _reset_fake_calls() -> None:
    FakeEmbeddingProvider.calls = []


# ---------------------------------------------------------------------------
# PDF / Markdown builders
# ---------------------------------------------------------------------------


def make_pdf(path: Path, pages: list[str]) -> Path:
    """Write a PDF with one page per entry of *pages* ("" = blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page(width=612, height=792)
        if text:
            page.insert_textbox(fitz.Rect(72, 72, 540, 720), text, fontsize=11)
    doc.save(str(path))
    doc.close()
    return path


PAGE_ONE = (
    "To reset your VPN password open the self service portal and choose "
    "Forgot password. Enter your employee number."
)
PAGE_THREE = (
    "If the printer shows error E42 power it off, remove the toner cartridge, "
    "wait ten seconds and reinsert it before powering on."
)


@pytest.fixture
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    counter = {"n": 0}

    def _factory(pages: list[str], name: str | None = None) -> Path:
        counter["n"] += 1
        return make_pdf(tmp_path / (name or f"upload_{counter['n']}.pdf"), pages)

    return _factory


@pytest.fixture
def three_page_pdf(pdf_factory: Callable[..., Path]) -> Path:
    """Page 1 and 3 carry text, page 2 is blank."""
    return pdf_factory([PAGE_ONE, "", PAGE_THREE], name="guide.pdf")


# ---------------------------------------------------------------------------
# Wired components
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        openai_api_key="sk-env-openai",
        openrouter_api_key="",
        cohere_api_key="",
        jina_api_key="",
        pdftoppm_path="kb-pipeline-missing-pdftoppm",
        app_env="test",
    )


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    return InMemorySettingsStore({"embedding_provider": "openai"})


@pytest.fixture
def gateway(settings_store: InMemorySettingsStore, settings: Settings) -> EmbeddingGateway:
    return EmbeddingGateway(
        settings_store=settings_store,
        decrypt=fake_decrypt,
        settings=settings,
        provider_classes=FAKE_PROVIDER_CLASSES,
    )


@pytest.fixture
def vector_store(settings: Settings, gateway: EmbeddingGateway) -> JsonVectorStore:
    return JsonVectorStore(settings.resolved_vector_store_path(), gateway)


@pytest.fixture
def file_store(settings: Settings) -> DocumentFileStore:
    return DocumentFileStore(settings.resolved_documents_dir(), settings.resolved_images_dir())


@pytest.fixture
def render_cache() -> RenderCache:
    return RenderCache(max_size=50, ttl=3600)


@pytest.fixture
def renderer(
    file_store: DocumentFileStore, render_cache: RenderCache, settings: Settings
) -> PageRenderer:
    return PageRenderer(file_store, render_cache, settings)


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def ingestion_service(
    vector_store: JsonVectorStore,
    file_store: DocumentFileStore,
    document_store: InMemoryDocumentStore,
    renderer: PageRenderer,
    settings: Settings,
    gateway: EmbeddingGateway,
) -> IngestionService:
    return IngestionService(
        extractor=TextExtractor(),
        vector_store=vector_store,
        file_store=file_store,
        document_store=document_store,
        renderer=renderer,
        settings=settings,
        gateway=gateway,
    )


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0
