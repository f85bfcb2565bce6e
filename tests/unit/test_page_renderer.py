"""Unit tests for PageRenderer: cache, pdftoppm route, PyMuPDF fallback, errors."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image

from kb_pipeline.config.settings import Settings
from kb_pipeline.models.render import RenderPath
from kb_pipeline.providers.cache.render_cache import RenderCache
from kb_pipeline.services.document_files import DocumentFileStore
from kb_pipeline.services.page_renderer import PageRenderer, cache_key
from kb_pipeline.utils.errors import NotFoundError, PageOutOfRangeError, RenderError
from tests.conftest import PAGE_ONE, PAGE_THREE, make_pdf

_PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def _png(width: int, height: int) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(out, format="PNG")
    return out.getvalue()


def _size(png: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(png)) as img:
        return img.size


@pytest.fixture
def stored_doc(file_store: DocumentFileStore, tmp_path: Path) -> str:
    pdf = make_pdf(tmp_path / "upload.pdf", [PAGE_ONE, "", PAGE_THREE])
    file_store.keep_pdf(pdf, "doc_render")
    return "doc_render"


class TestFallbackRendering:
    @pytest.mark.asyncio
    async def test_renders_png_with_pymupdf_when_pdftoppm_is_missing(
        self, renderer: PageRenderer, stored_doc: str
    ) -> None:
        outcome = await renderer.render_page_with_outcome(stored_doc, 1)

        assert outcome.path is RenderPath.FALLBACK
        assert outcome.image.startswith(_PNG_MAGIC)
        # 612x792 pt at 144 dpi
        assert _size(outcome.image) == (1224, 1584)

    @pytest.mark.asyncio
    async def test_output_is_downscaled_to_bounds(
        self,
        file_store: DocumentFileStore,
        settings: Settings,
        stored_doc: str,
    ) -> None:
        small = settings.model_copy(update={"render_max_width": 300, "render_max_height": 300})
        renderer = PageRenderer(file_store, RenderCache(), small)

        width, height = _size(await renderer.render_page(stored_doc, 3))

        assert width <= 300 and height <= 300
        assert height == 300


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_request_is_served_from_cache(
        self, renderer: PageRenderer, stored_doc: str
    ) -> None:
        first = await renderer.render_page_with_outcome(stored_doc, 1)
        second = await renderer.render_page_with_outcome(stored_doc, 1)

        assert second.path is RenderPath.CACHE
        assert second.image == first.image
        assert renderer.render_count == 1

    @pytest.mark.asyncio
    async def test_bounded_cache_evicts_oldest_page(
        self, file_store: DocumentFileStore, settings: Settings, stored_doc: str
    ) -> None:
        renderer = PageRenderer(file_store, RenderCache(max_size=2, ttl=3600), settings)
        for page in (1, 2, 3):
            await renderer.render_page(stored_doc, page)

        again = await renderer.render_page_with_outcome(stored_doc, 1)

        assert renderer.render_count == 4
        assert again.path is RenderPath.FALLBACK

    @pytest.mark.asyncio
    async def test_cache_key_format(
        self, renderer: PageRenderer, render_cache: RenderCache, stored_doc: str
    ) -> None:
        await renderer.render_page(stored_doc, 3)
        assert cache_key(stored_doc, 3) == "doc_render_3"
        assert await render_cache.exists("doc_render_3")

    @pytest.mark.asyncio
    async def test_invalidate_drops_all_pages(
        self, renderer: PageRenderer, render_cache: RenderCache, stored_doc: str
    ) -> None:
        await renderer.render_page(stored_doc, 1)
        await renderer.render_page(stored_doc, 2)
        await render_cache.set("doc_other_1", b"keep")

        assert await renderer.invalidate(stored_doc) == 2
        assert len(render_cache) == 1

        await renderer.render_page(stored_doc, 1)
        assert renderer.render_count == 3


class TestPrimaryRendering:
    @pytest.mark.asyncio
    async def test_pdftoppm_output_is_used_when_available(
        self, renderer: PageRenderer, stored_doc: str
    ) -> None:
        with patch(
            "kb_pipeline.services.page_renderer.shutil.which", return_value="/usr/bin/pdftoppm"
        ), patch.object(
            renderer, "_render_with_pdftoppm", AsyncMock(return_value=_png(400, 500))
        ) as mock_pdftoppm:
            outcome = await renderer.render_page_with_outcome(stored_doc, 2)

        assert outcome.path is RenderPath.PRIMARY
        assert _size(outcome.image) == (400, 500)
        mock_pdftoppm.assert_awaited_once()
        assert mock_pdftoppm.await_args.args[2] == 2

    @pytest.mark.asyncio
    async def test_pdftoppm_failure_falls_back(
        self, renderer: PageRenderer, stored_doc: str
    ) -> None:
        with patch(
            "kb_pipeline.services.page_renderer.shutil.which", return_value="/usr/bin/pdftoppm"
        ), patch.object(
            renderer,
            "_render_with_pdftoppm",
            AsyncMock(side_effect=RenderError(message="pdftoppm exited with 99")),
        ):
            outcome = await renderer.render_page_with_outcome(stored_doc, 1)

        assert outcome.path is RenderPath.FALLBACK
        assert outcome.image.startswith(_PNG_MAGIC)

    @pytest.mark.asyncio
    async def test_empty_pdftoppm_output_falls_back(
        self, renderer: PageRenderer, stored_doc: str
    ) -> None:
        with patch(
            "kb_pipeline.services.page_renderer.shutil.which", return_value="/usr/bin/pdftoppm"
        ), patch.object(renderer, "_render_with_pdftoppm", AsyncMock(return_value=b"")):
            outcome = await renderer.render_page_with_outcome(stored_doc, 1)

        assert outcome.path is RenderPath.FALLBACK


class TestErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("page", [0, 4, -1])
    async def test_out_of_range_page(
        self, renderer: PageRenderer, stored_doc: str, page: int
    ) -> None:
        with pytest.raises(PageOutOfRangeError, match=r"out of range \(1-3\)") as exc_info:
            await renderer.render_page(stored_doc, page)
        assert exc_info.value.client_error is True
        assert renderer.render_count == 0

    @pytest.mark.asyncio
    async def test_unknown_document(self, renderer: PageRenderer) -> None:
        with pytest.raises(NotFoundError):
            await renderer.render_page("doc_missing", 1)

    @pytest.mark.asyncio
    async def test_both_renderers_failing_raises_server_error(
        self, renderer: PageRenderer, stored_doc: str
    ) -> None:
        with patch.object(
            renderer,
            "_render_with_pymupdf",
            side_effect=RenderError(message="PyMuPDF render failed", provider_name="pymupdf"),
        ):
            with pytest.raises(RenderError, match="Failed to render page 1") as exc_info:
                await renderer.render_page(stored_doc, 1)

        assert exc_info.value.client_error is False
        assert renderer.render_count == 0
