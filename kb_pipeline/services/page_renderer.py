"""On-demand rendering of stored PDF pages to PNG.

Rendering order for ``render_page(doc_id, page)``:

    1. Cache lookup under ``{doc_id}_{page}``.
    2. ``pdftoppm`` (poppler) run as an asyncio subprocess, when the binary
       is on PATH.
    3. PyMuPDF ``get_pixmap`` at the same DPI, in a worker thread.

Output of either renderer is downscaled with Pillow to fit the configured
bounds (never upscaled) and re-encoded as PNG.  Empty or undecodable output
counts as a failure of that renderer.  Only successful renders are cached.
"""

from __future__ import annotations

import asyncio
import io
import shutil
import tempfile
from pathlib import Path

import fitz  # PyMuPDF
import structlog
from PIL import Image

from kb_pipeline.config.settings import Settings
from kb_pipeline.interfaces.cache_provider import ICacheProvider
from kb_pipeline.models.render import RenderOutcome, RenderPath
from kb_pipeline.services.document_files import DocumentFileStore
from kb_pipeline.utils.errors import PageOutOfRangeError, RenderError

logger = structlog.get_logger(logger_name=__name__)

PNG_COMPRESS_LEVEL = 6


def cache_key(doc_id: str, page_number: int) -> str:
    return f"{doc_id}_{page_number}"


class PageRenderer:
    """Renders pages of stored PDFs with caching and a library fallback.

    Parameters
    ----------
    file_store:
        Locates the stored PDF for a ``doc_id``.
    cache:
        Rendered-page cache.
    settings:
        Supplies DPI, output bounds and the ``pdftoppm`` command.
    """

    def __init__(
        self,
        file_store: DocumentFileStore,
        cache: ICacheProvider,
        settings: Settings | None = None,
    ) -> None:
        self._file_store = file_store
        self._cache = cache
        self._settings = settings or Settings()
        self._render_count = 0

    @property
    def render_count(self) -> int:
        """Number of renders that did not come from the cache."""
        return self._render_count

    async def render_page(self, doc_id: str, page_number: int) -> bytes:
        """Return PNG bytes for the 1-based *page_number* of *doc_id*."""
        outcome = await self.render_page_with_outcome(doc_id, page_number)
        return outcome.image

    async def render_page_with_outcome(self, doc_id: str, page_number: int) -> RenderOutcome:
        """Render a page and report which route produced it.

        Raises
        ------
        NotFoundError
            If no PDF is stored for *doc_id*.
        PageOutOfRangeError
            If *page_number* is outside ``1..page_count``.
        RenderError
            If both renderers fail.
        """
        key = cache_key(doc_id, page_number)
        cached = await self._cache.get(key)
        if cached:
            return RenderOutcome(image=cached, path=RenderPath.CACHE)

        pdf_path = self._file_store.get_stored_pdf_path(doc_id)
        page_count = await asyncio.to_thread(self._page_count, pdf_path)
        if page_number < 1 or page_number > page_count:
            raise PageOutOfRangeError(
                message=f"Page {page_number} out of range (1-{page_count})"
            )

        image: bytes | None = None
        path = RenderPath.PRIMARY
        rasterizer = shutil.which(self._settings.pdftoppm_path)
        if rasterizer:
            try:
                raw = await self._render_with_pdftoppm(rasterizer, pdf_path, page_number)
                image = await asyncio.to_thread(self._postprocess, raw)
            except RenderError as exc:
                logger.warning(
                    "page_render_primary_failed",
                    doc_id=doc_id,
                    page=page_number,
                    error=str(exc),
                )
        else:
            logger.debug("pdftoppm_unavailable", command=self._settings.pdftoppm_path)

        if image is None:
            path = RenderPath.FALLBACK
            try:
                raw = await asyncio.to_thread(self._render_with_pymupdf, pdf_path, page_number)
                image = await asyncio.to_thread(self._postprocess, raw)
            except RenderError as exc:
                logger.error(
                    "page_render_failed",
                    doc_id=doc_id,
                    page=page_number,
                    error=str(exc),
                )
                raise RenderError(
                    message=f"Failed to render page {page_number} of {doc_id}: {exc.message}",
                    provider_name=exc.provider_name,
                ) from exc

        self._render_count += 1
        await self._cache.set(key, image)
        logger.info(
            "page_rendered",
            doc_id=doc_id,
            page=page_number,
            path=path.value,
            size_bytes=len(image),
        )
        return RenderOutcome(image=image, path=path)

    async def invalidate(self, doc_id: str) -> int:
        """Drop every cached page of *doc_id*; returns the number removed."""
        return await self._cache.delete_prefix(f"{doc_id}_")

    # ------------------------------------------------------------------
    # Renderers
    # ------------------------------------------------------------------

    @staticmethod
    def _page_count(pdf_path: Path) -> int:
        try:
            with fitz.open(pdf_path) as doc:
                return doc.page_count
        except (fitz.FileDataError, RuntimeError) as exc:
            raise RenderError(
                message=f"Stored PDF {pdf_path.name} is unreadable: {exc}",
                provider_name="pymupdf",
            ) from exc

    async def _render_with_pdftoppm(
        self, rasterizer: str, pdf_path: Path, page_number: int
    ) -> bytes:
        with tempfile.TemporaryDirectory(prefix="kb_render_") as tmp_dir:
            output_root = Path(tmp_dir) / "page"
            proc = await asyncio.create_subprocess_exec(
                rasterizer,
                "-png",
                "-r", str(self._settings.render_dpi),
                "-f", str(page_number),
                "-l", str(page_number),
                "-singlefile",
                str(pdf_path),
                str(output_root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            _, stderr = await proc.communicate()

            if proc.returncode != 0:
                raise RenderError(
                    message=f"pdftoppm exited with {proc.returncode}: {stderr.decode(errors='replace')[:500]}",
                    provider_name="pdftoppm",
                )

            output_file = output_root.with_suffix(".png")
            if not output_file.is_file():
                raise RenderError(message="pdftoppm produced no output", provider_name="pdftoppm")
            return output_file.read_bytes()

    def _render_with_pymupdf(self, pdf_path: Path, page_number: int) -> bytes:
        scale = self._settings.render_dpi / 72
        try:
            with fitz.open(pdf_path) as doc:
                pix = doc[page_number - 1].get_pixmap(matrix=fitz.Matrix(scale, scale))
                return pix.tobytes("png")
        except (fitz.FileDataError, RuntimeError, ValueError) as exc:
            raise RenderError(message=f"PyMuPDF render failed: {exc}", provider_name="pymupdf") from exc

    def _postprocess(self, raw: bytes) -> bytes:
        """Downscale to fit the configured bounds and re-encode as PNG."""
        if not raw:
            raise RenderError(message="Renderer returned an empty image")
        try:
            with Image.open(io.BytesIO(raw)) as img:
                img.load()
                img.thumbnail(
                    (self._settings.render_max_width, self._settings.render_max_height),
                    Image.Resampling.LANCZOS,
                )
                out = io.BytesIO()
                img.save(out, format="PNG", compress_level=PNG_COMPRESS_LEVEL)
        except (OSError, Image.DecompressionBombError) as exc:
            raise RenderError(message=f"Rendered image could not be decoded: {exc}") from exc
        return out.getvalue()
