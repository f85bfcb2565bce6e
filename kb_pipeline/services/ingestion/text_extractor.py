"""Text extraction for uploaded PDF and Markdown files.

PDFs are read with PyMuPDF (fitz).  Each page's text lines are walked in
layout order and a line break is inserted whenever the baseline of the next
line is more than :data:`LINE_BREAK_THRESHOLD` points away from the
previous one; lines sharing a baseline (table cells, multi-span headings)
are joined on one line.  This keeps the visual line structure that the
chunkers rely on for paragraph detection.

Markdown is returned verbatim; the header chunker does the structural work.
"""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF
import structlog

from kb_pipeline.models.document import FileType
from kb_pipeline.models.rag import ExtractedText, PageText
from kb_pipeline.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Vertical distance, in PDF points, that counts as a new line.
LINE_BREAK_THRESHOLD = 5.0


class TextExtractor:
    """Produces :class:`ExtractedText` from a file on disk."""

    def extract(self, file_path: str | Path, file_type: FileType | str) -> ExtractedText:
        """Extract the text of *file_path*.

        Parameters
        ----------
        file_path:
            Path of the uploaded file.
        file_type:
            ``FileType.PDF`` or ``FileType.MARKDOWN`` (or their string values).

        Returns
        -------
        ExtractedText
            Flat text plus per-page text for PDFs.

        Raises
        ------
        ExtractionError
            For an unsupported type or a missing, unreadable or corrupt file.
            No partial output is returned.
        """
        path = Path(file_path)
        try:
            resolved_type = FileType(file_type)
        except ValueError as exc:
            raise ExtractionError(
                message=f"Unsupported file type '{file_type}' for {path.name}"
            ) from exc

        if not path.is_file():
            raise ExtractionError(message=f"File not found: {path.name}")

        if resolved_type is FileType.PDF:
            return self._extract_pdf(path)
        return self._extract_markdown(path)

    # ------------------------------------------------------------------
    # PDF
    # ------------------------------------------------------------------

    def _extract_pdf(self, path: Path) -> ExtractedText:
        try:
            doc = fitz.open(path)
        except (fitz.FileDataError, RuntimeError, ValueError) as exc:
            logger.error("pdf_open_failed", file=path.name, error=str(exc))
            raise ExtractionError(message=f"Could not open PDF {path.name}: {exc}") from exc

        try:
            if doc.needs_pass:
                raise ExtractionError(message=f"PDF {path.name} is password protected")

            page_texts = [
                PageText(page=index + 1, text=self._page_text(page))
                for index, page in enumerate(doc)
            ]
            info = {k: v for k, v in (doc.metadata or {}).items() if v}
            num_pages = doc.page_count
        except RuntimeError as exc:
            logger.error("pdf_extract_failed", file=path.name, error=str(exc))
            raise ExtractionError(message=f"Could not read PDF {path.name}: {exc}") from exc
        finally:
            doc.close()

        text = "\n\n".join(p.text for p in page_texts)
        logger.info(
            "pdf_text_extracted",
            file=path.name,
            num_pages=num_pages,
            text_length=len(text),
            empty_pages=sum(1 for p in page_texts if not p.text.strip()),
        )
        return ExtractedText(text=text, num_pages=num_pages, page_texts=page_texts, info=info)

    @staticmethod
    def _page_text(page: fitz.Page) -> str:
        """Rebuild one page's text from its lines using baseline positions."""
        parts: list[str] = []
        last_y: float | None = None

        layout = page.get_text("dict", sort=True)
        for block in layout.get("blocks", []):
            if block.get("type") != 0:  # image block
                continue
            for line in block.get("lines", []):
                spans = line.get("spans", [])
                line_text = "".join(span.get("text", "") for span in spans)
                if not line_text:
                    continue
                y = spans[0]["origin"][1] if spans else line["bbox"][3]
                if last_y is not None:
                    if abs(y - last_y) > LINE_BREAK_THRESHOLD:
                        parts.append("\n")
                    elif parts and not parts[-1].endswith(" ") and not line_text.startswith(" "):
                        parts.append(" ")
                parts.append(line_text)
                last_y = y

        return "".join(parts)

    # ------------------------------------------------------------------
    # Markdown
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_markdown(path: Path) -> ExtractedText:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("markdown_read_failed", file=path.name, error=str(exc))
            raise ExtractionError(message=f"Could not read {path.name}: {exc}") from exc

        logger.info("markdown_text_extracted", file=path.name, text_length=len(text))
        return ExtractedText(text=text)
