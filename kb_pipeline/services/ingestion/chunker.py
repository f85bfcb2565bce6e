"""Chunking strategies that turn extracted text into retrieval units.

Three strategies implement :class:`IChunkingStrategy`:

1. **TokenWindowChunker** -- greedily packs paragraphs into windows of
   ``chunk_size`` tokens (measured as ``chunk_size * 4`` characters).  When
   a window closes, the next one is seeded with the trailing words of the
   closed window totalling at least ``overlap * 4`` characters, so a
   sentence straddling the boundary is retrievable from both sides.

2. **PageChunker** -- one chunk per PDF page.  Pages whose cleaned text is
   shorter than ``min_chars`` (blank pages, scanned pages without a text
   layer) are skipped.  Page attribution is exact, which lets the UI open
   the cited page; the price is no overlap between pages.

3. **HeaderChunker** -- one chunk per Markdown heading section.  Text
   before the first heading becomes an ``Introduction`` section when it is
   long enough; a document with no headings is a single ``Document``
   section.

:func:`select_strategy` picks the default strategy for a file type.
"""

from __future__ import annotations

import re

import structlog

from kb_pipeline.config.settings import Settings
from kb_pipeline.interfaces.chunking_strategy import IChunkingStrategy
from kb_pipeline.models.document import FileType
from kb_pipeline.models.rag import Chunk, ExtractedText
from kb_pipeline.utils.text_normalizer import (
    CHARS_PER_TOKEN,
    clean_text,
    estimate_tokens,
    split_paragraphs,
)

logger = structlog.get_logger(logger_name=__name__)

_HEADING = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)

INTRODUCTION_HEADER = "Introduction"
DOCUMENT_HEADER = "Document"


class TokenWindowChunker(IChunkingStrategy):
    """Paragraph-packed windows with trailing-word overlap.

    Parameters
    ----------
    chunk_size:
        Target maximum tokens per chunk (default 500, i.e. 2000 chars).
    overlap:
        Minimum tokens carried into the next chunk (default 50).  ``0``
        disables overlap.
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 50) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if overlap < 0:
            raise ValueError("overlap must not be negative")
        self._target_chars = chunk_size * CHARS_PER_TOKEN
        self._overlap_chars = overlap * CHARS_PER_TOKEN

    def get_strategy_name(self) -> str:
        return "token_window"

    def chunk(self, extracted: ExtractedText) -> list[Chunk]:
        return [
            Chunk(index=i, content=text, token_count=estimate_tokens(text))
            for i, text in enumerate(self.split(extracted.text))
        ]

    def split(self, text: str) -> list[str]:
        """Return the chunk texts for *text* in order."""
        paragraphs = split_paragraphs(clean_text(text))
        if not paragraphs:
            return []

        windows: list[str] = []
        current = ""
        for paragraph in paragraphs:
            if current and len(current) + len(paragraph) > self._target_chars:
                windows.append(current.strip())
                seed = self._overlap_seed(windows[-1])
                current = seed + "\n\n" if seed else ""
            current += paragraph + "\n\n"

        if current.strip():
            windows.append(current.strip())
        return windows

    def _overlap_seed(self, closed: str) -> str:
        """Trailing words of *closed* totalling at least the overlap budget."""
        if self._overlap_chars == 0:
            return ""
        words = closed.split(" ")
        kept: list[str] = []
        length = 0
        for word in reversed(words):
            if length >= self._overlap_chars:
                break
            kept.insert(0, word)
            length += len(word) + 1
        return " ".join(kept)


class PageChunker(IChunkingStrategy):
    """One chunk per PDF page with enough text.

    Falls back to *fallback* over the flat text when the extraction has no
    per-page texts at all.
    """

    def __init__(self, min_chars: int = 50, fallback: IChunkingStrategy | None = None) -> None:
        self._min_chars = min_chars
        self._fallback = fallback or TokenWindowChunker()

    def get_strategy_name(self) -> str:
        return "page"

    def chunk(self, extracted: ExtractedText) -> list[Chunk]:
        if not extracted.page_texts:
            if extracted.text.strip():
                logger.info("page_chunker_fallback", reason="no_page_texts")
            return self._fallback.chunk(extracted)

        chunks: list[Chunk] = []
        skipped: list[int] = []
        for page in extracted.page_texts:
            text = clean_text(page.text)
            if len(text) < self._min_chars:
                skipped.append(page.page)
                continue
            chunks.append(
                Chunk(
                    index=len(chunks),
                    content=text,
                    token_count=estimate_tokens(text),
                    page_number=page.page,
                    start_page=page.page,
                    end_page=page.page,
                )
            )

        if skipped:
            logger.debug("pages_skipped", pages=skipped, min_chars=self._min_chars)
        return chunks


class HeaderChunker(IChunkingStrategy):
    """One chunk per Markdown heading section."""

    def __init__(self, min_intro_chars: int = 50) -> None:
        self._min_intro_chars = min_intro_chars

    def get_strategy_name(self) -> str:
        return "header"

    def sections(self, text: str) -> list[tuple[str, str]]:
        """Return ``(header, body)`` pairs in document order."""
        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        if not normalized.strip():
            return []

        headings = list(_HEADING.finditer(normalized))
        if not headings:
            return [(DOCUMENT_HEADER, clean_text(normalized))]

        sections: list[tuple[str, str]] = []
        intro = clean_text(normalized[: headings[0].start()])
        if len(intro) >= self._min_intro_chars:
            sections.append((INTRODUCTION_HEADER, intro))

        for i, match in enumerate(headings):
            end = headings[i + 1].start() if i + 1 < len(headings) else len(normalized)
            body = clean_text(normalized[match.end() : end])
            sections.append((match.group(2).strip(), body))
        return sections

    def chunk(self, extracted: ExtractedText) -> list[Chunk]:
        chunks: list[Chunk] = []
        for number, (header, body) in enumerate(self.sections(extracted.text), start=1):
            content = f"{header}\n\n{body}" if body else header
            chunks.append(
                Chunk(
                    index=number - 1,
                    content=content,
                    token_count=estimate_tokens(content),
                    header=header,
                    section_index=number,
                )
            )
        return chunks


def select_strategy(file_type: FileType, settings: Settings | None = None) -> IChunkingStrategy:
    """Return the default chunking strategy for *file_type*."""
    settings = settings or Settings()
    fallback = TokenWindowChunker(chunk_size=settings.chunk_size, overlap=settings.chunk_overlap)
    if file_type is FileType.PDF:
        return PageChunker(min_chars=settings.min_page_chars, fallback=fallback)
    if file_type is FileType.MARKDOWN:
        return HeaderChunker(min_intro_chars=settings.min_intro_chars)
    return fallback
