"""Unit tests for the chunking strategies: token windows, pages, Markdown headers."""

from __future__ import annotations

import pytest

from kb_pipeline.config.settings import Settings
from kb_pipeline.models.document import FileType
from kb_pipeline.models.rag import ExtractedText, PageText
from kb_pipeline.services.ingestion.chunker import (
    HeaderChunker,
    PageChunker,
    TokenWindowChunker,
    select_strategy,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_LONG_PAGE = "Restart the docking station by holding the power button for ten seconds."


def _paragraphs(count: int, words: int = 5) -> str:
    """Paragraphs whose words are unique, e.g. ``p0w0 p0w1 ...``."""
    return "\n\n".join(
        " ".join(f"p{i}w{j}" for j in range(words)) for i in range(count)
    )


# ---------------------------------------------------------------------------
# TokenWindowChunker
# ---------------------------------------------------------------------------


class TestTokenWindowChunker:
    def test_rejects_invalid_sizes(self) -> None:
        with pytest.raises(ValueError):
            TokenWindowChunker(chunk_size=0)
        with pytest.raises(ValueError):
            TokenWindowChunker(chunk_size=10, overlap=-1)

    def test_empty_input_yields_no_chunks(self) -> None:
        chunker = TokenWindowChunker()
        assert chunker.split("") == []
        assert chunker.chunk(ExtractedText(text="  \n\n ")) == []

    def test_short_text_is_one_chunk(self) -> None:
        chunks = TokenWindowChunker().chunk(ExtractedText(text="One short paragraph."))
        assert len(chunks) == 1
        assert chunks[0].index == 0
        assert chunks[0].content == "One short paragraph."
        assert chunks[0].token_count == 5

    def test_next_window_starts_with_trailing_words_of_previous(self) -> None:
        # 40-char windows, 12-char overlap; each 24-char paragraph fills a window.
        chunker = TokenWindowChunker(chunk_size=10, overlap=3)
        windows = chunker.split(_paragraphs(4))

        assert len(windows) == 4
        assert windows[0].split() == [f"p0w{j}" for j in range(5)]
        for i in range(1, 4):
            assert windows[i].split()[:3] == [f"p{i - 1}w{j}" for j in (2, 3, 4)]
            assert windows[i].split()[3] == f"p{i}w0"

    def test_overlap_is_joined_to_the_next_paragraph_by_a_clean_break(self) -> None:
        windows = TokenWindowChunker(chunk_size=10, overlap=3).split(_paragraphs(2))

        assert windows[1] == "p0w2 p0w3 p0w4\n\np1w0 p1w1 p1w2 p1w3 p1w4"
        assert not any(" \n" in w or "\n " in w for w in windows)

    def test_zero_overlap_windows_are_disjoint(self) -> None:
        chunker = TokenWindowChunker(chunk_size=10, overlap=0)
        windows = chunker.split(_paragraphs(3))

        assert [w.split()[0] for w in windows] == ["p0w0", "p1w0", "p2w0"]

    def test_every_word_is_covered(self) -> None:
        chunker = TokenWindowChunker(chunk_size=12, overlap=2)
        text = _paragraphs(9, words=4)
        covered = {word for window in chunker.split(text) for word in window.split()}
        assert covered == set(text.split())

    def test_oversized_paragraph_is_not_split(self) -> None:
        paragraph = " ".join(f"w{i}" for i in range(200))
        windows = TokenWindowChunker(chunk_size=10, overlap=2).split(paragraph)
        assert windows == [paragraph]

    def test_indices_are_sequential(self) -> None:
        chunks = TokenWindowChunker(chunk_size=10, overlap=3).chunk(
            ExtractedText(text=_paragraphs(5))
        )
        assert [c.index for c in chunks] == list(range(len(chunks)))

    def test_strategy_name(self) -> None:
        assert TokenWindowChunker().get_strategy_name() == "token_window"


# ---------------------------------------------------------------------------
# PageChunker
# ---------------------------------------------------------------------------


class TestPageChunker:
    def test_one_chunk_per_page_with_text(self) -> None:
        extracted = ExtractedText(
            text="ignored",
            num_pages=3,
            page_texts=[
                PageText(page=1, text=_LONG_PAGE),
                PageText(page=2, text=""),
                PageText(page=3, text=_LONG_PAGE.upper()),
            ],
        )
        chunks = PageChunker().chunk(extracted)

        assert [c.index for c in chunks] == [0, 1]
        assert [c.page_number for c in chunks] == [1, 3]
        assert [(c.start_page, c.end_page) for c in chunks] == [(1, 1), (3, 3)]
        assert chunks[1].content == _LONG_PAGE.upper()

    def test_short_pages_are_skipped(self) -> None:
        extracted = ExtractedText(
            text="",
            num_pages=2,
            page_texts=[PageText(page=1, text="Page 1"), PageText(page=2, text=_LONG_PAGE)],
        )
        chunks = PageChunker(min_chars=50).chunk(extracted)
        assert [c.page_number for c in chunks] == [2]

    def test_page_text_is_cleaned(self) -> None:
        extracted = ExtractedText(
            text="", num_pages=1, page_texts=[PageText(page=1, text=f"  {_LONG_PAGE}\n\n\n\n ")]
        )
        assert PageChunker().chunk(extracted)[0].content == _LONG_PAGE

    def test_falls_back_without_page_texts(self) -> None:
        chunks = PageChunker().chunk(ExtractedText(text="Flat text without pages."))
        assert len(chunks) == 1
        assert chunks[0].page_number is None

    def test_all_blank_pages_yield_nothing(self) -> None:
        extracted = ExtractedText(
            text="", num_pages=2, page_texts=[PageText(page=1, text=""), PageText(page=2, text=" ")]
        )
        assert PageChunker().chunk(extracted) == []


# ---------------------------------------------------------------------------
# HeaderChunker
# ---------------------------------------------------------------------------


class TestHeaderChunker:
    def test_one_chunk_per_heading(self) -> None:
        chunks = HeaderChunker().chunk(ExtractedText(text="# A\nfoo\n\n# B\nbar"))

        assert [c.header for c in chunks] == ["A", "B"]
        assert [c.section_index for c in chunks] == [1, 2]
        assert [c.content for c in chunks] == ["A\n\nfoo", "B\n\nbar"]
        assert all(c.page_number is None for c in chunks)

    def test_long_intro_becomes_introduction_section(self) -> None:
        intro = "This guide explains how to request a new laptop from the service desk."
        chunks = HeaderChunker().chunk(ExtractedText(text=f"{intro}\n\n## Steps\nOpen a ticket."))

        assert [c.header for c in chunks] == ["Introduction", "Steps"]
        assert chunks[0].content == f"Introduction\n\n{intro}"

    def test_short_intro_is_dropped(self) -> None:
        chunks = HeaderChunker().chunk(ExtractedText(text="Hi.\n# Only\nbody"))
        assert [c.header for c in chunks] == ["Only"]

    def test_no_headings_is_single_document_section(self) -> None:
        chunks = HeaderChunker().chunk(ExtractedText(text="Just some notes.\n\nMore notes."))
        assert len(chunks) == 1
        assert chunks[0].header == "Document"
        assert chunks[0].section_index == 1

    def test_heading_without_body_keeps_header_as_content(self) -> None:
        chunks = HeaderChunker().chunk(ExtractedText(text="# Empty\n# Full\ntext"))
        assert chunks[0].content == "Empty"

    def test_bare_hash_line_is_body_text(self) -> None:
        sections = HeaderChunker().sections(
            "# Setup\nInstall the client.\n#\nRestart the laptop afterwards."
        )

        assert [header for header, _ in sections] == ["Setup"]
        assert "Restart the laptop afterwards." in sections[0][1]

    def test_heading_match_stays_on_its_line(self) -> None:
        sections = HeaderChunker().sections("# VPN\n\n## \nNot a heading.\n# Email\nOutlook.")
        assert [header for header, _ in sections] == ["VPN", "Email"]

    def test_closing_hashes_are_stripped(self) -> None:
        sections = HeaderChunker().sections("### Printers ###\nUse the web panel.")
        assert sections == [("Printers", "Use the web panel.")]

    def test_empty_input(self) -> None:
        assert HeaderChunker().chunk(ExtractedText(text="")) == []


# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------


class TestSelectStrategy:
    def test_pdf_uses_pages(self) -> None:
        assert select_strategy(FileType.PDF, Settings()).get_strategy_name() == "page"

    def test_markdown_uses_headers(self) -> None:
        assert select_strategy(FileType.MARKDOWN, Settings()).get_strategy_name() == "header"
