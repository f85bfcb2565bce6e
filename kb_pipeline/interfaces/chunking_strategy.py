"""Abstract base class for chunking strategies.

Three interchangeable strategies split extracted text into retrieval units
(see ``kb_pipeline.services.ingestion.chunker``):

    TokenWindowChunker  -- paragraph-packed windows with trailing-word overlap
    PageChunker         -- one chunk per PDF page (PDF default)
    HeaderChunker       -- one chunk per Markdown heading section (Markdown default)

The orchestrator picks one per file type; every strategy returns chunks
with sequential 0-based ``index`` values and leaves the envelope fields
(doc id, source, application) to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kb_pipeline.models.rag import Chunk, ExtractedText


class IChunkingStrategy(ABC):
    """Contract for turning extracted text into chunks."""

    @abstractmethod
    def chunk(self, extracted: ExtractedText) -> list[Chunk]:
        """Split *extracted* into chunks.

        Empty or whitespace-only input yields an empty list, never an error.
        """

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Return a short identifier used in logs, e.g. ``"page"``."""
