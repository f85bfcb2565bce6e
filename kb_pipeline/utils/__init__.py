"""Utility modules for the knowledge-base pipeline.

- **errors** -- exception hierarchy rooted at KnowledgeBaseError; each
  pipeline stage raises its own subclass and the API maps them to status
  codes.
- **logging** -- structlog setup with a dual renderer: coloured console
  output in development, structured JSON in production.
- **text_normalizer** -- whitespace cleanup, paragraph splitting and the
  4-chars-per-token estimate used by the chunkers.
"""

from kb_pipeline.utils.errors import (
    ConfigurationError,
    ExtractionError,
    KnowledgeBaseError,
    NotFoundError,
    PageOutOfRangeError,
    ProviderError,
    RenderError,
    ValidationError,
    VectorStoreError,
)
from kb_pipeline.utils.logging import configure_logging, get_logger
from kb_pipeline.utils.text_normalizer import clean_text, estimate_tokens, split_paragraphs

__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "KnowledgeBaseError",
    "NotFoundError",
    "PageOutOfRangeError",
    "ProviderError",
    "RenderError",
    "ValidationError",
    "VectorStoreError",
    "clean_text",
    "configure_logging",
    "estimate_tokens",
    "get_logger",
    "split_paragraphs",
]
