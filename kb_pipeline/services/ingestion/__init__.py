"""Document ingestion pipeline for the knowledge base.

Upload flow: **extract -> chunk -> stamp -> embed/store -> record**.

1. **Extract** (text_extractor.py / TextExtractor) -- PyMuPDF text with
   per-page attribution for PDFs, raw text for Markdown.

2. **Chunk** (chunker.py) -- one chunk per page for PDFs, one per heading
   section for Markdown, paragraph windows with overlap as the fallback.

3. **Embed/store** (via JsonVectorStore) -- one embedding call per upload,
   records keyed ``{doc_id}_chunk_{i}`` so re-ingestion overwrites.

4. **Record** (via IDocumentStore) -- document row with chunk and page counts.

IngestionService also owns the delete path and exposes search and page
rendering to the API layer.
"""

from kb_pipeline.services.ingestion.chunker import (
    HeaderChunker,
    PageChunker,
    TokenWindowChunker,
    select_strategy,
)
from kb_pipeline.services.ingestion.ingestion_service import IngestionService, validate_upload
from kb_pipeline.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "HeaderChunker",
    "IngestionService",
    "PageChunker",
    "TextExtractor",
    "TokenWindowChunker",
    "select_strategy",
    "validate_upload",
]
