"""Abstract base class for vector-store providers.

Defines the contract for storing, searching and deleting embedded chunks.
The only implementation is the single-file JSON store
(:class:`~kb_pipeline.providers.vector_store.json_vector_store.JsonVectorStore`),
sized for hundreds to low thousands of chunks with brute-force cosine
search.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from kb_pipeline.models.rag import Chunk, SearchResult, VectorStoreStats


class IVectorStoreProvider(ABC):
    """Contract for vector-store services used by the ingestion pipeline.

    All methods are async so a network-backed store could replace the file
    store without touching callers.
    """

    @abstractmethod
    async def add_chunks(
        self,
        chunks: list[Chunk],
        chunk_type: str = "text",
        replace_document: bool = False,
        replace_types: tuple[str, ...] | None = None,
    ) -> int:
        """Embed and store *chunks*, replacing records with the same id.

        Ids are ``{doc_id}_{tag}_{index}``.  All contents are embedded in a
        single gateway call.  With *replace_document*, every existing record
        of the same document whose type is in *replace_types* (default: the
        chunk type being added) is dropped in the same write, so a
        re-ingested document that shrank leaves no stale tail.  Returns
        the number of chunks stored.
        """

    @abstractmethod
    async def search(
        self,
        query: str,
        limit: int = 5,
        application: str | None = None,
        doc_id: str | None = None,
    ) -> list[SearchResult]:
        """Rank stored chunks by cosine similarity to *query*.

        Returns at most *limit* results sorted by non-increasing similarity.
        An empty store or an empty filtered candidate set yields ``[]``.
        """

    @abstractmethod
    async def delete_document(self, doc_id: str, chunk_type: str | None = None) -> int:
        """Remove the chunks of *doc_id* (only *chunk_type* ones if given).

        Returns the number removed.
        """

    @abstractmethod
    async def get_stats(self) -> VectorStoreStats:
        """Return size and provider information about the store."""

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every record and the recorded provider/model."""
