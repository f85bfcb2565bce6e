"""Single-file JSON vector store with brute-force cosine search.

Every record lives in one JSON document (:class:`VectorStoreSnapshot`)
that is loaded lazily on first use and rewritten in full after each
mutation.  Writes go to a temporary file in the same directory followed by
``os.replace`` so a crash mid-write never leaves a truncated store.

The snapshot also records the embedding provider and model of the most
recent write.  Vectors from different models are not comparable: a stored
vector whose length differs from the query vector scores 0.0 and is
logged, and :meth:`get_stats` reports the drift between the stored and
configured provider.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import structlog
from pydantic import ValidationError as PydanticValidationError

from kb_pipeline.interfaces.vector_store_provider import IVectorStoreProvider
from kb_pipeline.models.rag import (
    Chunk,
    ChunkMetadata,
    DescribedImage,
    SearchResult,
    StoredChunk,
    VectorStoreSnapshot,
    VectorStoreStats,
    make_chunk_id,
)
from kb_pipeline.utils.errors import ConfigurationError, VectorStoreError
from kb_pipeline.utils.text_normalizer import estimate_tokens

if TYPE_CHECKING:
    from kb_pipeline.models.document import FileType
    from kb_pipeline.services.embedding_gateway import EmbeddingGateway

logger = structlog.get_logger(logger_name=__name__)

COLLECTION_NAME = "file_based_store"


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)``.

    Vectors of different length come from different embedding models and
    score 0.0; so does a zero-norm vector.
    """
    if len(a) != len(b):
        logger.warning("embedding_dimension_mismatch", query_dim=len(a), stored_dim=len(b))
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class JsonVectorStore(IVectorStoreProvider):
    """File-backed vector store.

    Parameters
    ----------
    path:
        Location of the JSON snapshot.  Its parent directory is created on
        the first write.
    gateway:
        Embedding gateway used for chunk contents and queries.
    """

    def __init__(self, path: str | Path, gateway: EmbeddingGateway) -> None:
        self._path = Path(path)
        self._gateway = gateway
        self._snapshot: VectorStoreSnapshot | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load_sync(self) -> VectorStoreSnapshot:
        if not self._path.exists():
            return VectorStoreSnapshot()
        try:
            return VectorStoreSnapshot.model_validate_json(self._path.read_bytes())
        except (OSError, ValueError, PydanticValidationError) as exc:
            logger.error("vector_store_load_failed", path=str(self._path), error=str(exc))
            return VectorStoreSnapshot()

    def _save_sync(self, snapshot: VectorStoreSnapshot) -> None:
        payload = snapshot.model_dump_json()
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise VectorStoreError(
                message=f"Could not write vector store {self._path}: {exc}",
                provider_name="json_store",
            ) from exc

    async def _load(self) -> VectorStoreSnapshot:
        if self._snapshot is None:
            self._snapshot = await asyncio.to_thread(self._load_sync)
            logger.info(
                "vector_store_loaded",
                path=str(self._path),
                total_chunks=len(self._snapshot.chunks),
            )
        return self._snapshot

    async def _save(self) -> None:
        if self._snapshot is not None:
            await asyncio.to_thread(self._save_sync, self._snapshot)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def add_chunks(
        self,
        chunks: list[Chunk],
        chunk_type: str = "text",
        replace_document: bool = False,
        replace_types: tuple[str, ...] | None = None,
    ) -> int:
        """Embed *chunks* in one gateway call and upsert them by id.

        With *replace_document*, existing records of the same document whose
        type is in *replace_types* (default: *chunk_type* only) are dropped in
        the same write.
        """
        if not chunks:
            return 0

        embeddings, config = await self._gateway.embed_with_config([c.content for c in chunks])
        snapshot = await self._load()

        records = [
            StoredChunk(
                id=make_chunk_id(chunk.doc_id, chunk_type, chunk.index),
                content=chunk.content,
                embedding=embedding,
                metadata=ChunkMetadata(
                    type=chunk_type,
                    doc_id=chunk.doc_id,
                    chunk_index=chunk.index,
                    token_count=chunk.token_count,
                    source=chunk.source,
                    num_pages=chunk.num_pages,
                    application=chunk.application,
                    page_number=chunk.page_number,
                    start_page=chunk.start_page,
                    end_page=chunk.end_page,
                    header=chunk.header,
                    section_index=chunk.section_index,
                    file_type=chunk.file_type,
                    image_path=chunk.image_path,
                    image_filename=chunk.image_filename,
                ),
            )
            for chunk, embedding in zip(chunks, embeddings, strict=True)
        ]

        new_ids = {r.id for r in records}
        doc_ids = {c.doc_id for c in chunks} if replace_document else set()
        purged_types = set(replace_types or (chunk_type,))
        snapshot.chunks = [
            c
            for c in snapshot.chunks
            if c.id not in new_ids
            and not (c.metadata.doc_id in doc_ids and c.metadata.type in purged_types)
        ] + records
        snapshot.provider = config.provider.value
        snapshot.model = config.model
        await self._save()

        logger.info(
            "vector_store_add_chunks",
            doc_id=chunks[0].doc_id,
            chunk_type=chunk_type,
            count=len(records),
            provider=snapshot.provider,
            model=snapshot.model,
            dimension=len(records[0].embedding),
        )
        return len(records)

    async def add_image_chunks(
        self,
        images: list[DescribedImage],
        doc_id: str,
        application: str = "",
        source: str = "",
        num_pages: int = 0,
        file_type: FileType | None = None,
    ) -> int:
        """Store described images as ``image`` chunks (ids ``{doc_id}_img_{i}``)."""
        chunks = [
            Chunk(
                index=i,
                content=image.description,
                token_count=estimate_tokens(image.description),
                page_number=image.page_number,
                start_page=image.page_number,
                end_page=image.page_number,
                doc_id=doc_id,
                application=application,
                source=source,
                num_pages=num_pages,
                file_type=file_type,
                image_path=image.image_path,
                image_filename=image.image_filename,
            )
            for i, image in enumerate(images)
            if image.description.strip()
        ]
        if not chunks:
            # Nothing described this time; earlier descriptions are stale.
            await self.delete_document(doc_id, chunk_type="image")
            return 0
        return await self.add_chunks(chunks, chunk_type="image", replace_document=True)

    async def search(
        self,
        query: str,
        limit: int = 5,
        application: str | None = None,
        doc_id: str | None = None,
    ) -> list[SearchResult]:
        snapshot = await self._load()
        candidates = [
            c
            for c in snapshot.chunks
            if (application is None or c.metadata.application == application)
            and (doc_id is None or c.metadata.doc_id == doc_id)
        ]
        if not candidates or limit <= 0:
            return []

        query_embedding = (await self._gateway.embed([query]))[0]

        scored: list[tuple[float, StoredChunk]] = []
        mismatches = 0
        for record in candidates:
            if len(record.embedding) != len(query_embedding):
                mismatches += 1
            scored.append((cosine_similarity(query_embedding, record.embedding), record))

        # sorted() is stable: ties keep store order.
        scored = sorted(scored, key=lambda pair: pair[0], reverse=True)[:limit]
        results = [
            SearchResult(
                id=record.id,
                content=record.content,
                metadata=record.metadata,
                similarity=similarity,
                distance=1.0 - similarity,
            )
            for similarity, record in scored
        ]

        logger.info(
            "vector_search_complete",
            query_length=len(query),
            candidates=len(candidates),
            results_count=len(results),
            dimension_mismatches=mismatches,
            top_score=results[0].similarity if results else 0.0,
        )
        return results

    async def delete_document(self, doc_id: str, chunk_type: str | None = None) -> int:
        snapshot = await self._load()
        before = len(snapshot.chunks)
        snapshot.chunks = [
            c
            for c in snapshot.chunks
            if not (
                c.metadata.doc_id == doc_id
                and (chunk_type is None or c.metadata.type == chunk_type)
            )
        ]
        removed = before - len(snapshot.chunks)
        if removed:
            await self._save()
        logger.info(
            "vector_store_delete_document",
            doc_id=doc_id,
            chunk_type=chunk_type,
            deleted_count=removed,
        )
        return removed

    async def get_stats(self) -> VectorStoreStats:
        snapshot = await self._load()

        configured_provider: str | None = None
        configured_model: str | None = None
        try:
            config = await self._gateway.resolve_config()
            configured_provider = config.provider.value
            configured_model = config.model
        except ConfigurationError as exc:
            logger.warning("vector_store_stats_config_unavailable", error=str(exc))

        drift = bool(
            snapshot.chunks
            and snapshot.provider is not None
            and configured_provider is not None
            and (snapshot.provider, snapshot.model) != (configured_provider, configured_model)
        )
        dimensions = Counter(len(c.embedding) for c in snapshot.chunks)

        return VectorStoreStats(
            collection_name=COLLECTION_NAME,
            total_chunks=len(snapshot.chunks),
            embedding_provider=configured_provider,
            embedding_model=configured_model,
            stored_provider=snapshot.provider,
            stored_model=snapshot.model,
            provider_drift=drift,
            dimensions=dict(dimensions),
        )

    async def clear_all(self) -> None:
        self._snapshot = VectorStoreSnapshot()
        await self._save()
        logger.info("vector_store_cleared", path=str(self._path))
