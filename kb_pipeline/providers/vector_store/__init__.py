"""Vector store adapters."""

from kb_pipeline.providers.vector_store.json_vector_store import JsonVectorStore, cosine_similarity

__all__ = ["JsonVectorStore", "cosine_similarity"]
