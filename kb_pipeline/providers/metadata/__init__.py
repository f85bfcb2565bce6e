"""Collaborator stores bundled for tests and local runs.

The production document and settings stores live outside this repository;
these dict-backed versions implement the same interfaces.
"""

from kb_pipeline.providers.metadata.memory_document_store import InMemoryDocumentStore
from kb_pipeline.providers.metadata.memory_settings_store import InMemorySettingsStore

__all__ = ["InMemoryDocumentStore", "InMemorySettingsStore"]
