"""Unit tests for the error-to-status mapping used by ErrorHandlingMiddleware."""

from __future__ import annotations

import pytest

from kb_pipeline.api.middleware import status_code_for
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


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (NotFoundError(), 404),
        (ValidationError(), 400),
        (PageOutOfRangeError(), 400),
        (RenderError(), 500),
        (ConfigurationError(), 503),
        (ProviderError(), 502),
        (ExtractionError(), 500),
        (VectorStoreError(), 500),
        (KnowledgeBaseError(), 500),
    ],
)
def test_status_code_for(error: KnowledgeBaseError, status: int) -> None:
    assert status_code_for(error) == status


def test_provider_name_prefixes_str() -> None:
    error = ProviderError(message="quota exceeded", provider_name="cohere")
    assert str(error) == "[cohere] quota exceeded"
    assert error.message == "quota exceeded"


def test_default_message_per_error_class() -> None:
    assert NotFoundError().message == "Not found"
    assert str(PageOutOfRangeError()) == "Page number out of range"
    assert PageOutOfRangeError().client_error is True
    assert RenderError().client_error is False
