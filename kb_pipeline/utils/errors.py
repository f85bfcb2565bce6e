"""Exception types raised by the knowledge-base pipeline.

Every error derives from :class:`KnowledgeBaseError` and may name the
external component responsible (``provider_name``: "openai", "cohere",
"pdftoppm", ...).  Grouped by where they surface:

    KnowledgeBaseError
    +-- ExtractionError      upload could not be read as text
    +-- ValidationError      rejected file type, size or argument
    +-- ConfigurationError   selected embedding provider is not usable
    +-- ProviderError        embedding / vision API call failed
    +-- VectorStoreError     vector file could not be persisted
    +-- NotFoundError        unknown doc_id or missing stored PDF
    +-- RenderError          no renderer produced an image
        +-- PageOutOfRangeError

The pipeline never retries on these.  The API layer maps each class to an
HTTP status in ``kb_pipeline.api.middleware.status_code_for``.
"""


class KnowledgeBaseError(Exception):
    """Root of the pipeline's exception tree.

    Subclasses only override ``default_message``; the constructor is shared.
    ``str(exc)`` reads ``[provider] message`` when a provider is known.
    """

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self.message = message or self.default_message
        self.provider_name = provider_name
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.provider_name:
            return self.message
        return f"[{self.provider_name}] {self.message}"


class ExtractionError(KnowledgeBaseError):
    """The uploaded file is missing, corrupt, encrypted or not decodable."""

    default_message = "Text extraction failed"


class ValidationError(KnowledgeBaseError):
    default_message = "Invalid request"


class ConfigurationError(KnowledgeBaseError):
    """No usable credentials or settings for the selected embedding provider.

    Raised instead of switching to a different provider, so
    ``provider_name`` is always the one the operator selected.
    """

    default_message = "Invalid or missing configuration"


class ProviderError(KnowledgeBaseError):
    """An embedding or vision call failed; ``message`` holds the upstream body."""

    default_message = "Embedding provider call failed"


class VectorStoreError(KnowledgeBaseError):
    default_message = "Vector store operation failed"


class NotFoundError(KnowledgeBaseError):
    """Unknown document id, or its stored PDF is gone.

    A doc_id-filtered search with no hits returns an empty list instead.
    """

    default_message = "Not found"


class RenderError(KnowledgeBaseError):
    """Both the external rasterizer and the PyMuPDF fallback failed.

    ``client_error`` tells the API layer whether the caller is at fault.
    """

    default_message = "Page rendering failed"
    client_error = False


class PageOutOfRangeError(RenderError):
    """Requested page is outside ``1..page_count``."""

    default_message = "Page number out of range"
    client_error = True
