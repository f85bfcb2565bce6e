"""Application settings loaded from environment variables via pydantic-settings.

Values are read from two sources, environment variables first and then a
``.env`` file in the working directory.  Field ``openai_api_key`` maps to
``OPENAI_API_KEY`` and so on.

These are *process* settings: paths, chunking and rendering knobs, and the
environment-variable API keys that act as the last fallback when the
settings store holds no usable embedding key.  The runtime choice of
embedding provider and model lives in the settings store (see
:class:`~kb_pipeline.interfaces.settings_store.ISettingsStore`) so admins
can change it without a restart.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Knowledge-base pipeline settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Storage layout ===
    # Empty path fields are derived from data_dir in the accessors below.
    data_dir: str = "./data"
    vector_store_path: str = ""
    documents_dir: str = ""
    images_dir: str = ""
    uploads_dir: str = ""

    # === Chunking ===
    chunk_size: int = 500  # tokens (~4 chars per token)
    chunk_overlap: int = 50
    min_page_chars: int = 50  # pages shorter than this are skipped (blank / scanned)
    min_intro_chars: int = 50  # Markdown text before the first heading

    # === Page rendering ===
    render_dpi: int = 144  # 2x scale of the 72-dpi PDF user space
    render_max_width: int = 1400
    render_max_height: int = 1800
    render_cache_size: int = 50
    render_cache_ttl: int = 3600  # seconds
    pdftoppm_path: str = "pdftoppm"

    # === Uploads ===
    max_upload_bytes: int = 10 * 1024 * 1024

    # === Embedding provider fallbacks ===
    # Empty string = "not configured".  The gateway only reads the key of
    # the provider selected in the settings store.
    openai_api_key: str = ""
    openrouter_api_key: str = ""
    cohere_api_key: str = ""
    jina_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"
    embedding_timeout: float = 60.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    def resolved_vector_store_path(self) -> Path:
        return Path(self.vector_store_path or Path(self.data_dir) / "vectors.json")

    def resolved_documents_dir(self) -> Path:
        return Path(self.documents_dir or Path(self.data_dir) / "documents")

    def resolved_images_dir(self) -> Path:
        return Path(self.images_dir or Path(self.data_dir) / "images")

    def resolved_uploads_dir(self) -> Path:
        return Path(self.uploads_dir or Path(self.data_dir) / "uploads")

    def env_api_key(self, provider: str) -> str:
        """Return the environment-variable API key for *provider* ("" if unset)."""
        return {
            "openai": self.openai_api_key,
            "openrouter": self.openrouter_api_key,
            "cohere": self.cohere_api_key,
            "jina": self.jina_api_key,
        }.get(provider, "")
