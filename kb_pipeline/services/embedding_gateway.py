"""Embedding provider gateway.

Single entry point for turning text into vectors.  On every call the
gateway:

    1. Resolves an :class:`EmbeddingConfig` from the settings store
       (provider, model, key source, Ollama URL).
    2. Resolves the API key through an explicit fallback chain:
           PRIMARY   -- stored key, decrypted
           FALLBACK  -- the selected provider's environment variable
           FAILED    -- ConfigurationError naming the provider
       A stored key that fails to decrypt is *never* used as-is.
    3. Dispatches to exactly one adapter from ``PROVIDER_CLASSES``.

Resolving per call (instead of caching a client) means an admin switching
providers takes effect on the next request without a restart.  It also
means a switch silently changes the embedding space of new vectors; the
vector store records the (provider, model) pair to make that visible.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from kb_pipeline.config.settings import Settings
from kb_pipeline.interfaces.embedding_provider import IEmbeddingProvider
from kb_pipeline.interfaces.settings_store import ISettingsStore, SecretDecryptor
from kb_pipeline.models.embedding import (
    PROVIDER_CATALOG,
    ConnectionTestResult,
    EmbeddingConfig,
    EmbeddingProviderName,
    KeySource,
    ProviderInfo,
)
from kb_pipeline.providers.embedding import PROVIDER_CLASSES
from kb_pipeline.providers.embedding.openai_embedding_provider import OPENROUTER_BASE_URL
from kb_pipeline.providers.vision.openai_vision_provider import (
    DEFAULT_DESCRIBE_PROMPT,
    OpenAIVisionProvider,
)
from kb_pipeline.utils.errors import ConfigurationError, KnowledgeBaseError, ProviderError

if TYPE_CHECKING:
    import httpx

logger = structlog.get_logger(logger_name=__name__)

_ENV_VAR_NAMES: dict[EmbeddingProviderName, str] = {
    EmbeddingProviderName.OPENAI: "OPENAI_API_KEY",
    EmbeddingProviderName.OPENROUTER: "OPENROUTER_API_KEY",
    EmbeddingProviderName.COHERE: "COHERE_API_KEY",
    EmbeddingProviderName.JINA: "JINA_API_KEY",
}

_VISION_PROVIDERS = frozenset({EmbeddingProviderName.OPENAI, EmbeddingProviderName.OPENROUTER})

_CONNECTION_TEST_TEXT = "Test embedding connection"


class EmbeddingGateway:
    """Resolves embedding configuration and dispatches to one provider adapter.

    Parameters
    ----------
    settings_store:
        Admin-editable settings (provider, model, encrypted keys).
    decrypt:
        Secret decryption function; must fail closed (return "" / None).
    settings:
        Process settings providing environment-variable key fallbacks, the
        default Ollama URL and the request timeout.
    http_client:
        Optional shared ``httpx.AsyncClient`` handed to every adapter.
    provider_classes:
        Dispatch table; defaults to :data:`PROVIDER_CLASSES`.
    """

    def __init__(
        self,
        settings_store: ISettingsStore,
        decrypt: SecretDecryptor,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
        provider_classes: dict[EmbeddingProviderName, type[IEmbeddingProvider]] | None = None,
    ) -> None:
        self._settings_store = settings_store
        self._decrypt = decrypt
        self._settings = settings
        self._http_client = http_client
        self._provider_classes = provider_classes or PROVIDER_CLASSES

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def resolve_config(self) -> EmbeddingConfig:
        """Build the embedding configuration for one call.

        Raises
        ------
        ConfigurationError
            For an unknown provider name or when no API key can be found
            for a provider that needs one.
        """
        raw_provider = await self._settings_store.get_setting("embedding_provider") or "openai"
        try:
            provider = EmbeddingProviderName(raw_provider)
        except ValueError as exc:
            raise ConfigurationError(
                message=f"Unknown embedding provider: {raw_provider}",
                provider_name=raw_provider,
            ) from exc

        info = PROVIDER_CATALOG[provider]
        model = await self._settings_store.get_setting("embedding_model") or info.default_model
        ollama_url = (
            await self._settings_store.get_setting("ollama_url") or self._settings.ollama_base_url
        )
        extra_params = {"ollama_url": ollama_url} if provider is EmbeddingProviderName.OLLAMA else {}

        if not info.requires_api_key:
            return EmbeddingConfig(
                provider=provider,
                model=model,
                extra_params=extra_params,
                key_source=KeySource.NOT_REQUIRED,
            )

        api_key, key_source = await self._resolve_api_key(provider)
        if key_source is KeySource.FAILED:
            raise ConfigurationError(
                message=(
                    f"No API key configured for {info.name} embeddings. Configure one in "
                    f"the admin embedding settings or set {_ENV_VAR_NAMES[provider]}."
                ),
                provider_name=provider.value,
            )

        return EmbeddingConfig(
            provider=provider,
            model=model,
            api_key=api_key,
            extra_params=extra_params,
            key_source=key_source,
        )

    async def _resolve_api_key(self, provider: EmbeddingProviderName) -> tuple[str, KeySource]:
        """Walk the key fallback chain; each branch is logged."""
        use_chat_key = await self._settings_store.get_setting("embedding_use_chat_key") == "true"
        key_setting = "api_key" if use_chat_key else "embedding_api_key"

        stored = await self._settings_store.get_setting(key_setting)
        if stored:
            plaintext = self._safe_decrypt(stored)
            if plaintext:
                logger.debug(
                    "embedding_key_resolved",
                    provider=provider.value,
                    source=KeySource.PRIMARY.value,
                    setting=key_setting,
                )
                return plaintext, KeySource.PRIMARY
            logger.warning(
                "embedding_key_decrypt_failed",
                provider=provider.value,
                setting=key_setting,
            )

        env_key = self._settings.env_api_key(provider.value)
        if env_key:
            logger.info(
                "embedding_key_resolved",
                provider=provider.value,
                source=KeySource.FALLBACK.value,
                env_var=_ENV_VAR_NAMES[provider],
            )
            return env_key, KeySource.FALLBACK

        logger.warning("embedding_key_missing", provider=provider.value)
        return "", KeySource.FAILED

    def _safe_decrypt(self, ciphertext: str) -> str:
        # A raising decryptor counts as a failed decrypt.
        try:
            return self._decrypt(ciphertext) or ""
        except Exception as exc:  # noqa: BLE001
            logger.warning("embedding_key_decrypt_error", error=type(exc).__name__)
            return ""

    @staticmethod
    def available_providers() -> dict[str, ProviderInfo]:
        """Return the provider catalog keyed by provider name."""
        return {name.value: info for name, info in PROVIDER_CATALOG.items()}

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    def build_provider(self, config: EmbeddingConfig) -> IEmbeddingProvider:
        """Instantiate the adapter registered for ``config.provider``."""
        provider_cls = self._provider_classes[config.provider]
        return provider_cls(
            config,
            timeout=self._settings.embedding_timeout,
            http_client=self._http_client,
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* with the configured provider, preserving order."""
        vectors, _ = await self.embed_with_config(texts)
        return vectors

    async def embed_with_config(
        self, texts: list[str]
    ) -> tuple[list[list[float]], EmbeddingConfig]:
        """Embed *texts* and also return the configuration that produced them."""
        config = await self.resolve_config()
        if not texts:
            return [], config

        logger.info(
            "embedding_request",
            provider=config.provider.value,
            model=config.model,
            count=len(texts),
            key_source=config.key_source.value,
        )
        provider = self.build_provider(config)
        vectors = await provider.embed(texts)

        if len(vectors) != len(texts):
            raise ProviderError(
                message=f"Expected {len(texts)} embeddings, received {len(vectors)}",
                provider_name=config.provider.value,
            )
        return vectors, config

    async def test_connection(
        self,
        provider: str | None = None,
        model: str | None = None,
        api_key: str | None = None,
        ollama_url: str | None = None,
    ) -> ConnectionTestResult:
        """Embed a short test text, optionally overriding the stored configuration.

        Never raises; failures are reported in the result.
        """
        try:
            stored_provider = (
                await self._settings_store.get_setting("embedding_provider") or "openai"
            )
            if provider is None or (provider == stored_provider and api_key is None):
                base = await self.resolve_config()
            else:
                # Probing an unsaved provider: explicit key, else its env var.
                name = EmbeddingProviderName(provider)
                info = PROVIDER_CATALOG[name]
                if not info.requires_api_key:
                    key, source = "", KeySource.NOT_REQUIRED
                elif api_key:
                    key, source = api_key, KeySource.PRIMARY
                else:
                    key, source = self._settings.env_api_key(name.value), KeySource.FALLBACK
                    if not key:
                        raise ConfigurationError(
                            message=f"No API key available to test {info.name}",
                            provider_name=name.value,
                        )
                base = EmbeddingConfig(
                    provider=name, model=info.default_model, api_key=key, key_source=source
                )

            updates: dict = {}
            if model:
                updates["model"] = model
            if base.provider is EmbeddingProviderName.OLLAMA:
                updates["extra_params"] = {
                    "ollama_url": ollama_url
                    or base.extra_params.get("ollama_url")
                    or self._settings.ollama_base_url
                }
            config = base.model_copy(update=updates)

            vectors = await self.build_provider(config).embed([_CONNECTION_TEST_TEXT])
            return ConnectionTestResult(
                success=True,
                provider=config.provider.value,
                model=config.model,
                dimensions=len(vectors[0]) if vectors else 0,
                message="Connection successful",
            )
        except (KnowledgeBaseError, ValueError, KeyError) as exc:
            logger.warning("embedding_connection_test_failed", provider=provider, error=str(exc))
            return ConnectionTestResult(success=False, provider=provider, model=model, error=str(exc))

    # ------------------------------------------------------------------
    # Vision
    # ------------------------------------------------------------------

    async def vision_available(self) -> bool:
        """Return ``True`` when a vision model is configured for an OpenAI-compatible provider."""
        if not await self._settings_store.get_setting("vision_model"):
            return False
        raw_provider = await self._settings_store.get_setting("embedding_provider") or "openai"
        return raw_provider in {p.value for p in _VISION_PROVIDERS}

    async def describe_image(self, image_bytes: bytes, prompt: str | None = None) -> str:
        """Describe an image with the configured vision model.

        Uses the same provider and key as embeddings.  Raises
        :class:`ConfigurationError` when no vision model is set or the
        provider has no vision endpoint.
        """
        vision_model = await self._settings_store.get_setting("vision_model")
        config = await self.resolve_config()
        if not vision_model:
            raise ConfigurationError(
                message="No vision model configured",
                provider_name=config.provider.value,
            )
        if config.provider not in _VISION_PROVIDERS:
            raise ConfigurationError(
                message=f"Image descriptions are not supported for {config.provider.value}",
                provider_name=config.provider.value,
            )

        base_url = OPENROUTER_BASE_URL if config.provider is EmbeddingProviderName.OPENROUTER else None
        vision = OpenAIVisionProvider(
            api_key=config.api_key,
            model=vision_model,
            base_url=base_url,
            provider_name=config.provider.value,
            timeout=self._settings.embedding_timeout,
        )
        return await vision.describe(image_bytes, prompt or DEFAULT_DESCRIBE_PROMPT)
