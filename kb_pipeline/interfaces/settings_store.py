"""Abstract settings store and secret-decryption contract.

Admin-editable settings (embedding provider, model, encrypted API keys)
live outside this repository.  The embedding gateway reads them through
:class:`ISettingsStore` on every call.

Keys read by the pipeline:

    embedding_provider      openai | openrouter | cohere | jina | ollama
    embedding_model         model name; provider default when empty
    embedding_use_chat_key  "true" -> use ``api_key`` instead of ``embedding_api_key``
    embedding_api_key       encrypted dedicated embedding key
    api_key                 encrypted chat-completion key
    ollama_url              Ollama base URL
    vision_model            OpenAI-compatible vision model for image descriptions
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

# decrypt(ciphertext) -> plaintext.  Fails closed: returns "" or None on
# failure and never raises into the caller.
SecretDecryptor = Callable[[str], Optional[str]]


class ISettingsStore(ABC):
    """Contract for key/value settings lookup."""

    @abstractmethod
    async def get_setting(self, key: str) -> str | None:
        """Return the stored value for *key*, or ``None`` if unset."""
