"""OpenAI-compatible vision adapter for describing document images.

Page images (screenshots, diagrams) are made searchable by asking a
vision-capable chat model for a text description; the description is then
embedded like any other chunk.  Works against OpenAI or OpenRouter since
both accept the multi-part ``image_url`` message format.
"""

from __future__ import annotations

import base64

import openai
import structlog

from kb_pipeline.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_DESCRIBE_PROMPT = (
    "Describe this image from an IT support document. Transcribe any visible "
    "text, name the application screens, buttons, menus and error messages "
    "shown, and summarise what the user is being instructed to do."
)


def _detect_media_type(image_bytes: bytes) -> str:
    """Detect the MIME type of an image from its magic bytes."""
    if image_bytes[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:2] == b"\xff\xd8":
        return "image/jpeg"
    return "image/png"


class OpenAIVisionProvider:
    """Describes images through ``chat.completions`` with a base64 data URI."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        provider_name: str = "openai",
        timeout: float = 60.0,
    ) -> None:
        client_kwargs: dict = {"api_key": api_key, "timeout": timeout}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = model
        self._provider_name = provider_name

    async def describe(self, image_bytes: bytes, prompt: str = DEFAULT_DESCRIBE_PROMPT) -> str:
        b64 = base64.b64encode(image_bytes).decode("utf-8")
        media_type = _detect_media_type(image_bytes)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{media_type};base64,{b64}"},
                            },
                        ],
                    }
                ],
                max_tokens=1000,
            )
        except openai.APIError as exc:
            body = getattr(exc, "body", None)
            raise ProviderError(
                message=f"Vision API error: {body if body is not None else exc}",
                provider_name=self._provider_name,
            ) from exc

        content = response.choices[0].message.content
        if not content:
            raise ProviderError(
                message="Vision model returned an empty description",
                provider_name=self._provider_name,
            )
        logger.info(
            "vision_describe",
            provider=self._provider_name,
            model=self._model,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content.strip()
