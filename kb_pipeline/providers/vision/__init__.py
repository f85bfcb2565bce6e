"""Vision adapters used to turn document images into searchable text."""

from kb_pipeline.providers.vision.openai_vision_provider import OpenAIVisionProvider

__all__ = ["OpenAIVisionProvider"]
