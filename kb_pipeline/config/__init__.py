"""Configuration module -- exports Settings."""

from kb_pipeline.config.settings import Settings

__all__ = ["Settings"]
