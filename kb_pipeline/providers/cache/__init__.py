"""Cache adapters."""

from kb_pipeline.providers.cache.render_cache import RenderCache

__all__ = ["RenderCache"]
