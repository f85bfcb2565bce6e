"""Page rendering result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class RenderPath(str, Enum):
    """Which route produced a rendered page."""

    CACHE = "cache"
    PRIMARY = "primary"  # external rasterizer (pdftoppm)
    FALLBACK = "fallback"  # PyMuPDF


class RenderOutcome(BaseModel):
    """PNG bytes of one page plus the route that produced them."""

    model_config = ConfigDict(frozen=True)

    image: bytes
    path: RenderPath
