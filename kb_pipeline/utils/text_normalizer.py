"""Text normalization helpers shared by the extractor and the chunkers.

Two concerns live here:

1. **Whitespace normalization** -- PDF text layers and hand-written
   Markdown both arrive with ragged whitespace: CRLF line endings, runs of
   blank lines, tab-aligned columns, trailing spaces.  ``clean_text``
   reduces all of that to single spaces and at most one blank line while
   keeping line structure intact, so paragraph splitting is reliable.

2. **Token estimation** -- chunk budgets are expressed in tokens but
   measured in characters using the ~4 chars/token rule of thumb.  The
   estimate only has to be stable, not exact.
"""

import math
import re

CHARS_PER_TOKEN = 4

_MULTI_NEWLINE = re.compile(r"\n{3,}")
# Horizontal whitespace only: any whitespace character that is not "\n".
_HORIZONTAL_WS = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")


def clean_text(text: str) -> str:
    """Normalize whitespace in extracted text.

    Line endings become ``\\n``, runs of three or more newlines collapse to
    a paragraph break (exactly two), horizontal whitespace runs collapse to
    one space without touching newlines, spaces at the start and end of
    every line are dropped, and the result is stripped.

    Args:
        text: Raw extracted text.

    Returns:
        The normalized text.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _MULTI_NEWLINE.sub("\n\n", normalized)
    normalized = _HORIZONTAL_WS.sub(" ", normalized)
    normalized = _SPACE_AROUND_NEWLINE.sub("\n", normalized)
    return normalized.strip()


def estimate_tokens(text: str) -> int:
    """Return ``ceil(len(text) / 4)``, the approximate token count of *text*."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def split_paragraphs(text: str) -> list[str]:
    """Split already-cleaned *text* on blank lines, discarding empty parts."""
    return [p for p in _PARAGRAPH_BREAK.split(text) if p.strip()]
