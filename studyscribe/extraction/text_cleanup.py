"""
Whitespace normalization and size heuristics for extracted text.
"""

import math
import re

from studyscribe.config import CHARS_PER_TOKEN

_BLANK_RUN = re.compile(r'\n{3,}')
_SPACE_RUN = re.compile(r"[ \t\f\v\u00a0]+")


def cleanup_text(text: str) -> str:
    """
    Normalize whitespace in extracted text.

    - Normalizes line endings to \\n
    - Collapses runs of spaces/tabs to a single space
    - Trims every line
    - Collapses runs of blank lines to at most one blank line
    - Trims the result

    Args:
        text: Raw text

    Returns:
        Cleaned text ('' for empty input)
    """
    if not text:
        return ''

    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = _SPACE_RUN.sub(' ', text)
    text = '\n'.join(line.strip() for line in text.split('\n'))
    text = _BLANK_RUN.sub('\n\n', text)
    return text.strip()


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def estimate_tokens(text: str) -> int:
    """Estimate token count (rough approximation: 1 token ~ 4 characters)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
