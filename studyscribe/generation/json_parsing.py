"""
Parsing of structured (JSON) model output with a single fallback pass.

Models asked for a JSON array sometimes wrap it in markdown code fences or
surround it with chatty text. parse_json_array() tries:
1. Direct JSON parsing
2. Strip code fences, extract the first [...] literal and parse that
"""

import json
import re
from typing import Any

from studyscribe.errors import GenerationFormatError
from studyscribe.logging_config import debug_log, warning

_OPENING_FENCE = re.compile(r'^```(?:json)?\s*', re.IGNORECASE)
_CLOSING_FENCE = re.compile(r'\s*```$')
_ARRAY_LITERAL = re.compile(r'\[[\s\S]*\]')

INVALID_JSON_MESSAGE = "Failed to generate valid flashcards - invalid JSON format"
NO_ARRAY_MESSAGE = "Failed to generate valid flashcards - no JSON array found"


def strip_code_fences(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    cleaned = text.strip()
    cleaned = _OPENING_FENCE.sub('', cleaned)
    cleaned = _CLOSING_FENCE.sub('', cleaned)
    return cleaned.strip()


def parse_json_array(raw: str) -> list[Any]:
    """
    Parse a JSON array from raw model output.

    Args:
        raw: Raw response text

    Returns:
        The parsed list

    Raises:
        GenerationFormatError: If no JSON array can be recovered
    """
    raw = raw or ""

    # Strategy 1: Direct parse (ideal case)
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        parsed = None
    else:
        if isinstance(parsed, list):
            return parsed
        # Some models wrap the array in an object
        if isinstance(parsed, dict):
            for value in parsed.values():
                if isinstance(value, list):
                    return value

    warning(f"[JSON] Direct parse failed, trying fallback extraction: {raw[:100]!r}")

    # Strategy 2: Strip fences and extract the array literal
    cleaned = strip_code_fences(raw)
    match = _ARRAY_LITERAL.search(cleaned)
    if not match:
        raise GenerationFormatError(NO_ARRAY_MESSAGE, raw_response=raw)

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        debug_log(f"[JSON] Extracted literal is not valid JSON: {e}")
        raise GenerationFormatError(INVALID_JSON_MESSAGE, raw_response=raw) from e

    if not isinstance(parsed, list):
        raise GenerationFormatError(NO_ARRAY_MESSAGE, raw_response=raw)

    debug_log(f"[JSON] Fallback extraction recovered {len(parsed)} items")
    return parsed
