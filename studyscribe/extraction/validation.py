"""
Suitability checks for extracted content.
"""

from studyscribe.config import (
    LARGE_CONTENT_TOKEN_WARNING,
    MAX_AVERAGE_WORD_LENGTH,
    MIN_CONTENT_CHARS,
)
from studyscribe.errors import ContentTooShortError

from .content_extractor import ExtractionResult, SourceKind
from .text_cleanup import estimate_tokens


def validate_content(extraction: ExtractionResult) -> list[str]:
    """
    Check that extracted content is suitable for AI processing.

    Args:
        extraction: Result from ContentExtractor.extract()

    Returns:
        Non-fatal warnings, including any carried on the extraction itself

    Raises:
        ContentTooShortError: If the text is shorter than MIN_CONTENT_CHARS
    """
    text = extraction.text
    if len(text) < MIN_CONTENT_CHARS:
        raise ContentTooShortError(char_count=len(text), minimum=MIN_CONTENT_CHARS)

    warnings = list(extraction.warnings)

    avg_word_length = len(text) / max(extraction.word_count, 1)
    if avg_word_length > MAX_AVERAGE_WORD_LENGTH:
        warnings.append('Content may contain unusual formatting or non-text characters')

    tokens = estimate_tokens(text)
    if tokens > LARGE_CONTENT_TOKEN_WARNING:
        warnings.append(f'Very large content (~{tokens} tokens). Consider using a more specific selection.')

    if extraction.source_kind == SourceKind.FULL_BODY and not extraction.found_main_content:
        warnings.append('Could not identify main content area. Results may include navigation or ads.')

    return warnings
