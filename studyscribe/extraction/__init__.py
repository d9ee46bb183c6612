"""
Content extraction for StudyScribe.

    from studyscribe.extraction import ContentExtractor, PageDocument, SourceMode

    extractor = ContentExtractor()
    result = extractor.extract(PageDocument(html=html), SourceMode.PAGE)
    warnings = validate_content(result)   # raises ContentTooShortError
"""

from .content_extractor import (
    CONTENT_SELECTORS,
    NOISE_SELECTORS,
    ContentExtractor,
    ExtractionResult,
    PageDocument,
    SourceKind,
    SourceMode,
    extract_text,
)
from .text_cleanup import cleanup_text, count_words, estimate_tokens
from .validation import validate_content

__all__ = [
    'CONTENT_SELECTORS',
    'NOISE_SELECTORS',
    'ContentExtractor',
    'ExtractionResult',
    'PageDocument',
    'SourceKind',
    'SourceMode',
    'extract_text',
    'cleanup_text',
    'count_words',
    'estimate_tokens',
    'validate_content',
]
