"""
Tests for text cleanup helpers and content validation.
"""

import pytest

from studyscribe.errors import ContentTooShortError
from studyscribe.extraction import (
    ExtractionResult,
    SourceKind,
    cleanup_text,
    count_words,
    estimate_tokens,
    validate_content,
)


def make_result(text, source_kind=SourceKind.MAIN_CONTENT, found_main_content=True, warnings=()):
    return ExtractionResult(
        text=text,
        source_kind=source_kind,
        found_main_content=found_main_content,
        char_count=len(text),
        word_count=count_words(text),
        warnings=warnings,
    )


class TestCleanupText:
    """Whitespace normalization."""

    def test_collapses_spaces_and_tabs(self):
        assert cleanup_text("a  b\t\tc \t d") == "a b c d"

    def test_trims_each_line(self):
        assert cleanup_text("  first  \n   second   ") == "first\nsecond"

    def test_collapses_blank_line_runs(self):
        """Three or more newlines become exactly one blank line."""
        assert cleanup_text("a\n\n\n\n\nb\n\nc") == "a\n\nb\n\nc"

    def test_normalizes_line_endings(self):
        assert cleanup_text("a\r\nb\rc") == "a\nb\nc"

    def test_blank_lines_with_spaces_collapse(self):
        """Whitespace-only lines count as blank once trimmed."""
        assert cleanup_text("a\n  \n \t \n  \nb") == "a\n\nb"

    def test_empty_input(self):
        assert cleanup_text("") == ""
        assert cleanup_text(None) == ""


class TestEstimates:
    """Size heuristics."""

    def test_estimate_tokens_rounds_up(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_count_words(self):
        assert count_words("one  two\nthree") == 3
        assert count_words("") == 0


class TestValidateContent:
    """Suitability checks."""

    def test_short_content_raises(self):
        """Fewer than 50 characters is rejected."""
        with pytest.raises(ContentTooShortError) as exc_info:
            validate_content(make_result("x" * 49))

        assert exc_info.value.char_count == 49
        assert exc_info.value.user_message == "Content too short (minimum 50 characters)"

    def test_exactly_minimum_passes(self):
        text = "word " * 9 + "fifty"
        assert len(text) == 50
        assert validate_content(make_result(text)) == []

    def test_long_average_word_warns(self):
        """Average word length over 20 suggests garbled text."""
        warnings = validate_content(make_result("a" * 30 + " " + "b" * 30))

        assert "Content may contain unusual formatting or non-text characters" in warnings

    def test_huge_content_warns(self):
        text = "word " * 50000
        warnings = validate_content(make_result(text))

        tokens = estimate_tokens(text)
        assert f"Very large content (~{tokens} tokens). Consider using a more specific selection." in warnings

    def test_missing_main_content_warns(self):
        warnings = validate_content(
            make_result("Plain body text. " * 5, source_kind=SourceKind.FULL_BODY, found_main_content=False)
        )

        assert warnings == ["Could not identify main content area. Results may include navigation or ads."]

    def test_selection_does_not_warn_about_main_content(self):
        warnings = validate_content(
            make_result("Selected text. " * 5, source_kind=SourceKind.SELECTION, found_main_content=False)
        )

        assert warnings == []

    def test_extraction_warnings_are_carried(self):
        result = make_result("Fallback text. " * 5, warnings=("Using fallback extraction due to error: boom",))

        assert validate_content(result) == ["Using fallback extraction due to error: boom"]
