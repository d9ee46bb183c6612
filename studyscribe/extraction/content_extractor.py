"""
Content Extractor for StudyScribe.

Isolates the main textual content of a web page and normalizes it for the
generation pipeline. Works from an HTML snapshot of the page plus the
user's current selection, both handed over by the host UI layer.

Extraction order:
1. Selection (if requested and at least MIN_SELECTION_CHARS long)
2. First semantic content container holding more than
   MIN_MAIN_CONTENT_CHARS characters (article, main, role=main, ...)
3. Full <body>

Noise (scripts, navigation, ads, headers/footers, social widgets, modals)
is stripped from a copy of the chosen container; the parsed page itself is
never modified.

Extraction never raises. If anything inside goes wrong the raw,
unprocessed text is returned with used_fallback=True and a warning.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from enum import Enum

from bs4 import BeautifulSoup, NavigableString, Tag

from studyscribe.config import MIN_MAIN_CONTENT_CHARS, MIN_SELECTION_CHARS
from studyscribe.logging_config import debug_log, warning

from .text_cleanup import cleanup_text, count_words

# Selectors for main content (in priority order)
CONTENT_SELECTORS = [
    'article',
    'main',
    '[role="main"]',
    '.main-content',
    '.content',
    '#content',
    '.post-content',
    '.entry-content',
    '.article-content',
]

# Selectors for elements to remove (noise)
NOISE_SELECTORS = [
    'script', 'style', 'noscript', 'iframe', 'embed',
    'nav', 'header', 'footer', 'aside',
    '.advertisement', '.ad', '.ads', '.social-share',
    '.comments', '.cookie-banner', '.modal', '.popup',
    '[role="banner"]', '[role="navigation"]', '[role="complementary"]',
]

# Elements that render on their own line
BLOCK_TAGS = [
    'address', 'article', 'aside', 'blockquote', 'dd', 'div', 'dl', 'dt',
    'fieldset', 'figcaption', 'figure', 'footer', 'form', 'h1', 'h2', 'h3',
    'h4', 'h5', 'h6', 'header', 'hr', 'li', 'main', 'nav', 'ol', 'p', 'pre',
    'section', 'table', 'tr', 'ul',
]

_TAG_PATTERN = re.compile(r'<[^>]+>')


class SourceMode(str, Enum):
    """What the caller asked to extract."""
    SELECTION = "selection"
    PAGE = "page"


class SourceKind(str, Enum):
    """Where the extracted text actually came from."""
    SELECTION = "selection"
    MAIN_CONTENT = "main-content"
    FULL_BODY = "full-body"


@dataclass(frozen=True)
class PageDocument:
    """
    Snapshot of a page supplied by the host UI layer.

    Attributes:
        html: Full page markup
        selection_text: Currently selected text ('' if none)
        title: Page title
        url: Page URL
    """
    html: str = ""
    selection_text: str = ""
    title: str = ""
    url: str = ""


@dataclass(frozen=True)
class ExtractionResult:
    """
    Immutable outcome of one extraction call.

    Attributes:
        text: Normalized text
        source_kind: Selection, main content container, or full body
        found_main_content: True if a semantic container qualified
        char_count: Length of text
        word_count: Whitespace-separated words in text
        title: Page title
        url: Page URL
        extracted_from: Matching selector, 'selection' or 'body'
        warnings: Non-fatal extraction warnings
        used_fallback: True if the raw-text fallback was used
    """
    text: str
    source_kind: SourceKind
    found_main_content: bool
    char_count: int
    word_count: int
    title: str = ""
    url: str = ""
    extracted_from: str = "body"
    warnings: tuple[str, ...] = field(default_factory=tuple)
    used_fallback: bool = False


def extract_text(text: str, title: str = "", url: str = "") -> ExtractionResult:
    """
    Build an ExtractionResult from plain text the caller already holds.

    Used for report sources, whose text was captured earlier.
    """
    cleaned = cleanup_text(text)
    return ExtractionResult(
        text=cleaned,
        source_kind=SourceKind.SELECTION,
        found_main_content=False,
        char_count=len(cleaned),
        word_count=count_words(cleaned),
        title=title,
        url=url,
        extracted_from="text",
    )


class ContentExtractor:
    """
    Extracts clean text from a PageDocument.

    Example:
        extractor = ContentExtractor()
        result = extractor.extract(PageDocument(html=page_html), SourceMode.PAGE)
        print(result.char_count, result.source_kind)
    """

    def __init__(
        self,
        content_selectors: list[str] | None = None,
        noise_selectors: list[str] | None = None,
        parser: str = "html.parser",
    ):
        self.content_selectors = content_selectors or CONTENT_SELECTORS
        self.noise_selectors = noise_selectors or NOISE_SELECTORS
        self.parser = parser

    def extract(
        self,
        document: PageDocument,
        source_mode: SourceMode = SourceMode.PAGE,
    ) -> ExtractionResult:
        """
        Extract content from the page or the selection.

        Args:
            document: Page snapshot
            source_mode: SELECTION or PAGE

        Returns:
            ExtractionResult. Never raises.
        """
        try:
            if source_mode == SourceMode.SELECTION:
                selection = self._extract_selection(document)
                if selection is not None:
                    return selection
                debug_log("[EXTRACTOR] Selection empty or too short, falling back to page")
            return self._extract_main_content(document)
        except Exception as e:
            warning(f"[EXTRACTOR] Content extraction error: {e}")
            return self._fallback(document, source_mode, e)

    def _extract_selection(self, document: PageDocument) -> ExtractionResult | None:
        """Return the cleaned selection, or None if it is too short to use."""
        text = cleanup_text(document.selection_text or "")
        if len(text) < MIN_SELECTION_CHARS:
            return None

        return ExtractionResult(
            text=text,
            source_kind=SourceKind.SELECTION,
            found_main_content=False,
            char_count=len(text),
            word_count=count_words(text),
            title=document.title,
            url=document.url,
            extracted_from="selection",
        )

    def _extract_main_content(self, document: PageDocument) -> ExtractionResult:
        """Probe content containers in priority order, falling back to the body."""
        soup = BeautifulSoup(document.html or "", self.parser)
        title = document.title or (soup.title.get_text(strip=True) if soup.title else "")

        content_root = None
        extracted_from = "body"
        for selector in self.content_selectors:
            candidate = soup.select_one(selector)
            if candidate is not None and len(candidate.get_text().strip()) > MIN_MAIN_CONTENT_CHARS:
                content_root = candidate
                extracted_from = selector
                break

        found_main_content = content_root is not None
        if content_root is None:
            content_root = soup.body or soup

        text = cleanup_text(self._clean_copy_text(content_root))
        debug_log(
            f"[EXTRACTOR] Extracted {len(text)} chars from '{extracted_from}' "
            f"(main content: {found_main_content})"
        )

        return ExtractionResult(
            text=text,
            source_kind=SourceKind.MAIN_CONTENT if found_main_content else SourceKind.FULL_BODY,
            found_main_content=found_main_content,
            char_count=len(text),
            word_count=count_words(text),
            title=title,
            url=document.url,
            extracted_from=extracted_from,
        )

    def _clean_copy_text(self, root: Tag) -> str:
        """Read the text of a noise-free copy of root."""
        clone = copy.copy(root)

        for selector in self.noise_selectors:
            for element in clone.select(selector):
                element.extract()

        for br in clone.find_all('br'):
            br.replace_with('\n')
        for block in clone.find_all(BLOCK_TAGS):
            block.insert_before(NavigableString('\n'))
            block.append(NavigableString('\n'))

        return clone.get_text()

    def _fallback(
        self,
        document: PageDocument,
        source_mode: SourceMode,
        exc: Exception,
    ) -> ExtractionResult:
        """Raw, unprocessed text used when extraction itself failed."""
        if source_mode == SourceMode.SELECTION and (document.selection_text or "").strip():
            text = document.selection_text
            kind = SourceKind.SELECTION
            extracted_from = "selection"
        else:
            text = _TAG_PATTERN.sub(' ', document.html or "")
            kind = SourceKind.FULL_BODY
            extracted_from = "body"

        return ExtractionResult(
            text=text,
            source_kind=kind,
            found_main_content=False,
            char_count=len(text),
            word_count=count_words(text),
            title=document.title,
            url=document.url,
            extracted_from=extracted_from,
            warnings=(f"Using fallback extraction due to error: {exc}",),
            used_fallback=True,
        )
