"""
Semantic Chunking Engine

Splits long page text into bounded chunks for the generation service:
1. Section detection (heading-like lines start a new section)
2. Greedy packing of whole sections up to max_size characters
3. Overlap seeding (each chunk starts with the tail of the previous one)
4. Force-split of single sections that are too large on their own

Text that already fits in max_size is returned as a single chunk.
"""

from dataclasses import dataclass, field

from studyscribe.config import CHUNK_MAX_SIZE, CHUNK_MIN_SIZE, CHUNK_OVERLAP, PipelineConfig
from studyscribe.logging_config import debug_log

# Heading detection limits
MAX_UPPERCASE_HEADING_CHARS = 80
MAX_COLON_HEADING_CHARS = 100

SECTION_SEPARATOR = "\n\n"
OVERLAP_SEPARATOR = "\n"


@dataclass(frozen=True)
class Chunk:
    """
    A bounded slice of source text.

    Attributes:
        text: Chunk text, including any overlap prefix
        index: Zero-based position of this chunk
        total_count: Number of chunks produced for the text
        headings: Section headings contained in this chunk
        overlap_chars: Length of the overlap prefix (incl. separator) at the start of text
    """
    text: str
    index: int
    total_count: int
    headings: tuple[str, ...] = field(default_factory=tuple)
    overlap_chars: int = 0

    @property
    def body(self) -> str:
        """Chunk text without the injected overlap prefix."""
        return self.text[self.overlap_chars:]

    @property
    def char_count(self) -> int:
        return len(self.text)


@dataclass
class _Section:
    heading: str | None = None
    lines: list[str] = field(default_factory=list)

    @property
    def body(self) -> str:
        return "\n".join(self.lines).strip()

    @property
    def text(self) -> str:
        if self.heading:
            return f"{self.heading}\n{self.body}".strip()
        return self.body


def is_heading(line: str) -> bool:
    """
    Check whether a trimmed line looks like a section heading.

    A heading is either a short all upper-case line (with at least one
    letter) or a line ending in a colon.
    """
    if not line:
        return False
    if (
        len(line) < MAX_UPPERCASE_HEADING_CHARS
        and line == line.upper()
        and any(ch.isalpha() for ch in line)
    ):
        return True
    return len(line) < MAX_COLON_HEADING_CHARS and line.endswith(':')


class ChunkingEngine:
    """
    Heading-aware text chunker with overlap.

    Example:
        engine = ChunkingEngine(max_size=8000)
        for chunk in engine.chunk_text(text):
            print(chunk.index, chunk.headings, len(chunk.text))
    """

    def __init__(
        self,
        max_size: int = CHUNK_MAX_SIZE,
        min_size: int = CHUNK_MIN_SIZE,
        overlap: int = CHUNK_OVERLAP,
    ):
        if max_size <= 0:
            raise ValueError(f"max_size must be positive, got {max_size}")
        if overlap < 0 or overlap >= max_size:
            raise ValueError(f"overlap must be in [0, max_size), got {overlap}")
        if min_size < 0:
            raise ValueError(f"min_size must be non-negative, got {min_size}")

        self.max_size = max_size
        self.min_size = min_size
        self.overlap = overlap

        # Largest section piece that still fits after an overlap prefix
        self.max_piece_chars = max(max_size - overlap - len(OVERLAP_SEPARATOR), 1)

    @classmethod
    def from_config(cls, config: PipelineConfig, max_size: int | None = None) -> 'ChunkingEngine':
        """
        Build a chunker from pipeline settings.

        Args:
            config: PipelineConfig (chunk_max_size is the ceiling for every chunker)
            max_size: Optional per-operation size, capped at config.chunk_max_size
        """
        size = config.chunk_max_size if max_size is None else min(max_size, config.chunk_max_size)
        return cls(max_size=size, min_size=config.chunk_min_size, overlap=config.chunk_overlap)

    def chunk_text(self, text: str) -> list[Chunk]:
        """
        Split text into chunks.

        Args:
            text: Normalized source text

        Returns:
            Ordered list of Chunk objects (never empty)
        """
        if len(text) <= self.max_size:
            return [Chunk(text=text.strip(), index=0, total_count=1)]

        sections = self._split_into_sections(text)
        debug_log(f"[CHUNKER] Split {len(text)} chars into {len(sections)} sections")

        pieces = []
        for section in sections:
            pieces.extend(self._split_section(section))

        drafts = self._pack(pieces)
        if not drafts:
            # Whitespace-only input
            return [Chunk(text=text.strip(), index=0, total_count=1)]
        total = len(drafts)
        chunks = [
            Chunk(
                text=draft_text,
                index=i,
                total_count=total,
                headings=tuple(headings),
                overlap_chars=overlap_chars,
            )
            for i, (draft_text, headings, overlap_chars) in enumerate(drafts)
        ]

        debug_log(
            f"[CHUNKER] Created {total} chunks "
            f"(sizes: {[c.char_count for c in chunks]}, max {self.max_size})"
        )
        return chunks

    def _split_into_sections(self, text: str) -> list[_Section]:
        """
        Scan lines and group them under heading-like markers.

        A heading starts a new section only when the current section already
        has body text; a heading directly after another heading stays in the
        body of the section the first one opened.
        """
        sections = []
        current = _Section()

        for raw_line in text.split('\n'):
            line = raw_line.strip()

            if is_heading(line):
                if current.body:
                    sections.append(current)
                    current = _Section(heading=line)
                    continue
                if current.heading is None:
                    current.heading = line
                    continue

            current.lines.append(line)

        if current.heading or current.body:
            sections.append(current)

        return sections

    def _split_section(self, section: _Section) -> list[tuple[str, str | None]]:
        """
        Return (text, heading) pieces for a section.

        Sections small enough to follow an overlap prefix are returned whole;
        larger ones are force-split and only the first piece keeps the heading.
        """
        section_text = section.text
        if len(section_text) <= self.max_piece_chars:
            return [(section_text, section.heading)]

        parts = self._force_split_oversized(section_text)
        return [
            (part, section.heading if i == 0 else None)
            for i, part in enumerate(parts)
        ]

    def _pack(self, pieces: list[tuple[str, str | None]]) -> list[tuple[str, list[str], int]]:
        """
        Greedily pack pieces into chunk drafts.

        Returns:
            List of (text, headings, overlap_chars) tuples
        """
        drafts = []
        overlap_prefix = ""
        parts: list[str] = []
        headings: list[str] = []

        def render() -> str:
            body = SECTION_SEPARATOR.join(parts)
            if overlap_prefix:
                return f"{overlap_prefix}{OVERLAP_SEPARATOR}{body}"
            return body

        def prefix_chars() -> int:
            return len(overlap_prefix) + len(OVERLAP_SEPARATOR) if overlap_prefix else 0

        for piece_text, heading in pieces:
            if parts:
                candidate_len = len(render()) + len(SECTION_SEPARATOR) + len(piece_text)
                if candidate_len > self.max_size:
                    sealed = render()
                    drafts.append((sealed, headings, prefix_chars()))
                    overlap_prefix = sealed[-self.overlap:].lstrip() if self.overlap else ""
                    parts = []
                    headings = []

            parts.append(piece_text)
            if heading:
                headings.append(heading)

        if parts:
            final_text = render()
            if drafts and len(final_text.strip()) < self.min_size:
                debug_log(
                    f"[CHUNKER] Discarding final chunk of {len(final_text.strip())} chars "
                    f"(minimum {self.min_size})"
                )
            else:
                drafts.append((final_text, headings, prefix_chars()))

        return drafts

    def _force_split_oversized(self, text: str) -> list[str]:
        """
        Force-split oversized text.

        Splits at a sentence boundary where possible, then at whitespace,
        and finally hard-breaks at the size limit.

        Args:
            text: Oversized section text

        Returns:
            List of text segments, each <= max_piece_chars
        """
        limit = self.max_piece_chars
        if len(text) <= limit:
            return [text]

        result = []
        remaining = text
        search_floor = limit // 2

        while remaining:
            if len(remaining) <= limit:
                result.append(remaining)
                break

            # Look for sentence boundary first (. ! ?)
            best_break = -1
            for i in range(limit - 1, search_floor, -1):
                if remaining[i] in '.!?' and remaining[i + 1].isspace():
                    best_break = i + 1
                    break

            # Fall back to whitespace
            if best_break == -1:
                for i in range(limit - 1, search_floor, -1):
                    if remaining[i].isspace():
                        best_break = i
                        break

            # Last resort: hard break at the limit
            if best_break == -1:
                best_break = limit

            piece = remaining[:best_break].strip()
            if piece:
                result.append(piece)
            remaining = remaining[best_break:].strip()

        debug_log(f"[CHUNKER] Force-split: {len(text)} chars -> {len(result)} segments")
        return result
