"""
Result types produced by the pipeline operations.

Each operation returns one member of a small tagged union:

    SummaryResult    kind == "summary"
    FlashcardResult  kind == "flashcards"
    ReportResult     kind == "report"

All results are plain dataclasses that round-trip through dicts, which is
how the result cache persists them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

FLASHCARD_OPTION_COUNT = 4


def _now_iso() -> str:
    return datetime.now().isoformat()


@dataclass(frozen=True)
class Flashcard:
    """
    One multiple-choice study item.

    Attributes:
        question: Question text
        options: Exactly four answer options
        answer: Zero-based index of the correct option
        explanation: Short rationale for the answer
    """
    question: str
    options: tuple[str, ...]
    answer: int
    explanation: str

    def __post_init__(self):
        if len(self.options) != FLASHCARD_OPTION_COUNT:
            raise ValueError(f"Flashcard needs {FLASHCARD_OPTION_COUNT} options, got {len(self.options)}")
        if not 0 <= self.answer < FLASHCARD_OPTION_COUNT:
            raise ValueError(f"Flashcard answer index out of range: {self.answer}")

    @property
    def correct_option(self) -> str:
        return self.options[self.answer]

    def to_dict(self) -> dict[str, Any]:
        return {
            'question': self.question,
            'options': list(self.options),
            'answer': self.answer,
            'explanation': self.explanation,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Flashcard':
        return cls(
            question=data['question'],
            options=tuple(data['options']),
            answer=int(data['answer']),
            explanation=data.get('explanation', ''),
        )


@dataclass(frozen=True)
class Citation:
    """A report source as listed in the references section."""
    title: str
    url: str
    source_type: str = "page"

    def to_dict(self) -> dict[str, Any]:
        return {'title': self.title, 'url': self.url, 'source_type': self.source_type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'Citation':
        return cls(
            title=data.get('title', ''),
            url=data.get('url', ''),
            source_type=data.get('source_type', 'page'),
        )


@dataclass(frozen=True)
class SummaryResult:
    """Outcome of a summarize operation."""
    summary: str
    summary_type: str
    length: str
    format: str
    chunk_count: int = 1
    title: str = ""
    url: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)
    generated_at: str = field(default_factory=_now_iso)

    @property
    def kind(self) -> str:
        return "summary"

    def to_dict(self) -> dict[str, Any]:
        return {
            'kind': self.kind,
            'summary': self.summary,
            'summary_type': self.summary_type,
            'length': self.length,
            'format': self.format,
            'chunk_count': self.chunk_count,
            'title': self.title,
            'url': self.url,
            'warnings': list(self.warnings),
            'generated_at': self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'SummaryResult':
        return cls(
            summary=data['summary'],
            summary_type=data['summary_type'],
            length=data['length'],
            format=data['format'],
            chunk_count=data.get('chunk_count', 1),
            title=data.get('title', ''),
            url=data.get('url', ''),
            warnings=tuple(data.get('warnings', ())),
            generated_at=data.get('generated_at') or _now_iso(),
        )


@dataclass(frozen=True)
class FlashcardResult:
    """Outcome of a flashcard generation operation."""
    flashcards: tuple[Flashcard, ...]
    requested_count: int
    difficulty: str
    chunk_count: int = 1
    title: str = ""
    url: str = ""
    warnings: tuple[str, ...] = field(default_factory=tuple)
    generated_at: str = field(default_factory=_now_iso)

    @property
    def kind(self) -> str:
        return "flashcards"

    def to_dict(self) -> dict[str, Any]:
        return {
            'kind': self.kind,
            'flashcards': [card.to_dict() for card in self.flashcards],
            'requested_count': self.requested_count,
            'difficulty': self.difficulty,
            'chunk_count': self.chunk_count,
            'title': self.title,
            'url': self.url,
            'warnings': list(self.warnings),
            'generated_at': self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'FlashcardResult':
        return cls(
            flashcards=tuple(Flashcard.from_dict(card) for card in data['flashcards']),
            requested_count=data['requested_count'],
            difficulty=data['difficulty'],
            chunk_count=data.get('chunk_count', 1),
            title=data.get('title', ''),
            url=data.get('url', ''),
            warnings=tuple(data.get('warnings', ())),
            generated_at=data.get('generated_at') or _now_iso(),
        )


@dataclass(frozen=True)
class ReportResult:
    """Outcome of a report synthesis operation."""
    report: str
    citations: tuple[Citation, ...]
    language: str = "en"
    generated_at: str = field(default_factory=_now_iso)

    @property
    def kind(self) -> str:
        return "report"

    @property
    def source_count(self) -> int:
        return len(self.citations)

    def to_dict(self) -> dict[str, Any]:
        return {
            'kind': self.kind,
            'report': self.report,
            'citations': [citation.to_dict() for citation in self.citations],
            'language': self.language,
            'generated_at': self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'ReportResult':
        return cls(
            report=data['report'],
            citations=tuple(Citation.from_dict(c) for c in data.get('citations', ())),
            language=data.get('language', 'en'),
            generated_at=data.get('generated_at') or _now_iso(),
        )


PipelineResult = SummaryResult | FlashcardResult | ReportResult

_RESULT_TYPES = {
    'summary': SummaryResult,
    'flashcards': FlashcardResult,
    'report': ReportResult,
}


def result_from_dict(data: dict[str, Any]) -> PipelineResult:
    """
    Rebuild a result from its dict form.

    Raises:
        ValueError: If the 'kind' tag is missing or unknown
    """
    kind = data.get('kind')
    result_type = _RESULT_TYPES.get(kind)
    if result_type is None:
        raise ValueError(f"Unknown result kind: {kind!r}")
    return result_type.from_dict(data)
