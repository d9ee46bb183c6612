"""
Pipeline operations for StudyScribe.

Components:
- PipelineOrchestrator: Runs summarize / flashcards / report as Tasks
- SummarizePipeline: Single-pass or chunk-then-combine summarization
- FlashcardPipeline: Per-chunk schema-constrained MCQ generation
- ReportPipeline: Multi-source synthesis with a locally built references section
- SummaryResult / FlashcardResult / ReportResult: Tagged result union

Usage:
    from studyscribe.pipeline import PipelineOrchestrator, SummaryOptions

    orchestrator = PipelineOrchestrator(service, registry)
    task = await orchestrator.summarize(document, SummaryOptions(type="tldr"))
"""

from .result_types import (
    Citation,
    Flashcard,
    FlashcardResult,
    PipelineResult,
    ReportResult,
    SummaryResult,
    result_from_dict,
)
from .progress import ProgressReporter
from .summarize import SummarizePipeline, SummaryOptions, format_sectioned_summary
from .flashcards import FlashcardOptions, FlashcardPipeline, normalize_flashcards
from .report import ReportOptions, ReportPipeline, ReportSource, build_references_section
from .orchestrator import PipelineOrchestrator

__all__ = [
    'Citation',
    'Flashcard',
    'FlashcardOptions',
    'FlashcardPipeline',
    'FlashcardResult',
    'PipelineOrchestrator',
    'PipelineResult',
    'ProgressReporter',
    'ReportOptions',
    'ReportPipeline',
    'ReportResult',
    'ReportSource',
    'SummarizePipeline',
    'SummaryOptions',
    'SummaryResult',
    'build_references_section',
    'format_sectioned_summary',
    'normalize_flashcards',
    'result_from_dict',
]
