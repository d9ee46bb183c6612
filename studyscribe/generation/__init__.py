"""
Generation service interface for StudyScribe.

Components:
- GenerationService: Abstract on-device text generation service
- SummarizerSession / LanguageModelSession: Live sessions owned by a Task
- collect_latest: Consumes accumulate-latest summary streams
- parse_json_array: Structured output parsing with one fallback pass
"""

from .json_parsing import parse_json_array, strip_code_fences
from .service import (
    Availability,
    Capability,
    GenerationService,
    LanguageModelOptions,
    LanguageModelSession,
    SummarizerOptions,
    SummarizerSession,
)
from .streaming import collect_latest

__all__ = [
    'Availability',
    'Capability',
    'GenerationService',
    'LanguageModelOptions',
    'LanguageModelSession',
    'SummarizerOptions',
    'SummarizerSession',
    'collect_latest',
    'parse_json_array',
    'strip_code_fences',
]
