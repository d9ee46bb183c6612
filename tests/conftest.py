"""
Shared fixtures: a scripted generation service and ready-made collaborators.
"""

import json
import re
import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from studyscribe.config import PipelineConfig
from studyscribe.generation.service import (
    Availability,
    Capability,
    GenerationService,
    LanguageModelSession,
    SummarizerSession,
)
from studyscribe.pipeline import PipelineOrchestrator
from studyscribe.storage import InMemoryStore
from studyscribe.tasks import TaskRegistry
from studyscribe.timing_estimator import TimingEstimator

_COUNT_PATTERN = re.compile(r'Generate (\d+) multiple-choice questions')


def make_cards(count, one_based=False, start=0):
    """Card dicts as a model would return them."""
    cards = []
    for i in range(count):
        answer = (start + i) % 4
        cards.append({
            'question': f"Question {start + i + 1}?",
            'options': [f"Option {c}" for c in "ABCD"],
            'answer': answer + 1 if one_based else answer,
            'explanation': f"Because of reason {start + i + 1}.",
        })
    return cards


def default_summarize(text, options):
    return f"Summary[{options.type}/{options.length}] of {len(text)} chars"


class FakeSummarizerSession(SummarizerSession):
    def __init__(self, service, options):
        self.service = service
        self.options = options
        self.destroyed = False

    async def summarize(self, text, context="", signal=None):
        self.service.summarize_calls.append({'text': text, 'options': self.options, 'context': context})
        if self.service.before_result:
            self.service.before_result()
        return self.service.summarize_fn(text, self.options)

    async def summarize_streaming(self, text, context="", signal=None):
        final = await self.summarize(text, context=context, signal=signal)
        # Accumulated text, growing each step
        for end in (len(final) // 3, 2 * len(final) // 3, len(final)):
            yield final[:end]

    def destroy(self):
        self.destroyed = True
        self.service.destroyed_sessions.append(self)


class FakeLanguageModelSession(LanguageModelSession):
    def __init__(self, service, options):
        self.service = service
        self.options = options
        self.destroyed = False

    async def prompt(self, text, response_schema=None, signal=None):
        self.service.prompt_calls.append({'text': text, 'schema': response_schema, 'options': self.options})
        if self.service.before_result:
            self.service.before_result()
        if self.service.prompt_responses:
            return self.service.prompt_responses.pop(0)
        if response_schema is not None:
            match = _COUNT_PATTERN.search(text)
            count = int(match.group(1)) if match else 3
            start = self.service.cards_served
            self.service.cards_served += count
            return json.dumps(make_cards(count, start=start))
        return "# Report\n\nSynthesized body text."

    def destroy(self):
        self.destroyed = True
        self.service.destroyed_sessions.append(self)


class FakeGenerationService(GenerationService):
    """
    Scripted stand-in for the on-device service.

    Args:
        availability: Capability -> Availability (default READY for all)
        supported: Capabilities that exist (default both)
        summarize_fn: (text, SummarizerOptions) -> summary
        prompt_responses: Raw responses returned in order before the defaults
    """

    def __init__(self, availability=None, supported=None, summarize_fn=None, prompt_responses=None):
        self._availability = availability or {}
        self._supported = set(supported) if supported is not None else set(Capability)
        self.summarize_fn = summarize_fn or default_summarize
        self.prompt_responses = list(prompt_responses or [])
        self.before_result = None

        self.summarize_calls = []
        self.prompt_calls = []
        self.created_sessions = []
        self.destroyed_sessions = []
        self.cards_served = 0

    def supports(self, capability):
        return capability in self._supported

    async def availability(self, capability):
        return self._availability.get(capability, Availability.READY)

    async def create_summarizer(self, options):
        session = FakeSummarizerSession(self, options)
        self.created_sessions.append(session)
        return session

    async def create_language_model(self, options):
        session = FakeLanguageModelSession(self, options)
        self.created_sessions.append(session)
        return session


def article_html(body_text, title="Test Page"):
    paragraphs = "".join(f"<p>{p}</p>" for p in body_text.split("\n\n"))
    return (
        f"<html><head><title>{title}</title></head><body>"
        f"<nav>Home | About | Contact</nav>"
        f"<article>{paragraphs}</article>"
        f"<footer>Copyright 2024</footer>"
        f"</body></html>"
    )


@pytest.fixture
def service():
    return FakeGenerationService()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def estimator(store):
    return TimingEstimator(store)


@pytest.fixture
def registry(estimator):
    return TaskRegistry(estimator=estimator)


@pytest.fixture
def orchestrator(service, registry):
    return PipelineOrchestrator(service, registry, config=PipelineConfig())
