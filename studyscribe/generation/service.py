"""
Generation Service Interface

Abstract interface for the on-device generative-text service the pipeline
drives. Concrete services are supplied by the host; the pipeline only talks
to these base classes.

Two capabilities are consumed:
- SUMMARIZER: dedicated summarization sessions (one-shot or streaming)
- LANGUAGE_MODEL: prompt sessions, free-form or constrained by a JSON schema

Every capability has an availability probe. UNSUPPORTED is fatal for the
operation that needs it; NEEDS_DOWNLOAD only produces an advisory.

Sessions hold device resources until destroy() is called. The pipeline
hands every session it creates to its Task, which destroys it on any
terminal state.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum
from typing import Any

from studyscribe.config import LANGUAGE_MODEL_TEMPERATURE, LANGUAGE_MODEL_TOP_K


class Capability(str, Enum):
    SUMMARIZER = "summarizer"
    LANGUAGE_MODEL = "language-model"


class Availability(str, Enum):
    READY = "ready"
    NEEDS_DOWNLOAD = "needs-download"
    UNSUPPORTED = "unsupported"


@dataclass(frozen=True)
class SummarizerOptions:
    """
    Options for a summarizer session.

    Attributes:
        type: 'key-points', 'tldr', 'teaser' or 'headline'
        length: 'short', 'medium' or 'long'
        format: 'markdown' or 'plain-text'
        language: Output language code
    """
    type: str = "key-points"
    length: str = "medium"
    format: str = "markdown"
    language: str = "en"


@dataclass(frozen=True)
class LanguageModelOptions:
    """Options for a language model prompt session."""
    system_prompt: str = ""
    temperature: float = LANGUAGE_MODEL_TEMPERATURE
    top_k: int = LANGUAGE_MODEL_TOP_K


class SummarizerSession(ABC):
    """A live summarizer session."""

    @abstractmethod
    async def summarize(self, text: str, context: str = "", signal=None) -> str:
        """
        Summarize text in one call.

        Args:
            text: Text to summarize
            context: Background hint for the summarizer
            signal: Optional CancellationToken; services that can abort
                    in-flight work should honor it

        Returns:
            Summary text
        """

    async def summarize_streaming(self, text: str, context: str = "", signal=None) -> AsyncIterator[str]:
        """
        Summarize text progressively.

        Each yielded value is the FULL text accumulated so far, not a delta.
        Services without native streaming yield the one-shot result once.
        """
        yield await self.summarize(text, context=context, signal=signal)

    @abstractmethod
    def destroy(self) -> None:
        """Release the session. May raise if it was already torn down."""


class LanguageModelSession(ABC):
    """A live language model prompt session."""

    @abstractmethod
    async def prompt(
        self,
        text: str,
        response_schema: dict[str, Any] | None = None,
        signal=None,
    ) -> str:
        """
        Send a prompt and return the raw response text.

        Args:
            text: Prompt text
            response_schema: JSON schema constraining the output, or None
                             for free-form text
            signal: Optional CancellationToken

        Returns:
            Raw response (JSON text when a schema was given)
        """

    @abstractmethod
    def destroy(self) -> None:
        """Release the session. May raise if it was already torn down."""


class GenerationService(ABC):
    """Entry point to the on-device generation service."""

    @abstractmethod
    def supports(self, capability: Capability) -> bool:
        """Whether the capability exists at all in this environment."""

    @abstractmethod
    async def availability(self, capability: Capability) -> Availability:
        """Probe whether the capability can be used right now."""

    @abstractmethod
    async def create_summarizer(self, options: SummarizerOptions) -> SummarizerSession:
        """Open a summarizer session."""

    @abstractmethod
    async def create_language_model(self, options: LanguageModelOptions) -> LanguageModelSession:
        """Open a language model session."""
