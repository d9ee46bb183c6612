"""
Multiple-choice flashcard generation.

Each chunk gets one schema-constrained language model prompt asking for
ceil(count / chunk_count) questions. Generation stops once `count` cards
have accumulated and the result is truncated to exactly `count`.

Answer index normalization:
    Models sometimes number options from 1 despite the schema. A batch is
    treated as one-based when at least one answer equals 4 and none equals 0;
    in that case every answer in the batch is shifted down by one. Cards
    still outside 0..3 afterwards are dropped.
"""

import math
from dataclasses import dataclass
from typing import Any

from studyscribe.chunking_engine import Chunk, ChunkingEngine
from studyscribe.config import PipelineConfig
from studyscribe.errors import GenerationFormatError
from studyscribe.generation.json_parsing import parse_json_array
from studyscribe.generation.prompts import (
    DIFFICULTY_GUIDES,
    FLASHCARD_SCHEMA,
    FLASHCARD_SYSTEM_PROMPT,
    build_flashcard_prompt,
)
from studyscribe.generation.service import GenerationService, LanguageModelOptions
from studyscribe.logging_config import debug_log, info, warning

from .progress import ProgressCallback, silent_progress
from .result_types import FLASHCARD_OPTION_COUNT, Flashcard

DEFAULT_EXPLANATION = "Review the text for the rationale."
MAX_FLASHCARD_COUNT = 50


@dataclass(frozen=True)
class FlashcardOptions:
    """
    Attributes:
        count: Number of cards to return
        difficulty: 'easy', 'medium' or 'hard'
    """
    count: int = 5
    difficulty: str = "medium"

    def __post_init__(self):
        if not 1 <= self.count <= MAX_FLASHCARD_COUNT:
            raise ValueError(f"count must be between 1 and {MAX_FLASHCARD_COUNT}, got {self.count}")
        if self.difficulty not in DIFFICULTY_GUIDES:
            raise ValueError(f"Unknown difficulty: {self.difficulty!r}")


def _as_index(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_flashcards(items: list[Any]) -> tuple[list[Flashcard], list[str]]:
    """
    Validate raw card dicts and fix one-based answer indices.

    Args:
        items: Parsed JSON array from the model

    Returns:
        (valid cards, warnings about dropped or corrected cards)
    """
    warnings = []
    candidates = []

    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            warnings.append(f"Card {position}: not an object, dropped")
            continue

        question = str(item.get('question') or '').strip()
        options = item.get('options')
        answer = _as_index(item.get('answer'))

        if not question:
            warnings.append(f"Card {position}: empty question, dropped")
            continue
        if not isinstance(options, list) or len(options) != FLASHCARD_OPTION_COUNT:
            warnings.append(f"Card {position}: expected {FLASHCARD_OPTION_COUNT} options, dropped")
            continue
        if answer is None:
            warnings.append(f"Card {position}: missing answer index, dropped")
            continue

        explanation = str(item.get('explanation') or '').strip() or DEFAULT_EXPLANATION
        candidates.append((position, question, tuple(str(o).strip() for o in options), answer, explanation))

    answers = [answer for _, _, _, answer, _ in candidates]
    one_based = any(a == FLASHCARD_OPTION_COUNT for a in answers) and 0 not in answers
    if one_based:
        warnings.append("Answer indices looked one-based; converted to zero-based")

    cards = []
    for position, question, options, answer, explanation in candidates:
        if one_based:
            answer -= 1
        if not 0 <= answer < FLASHCARD_OPTION_COUNT:
            warnings.append(f"Card {position}: answer index {answer} out of range, dropped")
            continue
        cards.append(Flashcard(question=question, options=options, answer=answer, explanation=explanation))

    for message in warnings:
        warning(f"[FLASHCARDS] {message}")

    return cards, warnings


class FlashcardPipeline:
    """Generates flashcards chunk by chunk with one language model prompt each."""

    def __init__(self, service: GenerationService, config: PipelineConfig):
        self.service = service
        self.config = config

    def make_chunker(self) -> ChunkingEngine:
        return ChunkingEngine.from_config(self.config, max_size=self.config.flashcard_max_chunk_size)

    async def generate_for_chunk(self, task, text: str, count: int, difficulty: str) -> list[Any]:
        """Prompt for `count` cards from one chunk and parse the JSON array."""
        session = await self.service.create_language_model(
            LanguageModelOptions(
                system_prompt=FLASHCARD_SYSTEM_PROMPT,
                temperature=self.config.language_model_temperature,
                top_k=self.config.language_model_top_k,
            )
        )
        task.hold_session(session)
        try:
            raw = await session.prompt(
                build_flashcard_prompt(text, count, difficulty),
                response_schema=FLASHCARD_SCHEMA,
                signal=task.token,
            )
        finally:
            task.release_session(session)

        debug_log(f"[FLASHCARDS] Raw response: {len(raw or '')} chars")
        return parse_json_array(raw)

    async def generate(
        self,
        task,
        chunks: list[Chunk],
        options: FlashcardOptions,
        progress: ProgressCallback = silent_progress,
    ) -> tuple[list[Flashcard], list[str]]:
        """
        Generate up to options.count cards across chunks.

        Returns:
            (cards truncated to options.count, warnings)

        Raises:
            GenerationFormatError: If a response cannot be parsed, or no
                                   usable card was produced at all
        """
        chunk_count = len(chunks)
        per_chunk = math.ceil(options.count / chunk_count)
        info(f"[FLASHCARDS] {options.count} cards from {chunk_count} chunks ({per_chunk} per chunk)")

        progress(f"Generating flashcards from {chunk_count} section(s)...", 20)
        progress_per_chunk = 70 / chunk_count

        cards: list[Flashcard] = []
        warnings: list[str] = []

        for i, chunk in enumerate(chunks):
            task.token.raise_if_cancelled()
            progress(f"Generating flashcards {i + 1}/{chunk_count}...", 20 + i * progress_per_chunk)

            items = await self.generate_for_chunk(task, chunk.text, per_chunk, options.difficulty)
            chunk_cards, chunk_warnings = normalize_flashcards(items)
            cards.extend(chunk_cards)
            warnings.extend(chunk_warnings)

            if len(cards) >= options.count:
                debug_log(f"[FLASHCARDS] Reached {len(cards)} cards after chunk {i + 1}/{chunk_count}")
                break

        task.token.raise_if_cancelled()
        progress("Finalizing flashcards...", 95)

        if not cards:
            raise GenerationFormatError("Failed to generate valid flashcards - no usable questions returned")

        return cards[:options.count], warnings
