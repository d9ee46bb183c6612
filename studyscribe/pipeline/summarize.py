"""
Summarization over one or more chunks.

Single chunk: one streaming summarization at the requested options.

Multiple chunks: every chunk is summarized at 'short' length, then combined:
- key-points: structural combination. Each partial summary is placed under
  the first section heading of its chunk (or 'Part N').
- other types: the partials are joined and, if the joined text is still
  small enough, summarized once more at the requested options
  ("summary of summaries"). Otherwise the joined text is returned as is.
"""

from dataclasses import dataclass, replace

from studyscribe.chunking_engine import Chunk, ChunkingEngine
from studyscribe.config import PipelineConfig
from studyscribe.extraction.text_cleanup import estimate_tokens
from studyscribe.generation.service import GenerationService, SummarizerOptions
from studyscribe.generation.streaming import collect_latest
from studyscribe.logging_config import debug_log, info

from .progress import ProgressCallback, silent_progress

SUMMARY_TYPES = ('key-points', 'tldr', 'teaser', 'headline')
SUMMARY_LENGTHS = ('short', 'medium', 'long')
SUMMARY_FORMATS = ('markdown', 'plain-text')


@dataclass(frozen=True)
class SummaryOptions:
    """
    Caller-facing summary options.

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

    def __post_init__(self):
        if self.type not in SUMMARY_TYPES:
            raise ValueError(f"Unknown summary type: {self.type!r}")
        if self.length not in SUMMARY_LENGTHS:
            raise ValueError(f"Unknown summary length: {self.length!r}")
        if self.format not in SUMMARY_FORMATS:
            raise ValueError(f"Unknown summary format: {self.format!r}")
        if not self.language:
            object.__setattr__(self, 'language', 'en')

    def to_summarizer_options(self) -> SummarizerOptions:
        return SummarizerOptions(
            type=self.type,
            length=self.length,
            format=self.format,
            language=self.language,
        )


class SummarizePipeline:
    """
    Drives the summarizer over chunks and combines the partial results.

    Every summarizer session is handed to the task, so cancelling the task
    tears the session down; sessions are released as soon as their chunk
    is done.
    """

    def __init__(self, service: GenerationService, config: PipelineConfig):
        self.service = service
        self.config = config

    def make_chunker(self) -> ChunkingEngine:
        return ChunkingEngine.from_config(self.config, max_size=self.config.summary_max_chunk_size)

    async def summarize_once(self, task, text: str, options: SummaryOptions) -> str:
        """One streaming summarization call, keeping the latest value."""
        session = await self.service.create_summarizer(options.to_summarizer_options())
        task.hold_session(session)
        try:
            stream = session.summarize_streaming(
                text,
                context=self.config.summarizer_context,
                signal=task.token,
            )
            summary = await collect_latest(stream)
        finally:
            task.release_session(session)

        debug_log(f"[SUMMARIZE] {len(text)} chars -> {len(summary)} chars ({options.type}/{options.length})")
        return summary

    async def summarize_chunks(
        self,
        task,
        chunks: list[Chunk],
        options: SummaryOptions,
        progress: ProgressCallback = silent_progress,
    ) -> str:
        """
        Summarize pre-chunked text.

        Args:
            task: Owning Task (sessions and cancellation)
            chunks: Output of ChunkingEngine.chunk_text()
            options: Requested summary options
            progress: (message, percent) sink

        Returns:
            Final summary text
        """
        if len(chunks) == 1:
            progress("Summarizing content...", 20)
            return await self.summarize_once(task, chunks[0].text, options)

        chunk_count = len(chunks)
        info(f"[SUMMARIZE] Summarizing {chunk_count} chunks ({options.type})")
        progress(f"Summarizing {chunk_count} chunks...", 20)

        partial_options = replace(options, length='short')
        progress_per_chunk = 60 / chunk_count
        partials: list[tuple[Chunk, str]] = []

        for i, chunk in enumerate(chunks):
            task.token.raise_if_cancelled()
            progress(f"Summarizing chunk {i + 1}/{chunk_count}...", 20 + i * progress_per_chunk)
            partial = await self.summarize_once(task, chunk.text, partial_options)
            partials.append((chunk, partial))

        task.token.raise_if_cancelled()
        progress("Combining summaries...", 85)
        return await self.combine_summaries(task, partials, options)

    async def summarize_text(
        self,
        task,
        text: str,
        options: SummaryOptions,
        progress: ProgressCallback = silent_progress,
    ) -> str:
        """Chunk text with the summary chunk size, then summarize it."""
        chunks = self.make_chunker().chunk_text(text)
        return await self.summarize_chunks(task, chunks, options, progress)

    async def combine_summaries(
        self,
        task,
        partials: list[tuple[Chunk, str]],
        options: SummaryOptions,
    ) -> str:
        """Combine per-chunk summaries according to the summary type."""
        if options.type == 'key-points':
            return format_sectioned_summary(partials, options.format)

        combined = "\n\n".join(summary for _, summary in partials)
        tokens = estimate_tokens(combined)

        if tokens < self.config.summary_of_summaries_token_limit:
            debug_log(f"[SUMMARIZE] Summary of summaries over ~{tokens} tokens")
            return await self.summarize_once(task, combined, options)

        info(f"[SUMMARIZE] Combined summaries too large (~{tokens} tokens), returning concatenation")
        return combined


def format_sectioned_summary(partials: list[tuple[Chunk, str]], output_format: str) -> str:
    """
    Place each partial summary under its chunk's first heading.

    Chunks without headings are labelled 'Part N' (1-based).
    """
    sections = []
    for i, (chunk, summary) in enumerate(partials):
        heading = chunk.headings[0] if chunk.headings else f"Part {i + 1}"
        if output_format == 'markdown':
            sections.append(f"### {heading}\n\n{summary}")
        else:
            sections.append(f"{heading}\n{summary}")
    return "\n\n".join(sections)
