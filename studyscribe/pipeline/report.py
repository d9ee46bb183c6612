"""
Multi-source report synthesis.

1. Sources whose text exceeds the token limit are pre-summarized through the
   summarize path (key-points, short, plain-text)
2. One language model call synthesizes the report; the prompt forbids a
   references section
3. A references section is appended locally, one line per source in input
   order, so citation formatting never depends on model output
"""

from dataclasses import dataclass

from studyscribe.config import PipelineConfig
from studyscribe.extraction.text_cleanup import estimate_tokens
from studyscribe.generation.prompts import REPORT_SYSTEM_PROMPT, build_report_prompt
from studyscribe.generation.service import GenerationService, LanguageModelOptions
from studyscribe.logging_config import debug_log, info

from .progress import ProgressCallback, silent_progress
from .result_types import Citation, ReportResult
from .summarize import SummarizePipeline, SummaryOptions

UNTITLED = "Untitled"


@dataclass(frozen=True)
class ReportSource:
    """
    One saved item to synthesize.

    Attributes:
        title: Source title
        url: Source URL
        text: Excerpt (e.g. the selection that was saved)
        full_text: Full page text, preferred over text when present
        source_type: 'page' or 'selection'
    """
    title: str = ""
    url: str = ""
    text: str = ""
    full_text: str = ""
    source_type: str = "page"

    @property
    def content(self) -> str:
        return self.full_text or self.text or ""

    @property
    def display_title(self) -> str:
        return self.title or UNTITLED


@dataclass(frozen=True)
class ReportOptions:
    language: str = "en"
    custom_instructions: str = ""


def build_references_section(citations: list[Citation]) -> str:
    """'## References' followed by 'N. title - url' per citation."""
    lines = [f"{i}. {c.title} - {c.url}" for i, c in enumerate(citations, start=1)]
    return "\n\n## References\n\n" + "\n".join(lines)


class ReportPipeline:
    """Condenses sources and synthesizes one report from them."""

    def __init__(
        self,
        service: GenerationService,
        config: PipelineConfig,
        summarizer: SummarizePipeline,
    ):
        self.service = service
        self.config = config
        self.summarizer = summarizer

    def needs_condensing(self, source: ReportSource) -> bool:
        return estimate_tokens(source.content) > self.config.report_source_token_limit

    async def condense_sources(
        self,
        task,
        sources: list[ReportSource],
        options: ReportOptions,
        progress: ProgressCallback = silent_progress,
    ) -> list[str]:
        """Return the text to quote for each source, pre-summarizing large ones."""
        condensed = []
        source_count = len(sources)
        progress_per_source = 40 / source_count
        summary_options = SummaryOptions(
            type='key-points',
            length='short',
            format='plain-text',
            language=options.language,
        )

        for i, source in enumerate(sources):
            task.token.raise_if_cancelled()
            progress(f"Processing source {i + 1}/{source_count}...", 10 + i * progress_per_source)

            if self.needs_condensing(source):
                debug_log(f"[REPORT] Pre-summarizing source {i + 1} (~{estimate_tokens(source.content)} tokens)")
                condensed.append(await self.summarizer.summarize_text(task, source.content, summary_options))
            else:
                condensed.append(source.content)

        return condensed

    async def synthesize(
        self,
        task,
        sources: list[ReportSource],
        options: ReportOptions,
        progress: ProgressCallback = silent_progress,
    ) -> ReportResult:
        """
        Build the full report with its references section.

        Args:
            task: Owning Task
            sources: Non-empty list of sources, in citation order
            options: Language and optional custom instructions
            progress: (message, percent) sink
        """
        info(f"[REPORT] Synthesizing report from {len(sources)} sources")
        progress("Analyzing sources...", 10)

        condensed = await self.condense_sources(task, sources, options, progress)

        task.token.raise_if_cancelled()
        progress("Synthesizing report...", 55)

        session = await self.service.create_language_model(
            LanguageModelOptions(
                system_prompt=REPORT_SYSTEM_PROMPT,
                temperature=self.config.language_model_temperature,
                top_k=self.config.language_model_top_k,
            )
        )
        task.hold_session(session)
        try:
            prompt = build_report_prompt(
                [(source.display_title, text) for source, text in zip(sources, condensed)],
                options.custom_instructions,
            )
            progress("Generating report content...", 70)
            body = await session.prompt(prompt, signal=task.token)
        finally:
            task.release_session(session)

        task.token.raise_if_cancelled()
        progress("Finalizing report...", 90)

        citations = [
            Citation(title=source.display_title, url=source.url, source_type=source.source_type)
            for source in sources
        ]
        report = (body or "").rstrip() + build_references_section(citations)

        return ReportResult(report=report, citations=tuple(citations), language=options.language)
